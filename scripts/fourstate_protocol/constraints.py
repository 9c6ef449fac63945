"""Pattern checks for a verification record.

Each check is a pure function of the record (or of one state/result pair) and
returns structured findings instead of raising. Callers decide what to do with
them; ToggleStateVerifier turns them into a Verdict and a Diagnosis.

Findings:
    PatternViolation        — a recorded result contradicts the required one
    IncompleteVerification  — one or more states have no recorded result

Checker:
    PatternChecker.check_state(state_id, result)
    PatternChecker.check_pattern(record)
    PatternChecker.check_completeness(record)
    PatternChecker.check_record(record)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Mapping

from fourstate_protocol.types import (
    CANONICAL_ORDER,
    ERROR_HINT,
    STATE_SPECS,
    RunResult,
    StateSpec,
    ToggleStateId,
)

if TYPE_CHECKING:
    from fourstate_protocol.verifier import VerificationRecord


# ─── Findings ─────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PatternViolation:
    """A recorded result that contradicts the required pass/fail pattern.

    hint is drawn from the fixed remediation table; ERROR results always get
    ERROR_HINT regardless of state.
    """

    state_id: ToggleStateId
    expected: RunResult
    observed: RunResult
    hint: str

    def __str__(self) -> str:
        return (
            f"State {self.state_id.value}: expected {self.expected.value}, "
            f"observed {self.observed.value} — {self.hint}"
        )


@dataclass(frozen=True)
class IncompleteVerification:
    """One or more of the four states has no recorded result."""

    missing: tuple[ToggleStateId, ...]

    def __str__(self) -> str:
        names = ", ".join(s.value for s in self.missing)
        return f"No recorded result for state(s): {names}"


# ─── Checker ──────────────────────────────────────────────────────────────────


class PatternChecker:
    """Compares recorded results against the canonical state specifications.

    Specs are injectable for tests; the default is STATE_SPECS.
    """

    def __init__(self, specs: Mapping[ToggleStateId, StateSpec] | None = None) -> None:
        self._specs = dict(specs) if specs is not None else STATE_SPECS

    @property
    def specs(self) -> Mapping[ToggleStateId, StateSpec]:
        return self._specs

    def check_state(
        self, state_id: ToggleStateId, result: RunResult
    ) -> PatternViolation | None:
        spec = self._specs[state_id]
        if result == spec.expected:
            return None
        hint = ERROR_HINT if result == RunResult.ERROR else spec.remediation
        return PatternViolation(
            state_id=state_id,
            expected=spec.expected,
            observed=result,
            hint=hint,
        )

    def check_pattern(self, record: VerificationRecord) -> list[PatternViolation]:
        """Check every recorded state, in canonical order. Does not short-circuit."""
        violations: list[PatternViolation] = []
        for state_id in CANONICAL_ORDER:
            result = record.results.get(state_id)
            if result is None:
                continue
            violation = self.check_state(state_id, result)
            if violation is not None:
                violations.append(violation)
        return violations

    def check_completeness(
        self, record: VerificationRecord
    ) -> IncompleteVerification | None:
        missing = tuple(s for s in CANONICAL_ORDER if s not in record.results)
        if not missing:
            return None
        return IncompleteVerification(missing=missing)

    def check_record(
        self, record: VerificationRecord
    ) -> list[PatternViolation | IncompleteVerification]:
        """Return every finding for record: violations first, then completeness."""
        findings: list[PatternViolation | IncompleteVerification] = []
        findings.extend(self.check_pattern(record))
        incomplete = self.check_completeness(record)
        if incomplete is not None:
            findings.append(incomplete)
        return findings
