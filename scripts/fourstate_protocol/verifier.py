"""Toggle-state verifier for one test/fix pair.

ToggleStateVerifier is a synchronous bookkeeping object. It tracks the current
toggle state, stores one result per canonical state, clears dependent results
when an artifact is revised, and reports a verdict with a diagnosis. It never
runs tests itself: the caller (or VerificationWorkflow) runs the test scope
under each state and feeds the outcome back through record_run().

Verdict rules:
    INCOMPLETE — any of the four states has no recorded result
    FAILED     — all recorded, at least one contradicts the required pattern
    VERIFIED   — all recorded: I, II, IV PASS and III FAIL

Invalidation rules:
    TEST revised → III and IV cleared
    FIX revised  → II and IV cleared

Re-verification after an invalidation may happen in any order.

Key types:
    VerificationRecord       — mutable runtime state for one pair
    RunRecord                — frozen audit entry for one recorded run
    Diagnosis                — frozen verdict + violations + missing states
    InvalidStateCombination  — raised for input outside the four canonical states
    ToggleStateVerifier      — the verifier itself
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Union

from fourstate_protocol.constraints import PatternChecker, PatternViolation
from fourstate_protocol.types import (
    CANONICAL_ORDER,
    Artifact,
    RunResult,
    ToggleState,
    ToggleStateId,
    Verdict,
    states_depending_on,
)

logger = logging.getLogger(__name__)

# Anything record_run() accepts as a state designation.
StateLike = Union[ToggleState, ToggleStateId, str, tuple[bool, bool]]


# ─── Errors ───────────────────────────────────────────────────────────────────


class InvalidStateCombination(ValueError):
    """Raised when a caller designates a state outside the canonical four.

    violations lists every reason the input was rejected.
    """

    def __init__(self, message: str, violations: list[str] | None = None) -> None:
        super().__init__(message)
        self.violations: list[str] = violations or [message]


# ─── Records ──────────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class RunRecord:
    """Immutable audit entry for one recorded run.

    test_revision / fix_revision are the artifact revisions in effect when the
    result was recorded.
    """

    state_id: ToggleStateId
    result: RunResult
    timestamp: datetime
    test_revision: int = 0
    fix_revision: int = 0


@dataclass
class VerificationRecord:
    """Mutable runtime state of one verification pair.

    results holds at most one entry per canonical state; an absent key means
    the state has not been run against the current artifact revisions.
    run_history is append-only and survives invalidation.
    """

    pair_id: str
    current_state: ToggleState = field(
        default_factory=lambda: ToggleState(test_enabled=False, fix_enabled=False)
    )
    results: dict[ToggleStateId, RunResult] = field(default_factory=dict)
    test_revision: int = 0
    fix_revision: int = 0
    run_history: list[RunRecord] = field(default_factory=list)
    last_error: str | None = None


@dataclass(frozen=True)
class Diagnosis:
    """Result of ToggleStateVerifier.diagnose().

    violations is empty unless at least one recorded result contradicts the
    pattern. missing lists the states still waiting for a run.
    """

    verdict: Verdict
    violations: tuple[PatternViolation, ...] = ()
    missing: tuple[ToggleStateId, ...] = ()

    @property
    def violated_states(self) -> tuple[ToggleStateId, ...]:
        return tuple(v.state_id for v in self.violations)

    def summary(self) -> str:
        if self.verdict == Verdict.VERIFIED:
            return "Verified: all four toggle states match the required pattern."
        lines = [f"Verdict: {self.verdict.value}"]
        lines.extend(str(v) for v in self.violations)
        if self.missing:
            lines.append(
                "Awaiting run(s) for state(s): "
                + ", ".join(s.value for s in self.missing)
            )
        return "\n".join(lines)


# ─── Verifier ─────────────────────────────────────────────────────────────────


def resolve_state(state: StateLike) -> ToggleState:
    """Normalise a state designation to a canonical ToggleState.

    Accepts a ToggleState, a ToggleStateId (or its value, "I".."IV"), or a
    (test_enabled, fix_enabled) pair of booleans.

    Raises:
        InvalidStateCombination: if state does not name one of the four
            canonical combinations.
    """
    if isinstance(state, ToggleState):
        _require_bools(state.test_enabled, state.fix_enabled)
        return state
    if isinstance(state, str):
        try:
            return ToggleState.of(ToggleStateId(state))
        except ValueError:
            raise InvalidStateCombination(
                f"Unknown toggle state {state!r}; expected one of "
                + ", ".join(s.value for s in CANONICAL_ORDER)
            ) from None
    if isinstance(state, tuple):
        if len(state) != 2:
            raise InvalidStateCombination(
                f"Toggle state tuple must be (test_enabled, fix_enabled), got {state!r}"
            )
        test_enabled, fix_enabled = state
        _require_bools(test_enabled, fix_enabled)
        return ToggleState(test_enabled=test_enabled, fix_enabled=fix_enabled)
    raise InvalidStateCombination(
        f"Cannot interpret {state!r} as a toggle state"
    )


def _require_bools(test_enabled: object, fix_enabled: object) -> None:
    violations = [
        f"{name} must be a bool, got {value!r}"
        for name, value in (("test_enabled", test_enabled), ("fix_enabled", fix_enabled))
        if not isinstance(value, bool)
    ]
    if violations:
        raise InvalidStateCombination(
            "Toggle state outside the four canonical combinations", violations
        )


class ToggleStateVerifier:
    """Four-state verification bookkeeping for one test/fix pair.

    One instance per pair. Not safe for concurrent use; callers verifying
    several pairs keep one verifier each.
    """

    def __init__(self, pair_id: str, checker: PatternChecker | None = None) -> None:
        self._state = VerificationRecord(pair_id=pair_id)
        self._checker = checker or PatternChecker()

    # ── Reads ─────────────────────────────────────────────────────────────────

    @property
    def state(self) -> VerificationRecord:
        """Current record. Callers must not mutate it."""
        return self._state

    @property
    def current_state(self) -> ToggleState:
        return self._state.current_state

    @property
    def pending_states(self) -> list[ToggleStateId]:
        """States without a recorded result, in canonical order."""
        return [s for s in CANONICAL_ORDER if s not in self._state.results]

    @property
    def next_state(self) -> ToggleStateId | None:
        pending = self.pending_states
        return pending[0] if pending else None

    @property
    def is_verified(self) -> bool:
        return self.verdict() == Verdict.VERIFIED

    # ── Mutations ─────────────────────────────────────────────────────────────

    def set_state(self, test_enabled: bool, fix_enabled: bool) -> ToggleState:
        """Make (test_enabled, fix_enabled) the current toggle state."""
        toggles = resolve_state((test_enabled, fix_enabled))
        self._state.current_state = toggles
        logger.debug("%s: current state is now %s", self._state.pair_id, toggles)
        return toggles

    def record_run(
        self,
        state: StateLike,
        result: RunResult | str,
        *,
        timestamp: datetime | None = None,
    ) -> RunRecord:
        """Store result for state, replacing any earlier result for it.

        Args:
            state: the toggle state the run executed under.
            result: PASS, FAIL or ERROR (enum or its string value).
            timestamp: when the run was recorded; defaults to now (UTC).

        Returns:
            The RunRecord appended to run_history.

        Raises:
            InvalidStateCombination: state is not one of the canonical four.
            ValueError: result is not a RunResult value.
        """
        toggles = resolve_state(state)
        outcome = RunResult(result)
        state_id = toggles.state_id

        self._state.results[state_id] = outcome
        record = RunRecord(
            state_id=state_id,
            result=outcome,
            timestamp=timestamp or datetime.now(timezone.utc),
            test_revision=self._state.test_revision,
            fix_revision=self._state.fix_revision,
        )
        self._state.run_history.append(record)

        logger.info(
            "%s: recorded %s for state %s",
            self._state.pair_id,
            outcome.value,
            state_id.value,
        )
        violation = self._checker.check_state(state_id, outcome)
        if violation is not None:
            logger.warning("%s: %s", self._state.pair_id, violation)
        return record

    def record_current(
        self, result: RunResult | str, *, timestamp: datetime | None = None
    ) -> RunRecord:
        """Record result against the current toggle state."""
        return self.record_run(self._state.current_state, result, timestamp=timestamp)

    def invalidate(
        self, affected: Artifact | str | Iterable[Artifact | str]
    ) -> frozenset[ToggleStateId]:
        """Clear results that depend on the revised artifact(s).

        Revising TEST clears III and IV; revising FIX clears II and IV. Each
        revised artifact's revision counter is incremented.

        Returns:
            The states whose results were cleared (including ones that had no
            result yet).
        """
        artifacts = _resolve_artifacts(affected)
        cleared: set[ToggleStateId] = set()
        for artifact in artifacts:
            if artifact == Artifact.TEST:
                self._state.test_revision += 1
            else:
                self._state.fix_revision += 1
            cleared |= states_depending_on(artifact)

        for state_id in cleared:
            self._state.results.pop(state_id, None)

        logger.info(
            "%s: %s revised, cleared state(s) %s",
            self._state.pair_id,
            "+".join(sorted(a.value for a in artifacts)),
            ", ".join(s.value for s in CANONICAL_ORDER if s in cleared),
        )
        return frozenset(cleared)

    # ── Verdict ───────────────────────────────────────────────────────────────

    def verdict(self) -> Verdict:
        if self._checker.check_completeness(self._state) is not None:
            return Verdict.INCOMPLETE
        if self._checker.check_pattern(self._state):
            return Verdict.FAILED
        return Verdict.VERIFIED

    def diagnose(self) -> Diagnosis:
        """Report the verdict, every violated state with its hint, and missing states."""
        incomplete = self._checker.check_completeness(self._state)
        return Diagnosis(
            verdict=self.verdict(),
            violations=tuple(self._checker.check_pattern(self._state)),
            missing=incomplete.missing if incomplete is not None else (),
        )


def _resolve_artifacts(
    affected: Artifact | str | Iterable[Artifact | str],
) -> frozenset[Artifact]:
    if isinstance(affected, (Artifact, str)):
        affected = [affected]
    artifacts = frozenset(Artifact(a) for a in affected)
    if not artifacts:
        raise ValueError("invalidate() needs at least one artifact (TEST or FIX)")
    return artifacts
