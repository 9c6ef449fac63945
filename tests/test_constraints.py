"""Tests for fourstate_protocol.constraints — pattern checks.

Coverage:
    - PatternViolation / IncompleteVerification: frozen, readable str()
    - check_state: expected result passes, anything else is a violation
    - ERROR results use ERROR_HINT in every state
    - check_pattern: skips unrecorded states, no short-circuit, canonical order
    - check_completeness: lists missing states in canonical order
    - check_record: violations first, then completeness
    - Injectable specs
"""

from __future__ import annotations

import pytest

from fourstate_protocol.constraints import (
    IncompleteVerification,
    PatternChecker,
    PatternViolation,
)
from fourstate_protocol.types import (
    ERROR_HINT,
    REMEDIATION_HINTS,
    STATE_SPECS,
    RunResult,
    StateSpec,
    ToggleStateId,
)
from fourstate_protocol.verifier import VerificationRecord


# ─── Helpers ──────────────────────────────────────────────────────────────────


def _record(**results: RunResult) -> VerificationRecord:
    """Return a VerificationRecord with the given state-name -> result mapping."""
    record = VerificationRecord(pair_id="test-pair")
    for name, result in results.items():
        record.results[ToggleStateId(name)] = result
    return record


def _all_good() -> VerificationRecord:
    return _record(I=RunResult.PASS, II=RunResult.PASS, III=RunResult.FAIL, IV=RunResult.PASS)


# ─── Findings ─────────────────────────────────────────────────────────────────


class TestFindings:
    def test_pattern_violation_is_frozen(self) -> None:
        v = PatternViolation(
            state_id=ToggleStateId.IV,
            expected=RunResult.PASS,
            observed=RunResult.FAIL,
            hint="h",
        )
        with pytest.raises((AttributeError, TypeError)):
            v.hint = "other"  # type: ignore[misc]

    def test_pattern_violation_str(self) -> None:
        v = PatternViolation(
            state_id=ToggleStateId.III,
            expected=RunResult.FAIL,
            observed=RunResult.PASS,
            hint="rework the test",
        )
        text = str(v)
        assert "State III" in text
        assert "expected FAIL" in text
        assert "observed PASS" in text
        assert "rework the test" in text

    def test_incomplete_verification_str(self) -> None:
        finding = IncompleteVerification(missing=(ToggleStateId.II, ToggleStateId.IV))
        assert str(finding) == "No recorded result for state(s): II, IV"


# ─── check_state ──────────────────────────────────────────────────────────────


class TestCheckState:
    @pytest.mark.parametrize("state_id", list(ToggleStateId))
    def test_expected_result_has_no_violation(self, state_id: ToggleStateId) -> None:
        checker = PatternChecker()
        assert checker.check_state(state_id, STATE_SPECS[state_id].expected) is None

    @pytest.mark.parametrize(
        "state_id, observed",
        [
            (ToggleStateId.I, RunResult.FAIL),
            (ToggleStateId.II, RunResult.FAIL),
            (ToggleStateId.III, RunResult.PASS),
            (ToggleStateId.IV, RunResult.FAIL),
        ],
    )
    def test_wrong_result_uses_state_hint(
        self, state_id: ToggleStateId, observed: RunResult
    ) -> None:
        violation = PatternChecker().check_state(state_id, observed)
        assert violation is not None
        assert violation.state_id == state_id
        assert violation.observed == observed
        assert violation.expected == STATE_SPECS[state_id].expected
        assert violation.hint == REMEDIATION_HINTS[state_id]

    @pytest.mark.parametrize("state_id", list(ToggleStateId))
    def test_error_is_violation_everywhere(self, state_id: ToggleStateId) -> None:
        violation = PatternChecker().check_state(state_id, RunResult.ERROR)
        assert violation is not None
        assert violation.hint == ERROR_HINT


# ─── check_pattern / check_completeness / check_record ───────────────────────


class TestCheckPattern:
    def test_all_good_has_no_violations(self) -> None:
        assert PatternChecker().check_pattern(_all_good()) == []

    def test_empty_record_has_no_violations(self) -> None:
        assert PatternChecker().check_pattern(_record()) == []

    def test_unrecorded_states_skipped(self) -> None:
        record = _record(IV=RunResult.FAIL)
        violations = PatternChecker().check_pattern(record)
        assert [v.state_id for v in violations] == [ToggleStateId.IV]

    def test_does_not_short_circuit(self) -> None:
        record = _record(
            I=RunResult.FAIL, II=RunResult.FAIL, III=RunResult.PASS, IV=RunResult.FAIL
        )
        violations = PatternChecker().check_pattern(record)
        assert [v.state_id for v in violations] == list(ToggleStateId)


class TestCheckCompleteness:
    def test_complete_record(self) -> None:
        assert PatternChecker().check_completeness(_all_good()) is None

    def test_missing_in_canonical_order(self) -> None:
        record = _record(III=RunResult.FAIL, I=RunResult.PASS)
        finding = PatternChecker().check_completeness(record)
        assert finding == IncompleteVerification(
            missing=(ToggleStateId.II, ToggleStateId.IV)
        )


class TestCheckRecord:
    def test_all_good_has_no_findings(self) -> None:
        assert PatternChecker().check_record(_all_good()) == []

    def test_violations_before_completeness(self) -> None:
        record = _record(I=RunResult.FAIL)
        findings = PatternChecker().check_record(record)
        assert isinstance(findings[0], PatternViolation)
        assert isinstance(findings[-1], IncompleteVerification)
        assert len(findings) == 2


class TestInjectableSpecs:
    def test_custom_specs_used(self) -> None:
        base = STATE_SPECS[ToggleStateId.I]
        lenient = StateSpec(
            state_id=base.state_id,
            toggles=base.toggles,
            expected=RunResult.FAIL,
            depends_on=base.depends_on,
            description=base.description,
            remediation="custom",
        )
        specs = dict(STATE_SPECS)
        specs[ToggleStateId.I] = lenient
        checker = PatternChecker(specs)
        assert checker.check_state(ToggleStateId.I, RunResult.FAIL) is None
        violation = checker.check_state(ToggleStateId.I, RunResult.PASS)
        assert violation is not None
        assert violation.hint == "custom"

    def test_default_specs(self) -> None:
        assert PatternChecker().specs is STATE_SPECS
