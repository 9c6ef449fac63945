"""Core types for the four-state toggle verification protocol.

A verification pair is one test and one fix, each behind an independent
boolean toggle. The protocol runs the test scope under all four toggle
combinations and expects a fixed pass/fail pattern:

    State  test  fix   required
    I      off   off   PASS     — baseline is green before anything changes
    II     off   on    PASS     — the fix alone does not regress anything
    III    on    off   FAIL     — the test actually detects the missing fix
    IV     on    on    PASS     — the fix satisfies the test

Enums:
    ToggleStateId — I, II, III, IV
    RunResult     — PASS, FAIL, ERROR
    Artifact      — TEST, FIX
    Verdict       — INCOMPLETE, VERIFIED, FAILED

Frozen Dataclasses:
    ToggleState — (test_enabled, fix_enabled) pair
    StateSpec   — canonical specification of one toggle state

Canonical Lookup Dicts:
    STATE_SPECS        — dict[ToggleStateId, StateSpec]
    REMEDIATION_HINTS  — dict[ToggleStateId, str]
    ERROR_HINT         — hint used for any state whose run could not complete
    CANONICAL_ORDER    — tuple[ToggleStateId, ...]  (I, II, III, IV)

Event Stub Types (frozen dataclasses):
    RunRecordedEvent
    InvalidationEvent
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


# ─── Enums ────────────────────────────────────────────────────────────────────


class ToggleStateId(str, Enum):
    """The four canonical toggle combinations."""

    I = "I"  # noqa: E741
    II = "II"
    III = "III"
    IV = "IV"


class RunResult(str, Enum):
    """Outcome of one execution of the test scope.

    ERROR means the run itself could not complete (crash, timeout, collection
    failure). It is never an acceptable outcome for any state.
    """

    PASS = "PASS"
    FAIL = "FAIL"
    ERROR = "ERROR"


class Artifact(str, Enum):
    """The two independently revisable halves of a verification pair."""

    TEST = "TEST"
    FIX = "FIX"


class Verdict(str, Enum):
    INCOMPLETE = "INCOMPLETE"
    VERIFIED = "VERIFIED"
    FAILED = "FAILED"


# ─── Toggle State ─────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class ToggleState:
    """A (test_enabled, fix_enabled) pair.

    All four boolean combinations are canonical, so any ToggleState built from
    real booleans maps onto exactly one ToggleStateId. Use ToggleState.of() to
    build the flags for a given id.
    """

    test_enabled: bool
    fix_enabled: bool

    @property
    def state_id(self) -> ToggleStateId:
        return _FLAGS_TO_ID[(self.test_enabled, self.fix_enabled)]

    @classmethod
    def of(cls, state_id: ToggleStateId) -> ToggleState:
        return STATE_SPECS[ToggleStateId(state_id)].toggles

    def __str__(self) -> str:
        test = "on" if self.test_enabled else "off"
        fix = "on" if self.fix_enabled else "off"
        return f"State {self.state_id.value} (test {test}, fix {fix})"


# ─── State Specifications ─────────────────────────────────────────────────────


@dataclass(frozen=True)
class StateSpec:
    """Canonical specification of one toggle state.

    depends_on: artifacts whose revision invalidates a recorded result for
                this state. State I depends on neither, since both toggles
                are off.
    remediation: fixed hint reported when the observed result differs from
                 expected.
    """

    state_id: ToggleStateId
    toggles: ToggleState
    expected: RunResult
    depends_on: frozenset[Artifact]
    description: str
    remediation: str


STATE_SPECS: dict[ToggleStateId, StateSpec] = {
    ToggleStateId.I: StateSpec(
        state_id=ToggleStateId.I,
        toggles=ToggleState(test_enabled=False, fix_enabled=False),
        expected=RunResult.PASS,
        depends_on=frozenset(),
        description="Baseline: test and fix both disabled",
        remediation=(
            "Pre-existing failures: the suite is red without the test or the "
            "fix. Fix the existing failures before verifying this pair."
        ),
    ),
    ToggleStateId.II: StateSpec(
        state_id=ToggleStateId.II,
        toggles=ToggleState(test_enabled=False, fix_enabled=True),
        expected=RunResult.PASS,
        depends_on=frozenset({Artifact.FIX}),
        description="Fix enabled, test disabled",
        remediation=(
            "The fix regresses existing behaviour: existing tests fail once "
            "the fix is enabled."
        ),
    ),
    ToggleStateId.III: StateSpec(
        state_id=ToggleStateId.III,
        toggles=ToggleState(test_enabled=True, fix_enabled=False),
        expected=RunResult.FAIL,
        depends_on=frozenset({Artifact.TEST}),
        description="Test enabled, fix disabled",
        remediation=(
            "The test passes without the fix, so it doesn't actually test the "
            "fix. Rework the test until it fails on the unfixed code."
        ),
    ),
    ToggleStateId.IV: StateSpec(
        state_id=ToggleStateId.IV,
        toggles=ToggleState(test_enabled=True, fix_enabled=True),
        expected=RunResult.PASS,
        depends_on=frozenset({Artifact.TEST, Artifact.FIX}),
        description="Test and fix both enabled",
        remediation=(
            "The fix is incomplete or incorrect: the new test still fails "
            "with the fix enabled."
        ),
    ),
}

CANONICAL_ORDER: tuple[ToggleStateId, ...] = (
    ToggleStateId.I,
    ToggleStateId.II,
    ToggleStateId.III,
    ToggleStateId.IV,
)

REMEDIATION_HINTS: dict[ToggleStateId, str] = {
    state_id: spec.remediation for state_id, spec in STATE_SPECS.items()
}

ERROR_HINT = (
    "The test run could not complete (crash, timeout or collection error). "
    "Repair the run itself, then record this state again."
)

_FLAGS_TO_ID: dict[tuple[bool, bool], ToggleStateId] = {
    (spec.toggles.test_enabled, spec.toggles.fix_enabled): state_id
    for state_id, spec in STATE_SPECS.items()
}


def states_depending_on(artifact: Artifact) -> frozenset[ToggleStateId]:
    """Return the states whose recorded results a revision of artifact voids."""
    return frozenset(
        state_id
        for state_id, spec in STATE_SPECS.items()
        if artifact in spec.depends_on
    )


# ─── Event Stub Types ─────────────────────────────────────────────────────────
# Payloads handed to a RunRecorder. Kept minimal; recorders decide storage.


@dataclass(frozen=True)
class RunRecordedEvent:
    """A result was recorded for one toggle state of a pair."""

    pair_id: str
    state_id: ToggleStateId
    result: RunResult
    timestamp: datetime
    test_revision: int = 0
    fix_revision: int = 0


@dataclass(frozen=True)
class InvalidationEvent:
    """An artifact revision cleared recorded results for a pair."""

    pair_id: str
    artifacts: tuple[Artifact, ...]
    cleared: tuple[ToggleStateId, ...] = ()
    reason: str = ""
