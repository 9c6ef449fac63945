"""Four-state toggle verification protocol — public API.

A test/fix pair is verified by running the test scope under every combination
of its two toggles and checking the outcome pattern I=PASS, II=PASS,
III=FAIL, IV=PASS.

Public API (re-exported from submodules):

Enums:
    ToggleStateId — I, II, III, IV
    RunResult     — PASS, FAIL, ERROR
    Artifact      — TEST, FIX
    Verdict       — INCOMPLETE, VERIFIED, FAILED

Frozen Dataclasses:
    ToggleState  — (test_enabled, fix_enabled) pair
    StateSpec    — canonical specification of one state

Event Stub Types (frozen dataclasses):
    RunRecordedEvent
    InvalidationEvent

Canonical Lookup Dicts:
    STATE_SPECS        — dict[ToggleStateId, StateSpec]
    REMEDIATION_HINTS  — dict[ToggleStateId, str]
    CANONICAL_ORDER    — (I, II, III, IV)

Pattern checks (from constraints.py):
    PatternViolation, IncompleteVerification, PatternChecker

Verifier (from verifier.py):
    VerificationRecord       — mutable runtime state for one pair
    RunRecord                — frozen audit entry for one recorded run
    Diagnosis                — verdict + violations + missing states
    InvalidStateCombination  — raised for non-canonical state input
    ToggleStateVerifier      — the bookkeeping object

Collaborators:
    TestExecutor, RunRecorder  — runtime_checkable Protocols (interfaces.py)
    CommandTestExecutor        — subprocess TestExecutor (executor.py)

The Temporal driver lives in fourstate_protocol.workflow and is imported
explicitly so that the core has no temporalio import cost.
"""

from fourstate_protocol.constraints import (
    IncompleteVerification,
    PatternChecker,
    PatternViolation,
)
from fourstate_protocol.executor import CommandTestExecutor
from fourstate_protocol.interfaces import RunRecorder, TestExecutor
from fourstate_protocol.types import (
    CANONICAL_ORDER,
    ERROR_HINT,
    REMEDIATION_HINTS,
    STATE_SPECS,
    Artifact,
    InvalidationEvent,
    RunRecordedEvent,
    RunResult,
    StateSpec,
    ToggleState,
    ToggleStateId,
    Verdict,
)
from fourstate_protocol.verifier import (
    Diagnosis,
    InvalidStateCombination,
    RunRecord,
    ToggleStateVerifier,
    VerificationRecord,
    resolve_state,
)

__all__ = [
    # Enums
    "ToggleStateId",
    "RunResult",
    "Artifact",
    "Verdict",
    # Frozen dataclasses
    "ToggleState",
    "StateSpec",
    # Event stub types
    "RunRecordedEvent",
    "InvalidationEvent",
    # Canonical lookup tables
    "STATE_SPECS",
    "REMEDIATION_HINTS",
    "ERROR_HINT",
    "CANONICAL_ORDER",
    # Pattern checks
    "PatternViolation",
    "IncompleteVerification",
    "PatternChecker",
    # Verifier
    "VerificationRecord",
    "RunRecord",
    "Diagnosis",
    "InvalidStateCombination",
    "ToggleStateVerifier",
    "resolve_state",
    # Collaborators
    "TestExecutor",
    "RunRecorder",
    "CommandTestExecutor",
]
