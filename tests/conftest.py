"""Shared pytest fixtures for the fourstate_protocol test suite.

Provides common ToggleStateVerifier setups used across test files so tests
stay focused on behaviour.
"""

from __future__ import annotations

import pytest

from fourstate_protocol.types import RunResult, ToggleStateId
from fourstate_protocol.verifier import ToggleStateVerifier

# Required outcome per state, in canonical order.
PASSING_PATTERN: dict[ToggleStateId, RunResult] = {
    ToggleStateId.I: RunResult.PASS,
    ToggleStateId.II: RunResult.PASS,
    ToggleStateId.III: RunResult.FAIL,
    ToggleStateId.IV: RunResult.PASS,
}


@pytest.fixture
def pair_id() -> str:
    return "test-pair-001"


@pytest.fixture
def verifier(pair_id: str) -> ToggleStateVerifier:
    return ToggleStateVerifier(pair_id)


@pytest.fixture
def verified(verifier: ToggleStateVerifier) -> ToggleStateVerifier:
    """Verifier with all four states recorded in the required pattern."""
    for state_id, result in PASSING_PATTERN.items():
        verifier.record_run(state_id, result)
    return verifier
