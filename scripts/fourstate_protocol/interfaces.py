"""Collaborator interfaces for the four-state protocol.

This module defines @runtime_checkable Protocols for the pieces the verifier
talks to but does not own:
    TestExecutor — runs the test scope under one toggle state
    RunRecorder  — persists run and invalidation events

Structural subtyping: any object with matching methods satisfies these, no
inheritance required. CommandTestExecutor (executor.py) is the bundled
TestExecutor.

Event stub types are defined in types.py and re-exported here for convenience.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from fourstate_protocol.types import (
    InvalidationEvent,
    RunRecordedEvent,
    RunResult,
    ToggleState,
)


# ─── Protocol Interfaces ──────────────────────────────────────────────────────


@runtime_checkable
class TestExecutor(Protocol):
    """Anything that can execute the test scope under a toggle state.

    isinstance(obj, TestExecutor) returns True for any object with a matching
    run() method.
    """

    def run(self, state: ToggleState) -> RunResult:
        """Execute the relevant test scope with the given toggles applied.

        Args:
            state: The toggle combination to apply for this run.

        Returns:
            PASS or FAIL for a completed run; ERROR if the run could not
            complete.
        """
        ...


@runtime_checkable
class RunRecorder(Protocol):
    """Interface for persisting verification events.

    The bundled workflow only logs; a recorder is the extension point for a
    durable store.
    """

    async def record_run(self, event: RunRecordedEvent) -> None:
        """Persist one recorded run."""
        ...

    async def record_invalidation(self, event: InvalidationEvent) -> None:
        """Persist one artifact revision and the states it cleared."""
        ...


__all__ = [
    "TestExecutor",
    "RunRecorder",
    # Event stub types (re-exported from types.py)
    "RunRecordedEvent",
    "InvalidationEvent",
]
