"""Temporal workflow driving the four-state protocol for one test/fix pair.

Wraps ToggleStateVerifier with durable Temporal execution. The workflow runs
every pending toggle state through the run_test_scope activity in canonical
order (I → II → III → IV), records each result, and then waits. A revise
signal invalidates the revised artifact's dependent states, which are run
again; a close signal ends the workflow. Queries expose the verdict and the
diagnosis at any point. Search attributes are updated on every recorded run.

Design rules:
- Workflow code MUST be deterministic: no I/O, no random, no datetime.now().
- Use workflow.now() for timestamps inside workflow code.
- Activities handle non-deterministic operations (running tests, recording).
- One workflow per verification pair.
- Test runs are never retried: ERROR is a result, not a fault.

Key types (all frozen dataclasses):
    VerificationInput   — workflow run() input
    VerificationResult  — workflow run() return value
    RunRequest          — run_test_scope activity input
    RevisionSignal      — revise signal payload

Search attribute keys:
    SA_PAIR_ID — text key for pair ID lookup
    SA_VERDICT — keyword key for current verdict
    SA_CURRENT — keyword key for the toggle state last run
    SA_STATUS  — keyword key for workflow status (running / waiting / closed)

Activities:
    run_test_scope(request: RunRequest) -> RunResult
    record_run_event(event: RunRecordedEvent) -> None
    record_invalidation_event(event: InvalidationEvent) -> None
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta

from temporalio import activity, workflow
from temporalio.common import RetryPolicy, SearchAttributeKey

# Only activities touch the executor; keep subprocess out of the sandbox.
with workflow.unsafe.imports_passed_through():
    from fourstate_protocol.executor import (
        DEFAULT_FIX_ENV_VAR,
        DEFAULT_TEST_ENV_VAR,
        DEFAULT_TIMEOUT_SECONDS,
        CommandTestExecutor,
    )
from fourstate_protocol.types import (
    CANONICAL_ORDER,
    Artifact,
    InvalidationEvent,
    RunRecordedEvent,
    RunResult,
    ToggleState,
    ToggleStateId,
    Verdict,
)
from fourstate_protocol.verifier import (
    Diagnosis,
    ToggleStateVerifier,
    VerificationRecord,
)

# ─── Search Attribute Keys ────────────────────────────────────────────────────
# Registered in the Temporal namespace, e.g. "find all pairs where
# FourStateVerdict='FAILED'".

SA_PAIR_ID: SearchAttributeKey = SearchAttributeKey.for_text("FourStatePairId")
SA_VERDICT: SearchAttributeKey = SearchAttributeKey.for_keyword("FourStateVerdict")
SA_CURRENT: SearchAttributeKey = SearchAttributeKey.for_keyword("FourStateCurrent")
SA_STATUS: SearchAttributeKey = SearchAttributeKey.for_keyword("FourStateStatus")

# Slack on top of the executor timeout before Temporal gives up on the activity.
_ACTIVITY_TIMEOUT_SLACK = timedelta(seconds=30)


# ─── Signal / Activity Types (frozen dataclasses) ─────────────────────────────


@dataclass(frozen=True)
class VerificationInput:
    """Input for VerificationWorkflow.run().

    pair_id: unique identifier for the test/fix pair
    command: test command run once per toggle state (argument list, no shell)
    test_env_var / fix_env_var: names of the exported toggle variables
    timeout_seconds: per-run timeout; a timed-out run records ERROR
    cwd: working directory for the test command
    """

    pair_id: str
    command: list[str]
    test_env_var: str = DEFAULT_TEST_ENV_VAR
    fix_env_var: str = DEFAULT_FIX_ENV_VAR
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    cwd: str | None = None


@dataclass(frozen=True)
class VerificationResult:
    """Return value of VerificationWorkflow.run() once closed.

    violated_states: states whose recorded result contradicts the pattern
    run_count: total runs recorded, including ones later invalidated
    """

    pair_id: str
    verdict: Verdict
    violated_states: list[ToggleStateId] = field(default_factory=list)
    run_count: int = 0
    test_revision: int = 0
    fix_revision: int = 0


@dataclass(frozen=True)
class RunRequest:
    """Input for the run_test_scope activity."""

    pair_id: str
    toggles: ToggleState
    command: list[str]
    test_env_var: str = DEFAULT_TEST_ENV_VAR
    fix_env_var: str = DEFAULT_FIX_ENV_VAR
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    cwd: str | None = None


@dataclass(frozen=True)
class RevisionSignal:
    """Signal payload for VerificationWorkflow.revise().

    artifact: "TEST" or "FIX" (an Artifact value)
    reason: free-text note on what changed
    """

    artifact: str
    reason: str = ""


# ─── Activities ───────────────────────────────────────────────────────────────


@activity.defn
async def run_test_scope(request: RunRequest) -> RunResult:
    """Run the test command under request.toggles and classify the outcome.

    The subprocess blocks, so it runs in a worker thread.
    """
    executor = CommandTestExecutor(
        request.command,
        test_env_var=request.test_env_var,
        fix_env_var=request.fix_env_var,
        timeout=request.timeout_seconds,
        cwd=request.cwd,
    )
    return await asyncio.to_thread(executor.run, request.toggles)


@activity.defn
async def record_run_event(event: RunRecordedEvent) -> None:
    """Persist a recorded run.

    Log-only: the result already lives in VerificationRecord.run_history
    inside the workflow. A RunRecorder-backed store plugs in here.
    """
    logger = logging.getLogger(__name__)
    logger.info(
        "Run recorded: %s state %s -> %s (test r%d, fix r%d)",
        event.pair_id,
        event.state_id.value,
        event.result.value,
        event.test_revision,
        event.fix_revision,
    )


@activity.defn
async def record_invalidation_event(event: InvalidationEvent) -> None:
    """Persist an artifact revision and the states it cleared. Log-only."""
    logger = logging.getLogger(__name__)
    logger.info(
        "Invalidation recorded: %s %s revised (%s), cleared %s",
        event.pair_id,
        "+".join(a.value for a in event.artifacts),
        event.reason or "no reason given",
        ", ".join(s.value for s in event.cleared) or "nothing",
    )


# ─── Workflow ─────────────────────────────────────────────────────────────────


@workflow.defn
class VerificationWorkflow:
    """Durable driver for one pair's four-state verification.

    Lifecycle:
        1. run() creates the verifier and sets the initial search attributes.
        2. Each pending state is run (activity), recorded with workflow.now(),
           persisted (activity), and published via search attributes.
        3. With nothing pending, run() waits for revise or close.
        4. revise clears dependent states and persists an InvalidationEvent
           (activity); the cleared states are run again in step 2.
        5. close ends the loop once queued revisions are applied; run() returns
           VerificationResult.

    A revision that lands while a state is running voids that run's result
    when the state depends on the revised artifact.
    """

    def __init__(self) -> None:
        self._pending_revisions: list[RevisionSignal] = []
        self._closed: bool = False
        self._verifier: ToggleStateVerifier | None = None

    # ── Run ───────────────────────────────────────────────────────────────────

    @workflow.run
    async def run(self, input: VerificationInput) -> VerificationResult:
        self._verifier = ToggleStateVerifier(input.pair_id)
        workflow.upsert_search_attributes(
            [
                SA_PAIR_ID.value_set(input.pair_id),
                SA_VERDICT.value_set(Verdict.INCOMPLETE.value),
                SA_CURRENT.value_set(self._verifier.current_state.state_id.value),
                SA_STATUS.value_set("running"),
            ]
        )

        while True:
            # Drain revisions before honouring close so none are dropped.
            await self._apply_revisions()
            if self._closed:
                break

            state_id = self._verifier.next_state
            if state_id is None:
                workflow.upsert_search_attributes([SA_STATUS.value_set("waiting")])
                await workflow.wait_condition(
                    lambda: bool(self._pending_revisions) or self._closed
                )
                if self._pending_revisions:
                    workflow.upsert_search_attributes([SA_STATUS.value_set("running")])
                continue

            toggles = ToggleState.of(state_id)
            self._verifier.set_state(toggles.test_enabled, toggles.fix_enabled)
            result = await workflow.execute_activity(
                run_test_scope,
                RunRequest(
                    pair_id=input.pair_id,
                    toggles=toggles,
                    command=input.command,
                    test_env_var=input.test_env_var,
                    fix_env_var=input.fix_env_var,
                    timeout_seconds=input.timeout_seconds,
                    cwd=input.cwd,
                ),
                start_to_close_timeout=(
                    timedelta(seconds=input.timeout_seconds) + _ACTIVITY_TIMEOUT_SLACK
                ),
                retry_policy=RetryPolicy(maximum_attempts=1),
            )

            # Revisions that arrived mid-run void results they depend on.
            if state_id in await self._apply_revisions():
                workflow.logger.info(
                    "Discarding stale %s result for state %s", result.value, state_id.value
                )
                continue

            record = self._verifier.record_run(
                toggles, result, timestamp=workflow.now()
            )
            await workflow.execute_activity(
                record_run_event,
                RunRecordedEvent(
                    pair_id=input.pair_id,
                    state_id=record.state_id,
                    result=record.result,
                    timestamp=record.timestamp,
                    test_revision=record.test_revision,
                    fix_revision=record.fix_revision,
                ),
                start_to_close_timeout=timedelta(seconds=10),
            )
            workflow.upsert_search_attributes(
                [
                    SA_CURRENT.value_set(record.state_id.value),
                    SA_VERDICT.value_set(self._verifier.verdict().value),
                ]
            )

        workflow.upsert_search_attributes([SA_STATUS.value_set("closed")])
        diagnosis = self._verifier.diagnose()
        state = self._verifier.state
        return VerificationResult(
            pair_id=input.pair_id,
            verdict=diagnosis.verdict,
            violated_states=list(diagnosis.violated_states),
            run_count=len(state.run_history),
            test_revision=state.test_revision,
            fix_revision=state.fix_revision,
        )

    async def _apply_revisions(self) -> set[ToggleStateId]:
        """Drain queued revise signals into the verifier; return cleared states.

        Each applied revision is persisted through record_invalidation_event.
        """
        verifier = self._require_verifier()
        cleared: set[ToggleStateId] = set()
        while self._pending_revisions:
            signal = self._pending_revisions.pop(0)
            try:
                artifact = Artifact(signal.artifact)
            except ValueError:
                # Unknown artifact: keep running and surface via current_record().
                verifier.state.last_error = (
                    f"Unknown artifact {signal.artifact!r} in revise signal"
                )
                continue
            cleared_now = verifier.invalidate(artifact)
            cleared |= cleared_now
            workflow.logger.info(
                "%s revised (%s)", artifact.value, signal.reason or "no reason given"
            )
            await workflow.execute_activity(
                record_invalidation_event,
                InvalidationEvent(
                    pair_id=verifier.state.pair_id,
                    artifacts=(artifact,),
                    cleared=tuple(s for s in CANONICAL_ORDER if s in cleared_now),
                    reason=signal.reason,
                ),
                start_to_close_timeout=timedelta(seconds=10),
            )
        if cleared:
            workflow.upsert_search_attributes(
                [SA_VERDICT.value_set(verifier.verdict().value)]
            )
        return cleared

    # ── Signals ───────────────────────────────────────────────────────────────

    @workflow.signal
    def revise(self, signal: RevisionSignal) -> None:
        """Signal: the test or fix changed; dependent states must be re-run.

        Queued and applied in the run() loop, never in the handler.
        """
        self._pending_revisions.append(signal)

    @workflow.signal
    def close(self) -> None:
        """Signal: stop driving runs and return the current verdict."""
        self._closed = True

    # ── Queries ───────────────────────────────────────────────────────────────

    def _require_verifier(self) -> ToggleStateVerifier:
        if self._verifier is None:
            raise RuntimeError("Workflow not yet initialized — run() has not started.")
        return self._verifier

    @workflow.query
    def current_verdict(self) -> Verdict:
        return self._require_verifier().verdict()

    @workflow.query
    def diagnosis(self) -> Diagnosis:
        return self._require_verifier().diagnose()

    @workflow.query
    def pending_states(self) -> list[ToggleStateId]:
        if self._verifier is None:
            return []
        return self._verifier.pending_states

    @workflow.query
    def current_record(self) -> VerificationRecord:
        """Query: snapshot of the verification record. Callers must not modify it."""
        return self._require_verifier().state
