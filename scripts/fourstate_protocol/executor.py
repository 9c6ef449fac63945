"""Subprocess-backed TestExecutor.

CommandTestExecutor runs a test command once per toggle state. The toggles are
exported to the child process as environment variables ("1" enabled, "0"
disabled). The project under test reads them to switch the new test and the
fix on or off. Exit codes map onto RunResult:

    0                      → PASS
    in fail_exit_codes     → FAIL   (default {1}: pytest "tests failed")
    anything else          → ERROR  (interrupted, usage error, no tests, ...)
    timeout / OSError      → ERROR
"""

from __future__ import annotations

import logging
import os
import subprocess
from collections.abc import Mapping, Sequence

from fourstate_protocol.types import RunResult, ToggleState

logger = logging.getLogger(__name__)

DEFAULT_TEST_ENV_VAR = "FOURSTATE_TEST_ENABLED"
DEFAULT_FIX_ENV_VAR = "FOURSTATE_FIX_ENABLED"
DEFAULT_TIMEOUT_SECONDS = 300.0

# Lines of combined stdout/stderr kept in the log for non-PASS runs.
_OUTPUT_TAIL_LINES = 5


class CommandTestExecutor:
    """Runs command with the toggle state exported as environment variables."""

    def __init__(
        self,
        command: Sequence[str],
        *,
        test_env_var: str = DEFAULT_TEST_ENV_VAR,
        fix_env_var: str = DEFAULT_FIX_ENV_VAR,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        fail_exit_codes: frozenset[int] = frozenset({1}),
        cwd: str | None = None,
        env: Mapping[str, str] | None = None,
    ) -> None:
        if not command:
            raise ValueError("command must contain at least the program to run")
        if 0 in fail_exit_codes:
            raise ValueError("exit code 0 always means PASS")
        self.command = list(command)
        self.test_env_var = test_env_var
        self.fix_env_var = fix_env_var
        self.timeout = timeout
        self.fail_exit_codes = frozenset(fail_exit_codes)
        self.cwd = cwd
        self._base_env = dict(env) if env is not None else None

    def environment(self, state: ToggleState) -> dict[str, str]:
        """Return the child environment for state."""
        env = dict(self._base_env if self._base_env is not None else os.environ)
        env[self.test_env_var] = "1" if state.test_enabled else "0"
        env[self.fix_env_var] = "1" if state.fix_enabled else "0"
        return env

    def classify(self, returncode: int) -> RunResult:
        if returncode == 0:
            return RunResult.PASS
        if returncode in self.fail_exit_codes:
            return RunResult.FAIL
        return RunResult.ERROR

    def run(self, state: ToggleState) -> RunResult:
        logger.info("Running %s under %s", " ".join(self.command), state)
        try:
            completed = subprocess.run(
                self.command,
                capture_output=True,
                text=True,
                encoding="utf-8",
                errors="replace",
                timeout=self.timeout,
                cwd=self.cwd,
                env=self.environment(state),
            )
        except subprocess.TimeoutExpired:
            logger.warning("%s: timed out after %ss", state, self.timeout)
            return RunResult.ERROR
        except OSError as e:
            logger.warning("%s: failed to run tests: %s", state, e)
            return RunResult.ERROR

        result = self.classify(completed.returncode)
        if result != RunResult.PASS:
            output = (completed.stdout or "") + (completed.stderr or "")
            tail = "\n".join(output.strip().splitlines()[-_OUTPUT_TAIL_LINES:])
            logger.warning(
                "%s: %s (exit %d)\n%s",
                state,
                result.value,
                completed.returncode,
                tail,
            )
        return result
