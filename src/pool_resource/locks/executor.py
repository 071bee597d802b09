"""Retry state machine that makes a single lock action durable.

    SETUP -> ATTEMPT -> PUSH -> DONE
               ^  |      |
               |  v      v
               RETRY <---+

Expected contention (no lock available yet, push conflicts) loops back
through RETRY without counting as an error. Unexpected push failures are
counted and become fatal at the configured limit. Any exception raised by
setup, reset or the action itself ends the run immediately (FATAL).
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

from pool_resource.core.constants import MAX_UNEXPECTED_ERRORS
from pool_resource.core.exceptions import TooManyUnexpectedErrorsError
from pool_resource.locks.actions import LockPoolAction
from pool_resource.locks.handler import LockHandler
from pool_resource.store.cas import PushOutcome


class ExecutorState(Enum):
    """States of the robust action executor."""

    SETUP = "setup"
    ATTEMPT = "attempt"
    PUSH = "push"
    RETRY = "retry"
    DONE = "done"
    FATAL = "fatal"


@dataclass
class ExecutionStats:
    """Counters collected during one executor run."""

    attempts: int = 0
    waits: int = 0  # retries requested by the action itself
    conflicts: int = 0
    unexpected_errors: int = 0
    last_push_output: str = ""


class RobustActionExecutor:
    """Runs a LockPoolAction until its mutation lands on the remote branch."""

    def __init__(
        self,
        handler: LockHandler,
        retry_delay: float,
        *,
        max_unexpected_errors: int = MAX_UNEXPECTED_ERRORS,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.handler = handler
        self.retry_delay = retry_delay
        self.max_unexpected_errors = max(1, max_unexpected_errors)
        self.sleep = sleep
        self.logger = logger or logging.getLogger(__name__)
        self.state = ExecutorState.SETUP
        self.stats = ExecutionStats()

    def run(self, action: LockPoolAction) -> ExecutionStats:
        """Drive ``action`` to completion; raises on any fatal failure."""
        self.state = ExecutorState.SETUP
        self.stats = ExecutionStats()
        try:
            while self.state is not ExecutorState.DONE:
                self.state = self._step(action)
        except BaseException:
            self.state = ExecutorState.FATAL
            raise
        finally:
            self.handler.teardown()
        return self.stats

    def _step(self, action: LockPoolAction) -> ExecutorState:
        if self.state is ExecutorState.SETUP:
            self.handler.setup()
            return ExecutorState.ATTEMPT

        if self.state is ExecutorState.ATTEMPT:
            self.handler.reset_lock()
            self.stats.attempts += 1
            if action.run():
                self.stats.waits += 1
                return ExecutorState.RETRY
            return ExecutorState.PUSH

        if self.state is ExecutorState.PUSH:
            return self._push()

        if self.state is ExecutorState.RETRY:
            self.sleep(self.retry_delay)
            return ExecutorState.ATTEMPT

        raise RuntimeError(f"executor cannot step from state {self.state.value}")

    def _push(self) -> ExecutorState:
        result = self.handler.broadcast_lock_pool()

        if result.outcome is PushOutcome.ACCEPTED:
            return ExecutorState.DONE

        if result.outcome is PushOutcome.CONFLICT:
            self.stats.conflicts += 1
            self.logger.info("lock pool changed underneath us; retrying")
            return ExecutorState.RETRY

        self.stats.unexpected_errors += 1
        self.stats.last_push_output = result.output
        self.logger.warning(
            f"failed to broadcast the change to lock state! "
            f"({self.stats.unexpected_errors}/{self.max_unexpected_errors})\ngit-output: {result.output}"
        )
        if self.stats.unexpected_errors >= self.max_unexpected_errors:
            raise TooManyUnexpectedErrorsError(self.stats.unexpected_errors, result.output)
        return ExecutorState.RETRY
