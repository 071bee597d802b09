"""Lock pool coordinator.

Public lock operations. Each one reads whatever descriptor files it needs,
then hands a single action to the RobustActionExecutor and returns the
lock name together with the version its mutation produced.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from pathlib import Path

from pool_resource.core.config import RetryConfig, Source
from pool_resource.core.constants import METADATA_FILE, NAME_FILE
from pool_resource.core.exceptions import DescriptorError
from pool_resource.core.logging import with_log_context
from pool_resource.locks.actions import (
    AddLockAction,
    ClaimLockAction,
    GrabAvailableLockAction,
    LockPoolAction,
    RemoveLockAction,
    UnclaimLockAction,
    UpdateLockAction,
)
from pool_resource.locks.executor import ExecutionStats, RobustActionExecutor
from pool_resource.locks.handler import GitLockHandler, LockHandler
from pool_resource.locks.models import Version


def read_lock_name(descriptor_dir: str | Path) -> str:
    """Read and trim the ``name`` file of a lock descriptor directory."""
    path = Path(descriptor_dir) / NAME_FILE
    try:
        lock_name = path.read_text(encoding="utf-8").strip()
    except OSError as e:
        raise DescriptorError("could not read the name file of your lock", path=str(path), details=str(e)) from e
    if not lock_name:
        raise DescriptorError("the name file of your lock is empty", path=str(path))
    return lock_name


def read_lock_metadata(descriptor_dir: str | Path) -> bytes:
    """Read the raw ``metadata`` file of a lock descriptor directory."""
    path = Path(descriptor_dir) / METADATA_FILE
    try:
        return path.read_bytes()
    except OSError as e:
        raise DescriptorError("could not read the metadata file of your lock", path=str(path), details=str(e)) from e


class LockPool:
    """Coordinates lock operations on one pool.

    The retry policy defaults to the source retry delay with the standard
    limit on unexpected push failures.
    """

    def __init__(
        self,
        source: Source,
        *,
        handler: LockHandler | None = None,
        skip_trigger: bool = False,
        retry: RetryConfig | None = None,
        sleep: Callable[[float], None] = time.sleep,
        logger: logging.Logger | None = None,
    ):
        self.source = source
        base_logger = logger or logging.getLogger(__name__)
        self.logger = with_log_context(base_logger, pool=source.pool)
        self.handler = handler or GitLockHandler(source, skip_trigger=skip_trigger, logger=base_logger)
        self.retry = retry if retry is not None else source.retry
        self.sleep = sleep
        self.last_stats: ExecutionStats | None = None

    def acquire_lock(self) -> tuple[str, Version]:
        self.logger.info(f"acquiring lock on: {self.source.pool}")
        action = GrabAvailableLockAction(self.handler, self.source.pool, self.logger)
        return self._perform(action)

    def claim_lock(self, lock_name: str) -> tuple[str, Version]:
        self.logger.info(f"claiming lock: {lock_name} on pool: {self.source.pool}")
        action = ClaimLockAction(self.handler, lock_name, self._lock_logger(lock_name))
        return self._perform(action)

    def release_lock(self, descriptor_dir: str | Path) -> tuple[str, Version]:
        lock_name = read_lock_name(descriptor_dir)
        self.logger.info(f"releasing lock: {lock_name} on pool: {self.source.pool}")
        action = UnclaimLockAction(self.handler, lock_name, self._lock_logger(lock_name))
        return self._perform(action)

    def add_unclaimed_lock(self, descriptor_dir: str | Path) -> tuple[str, Version]:
        return self._add_lock(descriptor_dir, claimed=False)

    def add_claimed_lock(self, descriptor_dir: str | Path) -> tuple[str, Version]:
        return self._add_lock(descriptor_dir, claimed=True)

    def remove_lock(self, descriptor_dir: str | Path) -> tuple[str, Version]:
        lock_name = read_lock_name(descriptor_dir)
        self.logger.info(f"removing lock: {lock_name} on pool: {self.source.pool}")
        action = RemoveLockAction(self.handler, lock_name, self._lock_logger(lock_name))
        return self._perform(action)

    def update_lock(self, descriptor_dir: str | Path) -> tuple[str, Version]:
        lock_name = read_lock_name(descriptor_dir)
        contents = read_lock_metadata(descriptor_dir)
        self.logger.info(f"updating lock: {lock_name} on pool: {self.source.pool}")
        action = UpdateLockAction(self.handler, lock_name, contents, self._lock_logger(lock_name))
        return self._perform(action)

    def _add_lock(self, descriptor_dir: str | Path, claimed: bool) -> tuple[str, Version]:
        lock_name = read_lock_name(descriptor_dir)
        contents = read_lock_metadata(descriptor_dir)
        state = "claimed" if claimed else "unclaimed"
        self.logger.info(f"adding {state} lock: {lock_name} to pool: {self.source.pool}")
        action = AddLockAction(self.handler, lock_name, contents, self._lock_logger(lock_name), claimed=claimed)
        return self._perform(action)

    def _perform(self, action: LockPoolAction) -> tuple[str, Version]:
        executor = RobustActionExecutor(
            self.handler,
            self.retry.retry_delay,
            max_unexpected_errors=self.retry.max_unexpected_errors,
            sleep=self.sleep,
            logger=self.logger,
        )
        self.last_stats = executor.run(action)
        return action.lock_name, Version(ref=action.ref.strip())

    def _lock_logger(self, lock_name: str):
        return with_log_context(self.logger, lock=lock_name)
