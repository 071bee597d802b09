"""Single-attempt lock pool actions.

An action performs one mutation against a freshly reset working clone.
``run()`` returns True when the attempt should be retried without pushing
(the pool is not in a state the action can use yet) and False when a
commit is ready to push. Errors that retrying cannot fix are raised.
"""

from __future__ import annotations

import logging
from typing import Protocol

from pool_resource.core.exceptions import NoLocksAvailableError, StoreError
from pool_resource.locks.handler import LockHandler


class LockPoolAction(Protocol):
    """One retryable unit of work for the executor."""

    lock_name: str
    ref: str

    def run(self) -> bool:
        """Attempt the mutation. Returns True to retry without pushing."""


class GrabAvailableLockAction:
    """Claim whichever unclaimed lock the handler picks."""

    def __init__(self, handler: LockHandler, pool: str, logger: logging.Logger | logging.LoggerAdapter):
        self.handler = handler
        self.pool = pool
        self.logger = logger
        self.lock_name = ""
        self.ref = ""

    def run(self) -> bool:
        try:
            self.lock_name, self.ref = self.handler.grab_available_lock()
        except NoLocksAvailableError:
            self.logger.info(f"no locks available in pool {self.pool}; waiting")
            return True
        except StoreError as e:
            self.logger.warning(f"failed to acquire lock on pool {self.pool}: {e}; retrying")
            return True
        return False


class ClaimLockAction:
    """Claim one specific lock, waiting while it is held elsewhere."""

    def __init__(self, handler: LockHandler, lock_name: str, logger: logging.Logger | logging.LoggerAdapter):
        self.handler = handler
        self.lock_name = lock_name
        self.logger = logger
        self.ref = ""

    def run(self) -> bool:
        try:
            self.ref = self.handler.claim_lock(self.lock_name)
        except NoLocksAvailableError:
            self.logger.info(f"lock {self.lock_name} is not available; waiting")
            return True
        except StoreError as e:
            self.logger.warning(f"failed to claim lock {self.lock_name}: {e}; retrying")
            return True
        return False


class UnclaimLockAction:
    """Release a claimed lock. A missing claim is fatal."""

    def __init__(self, handler: LockHandler, lock_name: str, logger: logging.Logger | logging.LoggerAdapter):
        self.handler = handler
        self.lock_name = lock_name
        self.logger = logger
        self.ref = ""

    def run(self) -> bool:
        try:
            self.ref = self.handler.unclaim_lock(self.lock_name)
        except StoreError as e:
            self.logger.error(f"failed to unclaim the lock {self.lock_name}: {e}")
            raise
        return False


class AddLockAction:
    """Add a new lock in the claimed or unclaimed state."""

    def __init__(
        self,
        handler: LockHandler,
        lock_name: str,
        contents: bytes,
        logger: logging.Logger | logging.LoggerAdapter,
        claimed: bool = False,
    ):
        self.handler = handler
        self.lock_name = lock_name
        self.contents = contents
        self.claimed = claimed
        self.logger = logger
        self.ref = ""

    def run(self) -> bool:
        try:
            self.ref = self.handler.add_lock(self.lock_name, self.contents, claimed=self.claimed)
        except StoreError as e:
            self.logger.error(f"failed to add the lock {self.lock_name}: {e}")
            raise
        return False


class RemoveLockAction:
    """Delete a claimed lock. A missing claim is fatal."""

    def __init__(self, handler: LockHandler, lock_name: str, logger: logging.Logger | logging.LoggerAdapter):
        self.handler = handler
        self.lock_name = lock_name
        self.logger = logger
        self.ref = ""

    def run(self) -> bool:
        try:
            self.ref = self.handler.remove_lock(self.lock_name)
        except StoreError as e:
            self.logger.error(f"failed to remove the lock {self.lock_name}: {e}")
            raise
        return False


class UpdateLockAction:
    """Replace a lock's contents once nobody holds it."""

    def __init__(
        self,
        handler: LockHandler,
        lock_name: str,
        contents: bytes,
        logger: logging.Logger | logging.LoggerAdapter,
    ):
        self.handler = handler
        self.lock_name = lock_name
        self.contents = contents
        self.logger = logger
        self.ref = ""

    def run(self) -> bool:
        try:
            self.ref = self.handler.update_lock(self.lock_name, self.contents)
        except NoLocksAvailableError:
            self.logger.info(f"lock {self.lock_name} is claimed; waiting to update it")
            return True
        except StoreError as e:
            self.logger.error(f"failed to update the lock {self.lock_name}: {e}")
            raise
        return False
