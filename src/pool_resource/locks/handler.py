"""Lock state mutations against a pool's working clone.

Each mutation assumes a freshly reset clone, changes the pool directory
locally and commits exactly once. Pushing is left to the caller so a
rejected push can be retried from a clean reset.
"""

from __future__ import annotations

import logging
import random
from pathlib import Path
from typing import Protocol

from pool_resource.core.config import Source
from pool_resource.core.constants import CLAIMED_DIR, UNCLAIMED_DIR
from pool_resource.core.exceptions import NoLocksAvailableError
from pool_resource.core.identity import BuildIdentity
from pool_resource.store.cas import PushResult
from pool_resource.store.git import GitRepository


class LockHandler(Protocol):
    """Pool-aware operations used by the lock pool and its actions."""

    def setup(self) -> None:
        """Create the working clone."""

    def reset_lock(self) -> None:
        """Synchronize the working clone with the remote branch."""

    def broadcast_lock_pool(self) -> PushResult:
        """Push the local commit to the remote branch."""

    def teardown(self) -> None:
        """Discard the working clone."""

    def grab_available_lock(self) -> tuple[str, str]:
        """Claim any unclaimed lock. Returns (lock name, ref)."""

    def claim_lock(self, lock_name: str) -> str:
        """Claim a specific unclaimed lock. Returns the ref."""

    def unclaim_lock(self, lock_name: str) -> str:
        """Move a claimed lock back to unclaimed. Returns the ref."""

    def add_lock(self, lock_name: str, contents: bytes, claimed: bool = False) -> str:
        """Add a new lock in the requested state. Returns the ref."""

    def remove_lock(self, lock_name: str) -> str:
        """Delete a claimed lock. Returns the ref."""

    def update_lock(self, lock_name: str, contents: bytes) -> str:
        """Replace (or create) an unclaimed lock. Returns the ref."""


class GitLockHandler:
    """LockHandler backed by a git working clone."""

    def __init__(
        self,
        source: Source,
        *,
        identity: BuildIdentity | None = None,
        skip_trigger: bool = False,
        rng: random.Random | None = None,
        repository: GitRepository | None = None,
        logger: logging.Logger | None = None,
    ):
        self.source = source
        self.identity = identity if identity is not None else BuildIdentity.from_environment()
        self.skip_trigger = skip_trigger
        self.rng = rng or random.Random()
        self.logger = logger or logging.getLogger(__name__)
        self.repository = repository or GitRepository(
            source.uri,
            source.branch,
            private_key=source.private_key,
            git_config=source.git_config,
            logger=self.logger,
        )

    # ------------------------------------------------------------------ lifecycle

    def setup(self) -> None:
        self.repository.clone()

    def reset_lock(self) -> None:
        self.repository.reset_to_remote()

    def broadcast_lock_pool(self) -> PushResult:
        return self.repository.push()

    def teardown(self) -> None:
        self.repository.cleanup()

    # ------------------------------------------------------------------ mutations

    def grab_available_lock(self) -> tuple[str, str]:
        available = self.repository.list_dir(self._state_dir(claimed=False))
        if not available:
            raise NoLocksAvailableError(pool=self.source.pool)

        lock_name = self.rng.choice(available)
        self.repository.move(self._lock_path(lock_name, claimed=False), self._lock_path(lock_name, claimed=True))
        return lock_name, self._commit("claiming", lock_name)

    def claim_lock(self, lock_name: str) -> str:
        if not self.repository.exists(self._lock_path(lock_name, claimed=False)):
            raise NoLocksAvailableError(f"lock {lock_name} is not available to claim", pool=self.source.pool)

        self.repository.move(self._lock_path(lock_name, claimed=False), self._lock_path(lock_name, claimed=True))
        return self._commit("claiming", lock_name)

    def unclaim_lock(self, lock_name: str) -> str:
        self.repository.move(self._lock_path(lock_name, claimed=True), self._lock_path(lock_name, claimed=False))
        return self._commit("unclaiming", lock_name)

    def add_lock(self, lock_name: str, contents: bytes, claimed: bool = False) -> str:
        lock_path = self._lock_path(lock_name, claimed=claimed)
        self.repository.write_file(lock_path, contents)
        self.repository.add(lock_path)
        return self._commit("adding claimed" if claimed else "adding unclaimed", lock_name)

    def remove_lock(self, lock_name: str) -> str:
        self.repository.remove(self._lock_path(lock_name, claimed=True))
        return self._commit("removing", lock_name)

    def update_lock(self, lock_name: str, contents: bytes) -> str:
        # An update must never race a claimant; wait until the lock is released.
        if self.repository.exists(self._lock_path(lock_name, claimed=True)):
            raise NoLocksAvailableError(f"lock {lock_name} is currently claimed", pool=self.source.pool)

        lock_path = self._lock_path(lock_name, claimed=False)
        existed = self.repository.exists(lock_path)
        if existed:
            self.repository.remove(lock_path)

        self.repository.write_file(lock_path, contents)
        self.repository.add(lock_path)
        return self._commit("updating" if existed else "adding unclaimed", lock_name)

    # ------------------------------------------------------------------ helpers

    def _state_dir(self, claimed: bool) -> Path:
        return Path(self.source.pool) / (CLAIMED_DIR if claimed else UNCLAIMED_DIR)

    def _lock_path(self, lock_name: str, claimed: bool) -> Path:
        return self._state_dir(claimed) / lock_name

    def _commit(self, verb: str, lock_name: str) -> str:
        message = self.identity.commit_message(verb, lock_name, skip_trigger=self.skip_trigger)
        return self.repository.commit(message)
