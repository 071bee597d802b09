"""Materialize a lock version into a directory for the ``in`` step."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pool_resource.core.config import Source
from pool_resource.core.constants import CLAIMED_DIR, METADATA_FILE, NAME_FILE, UNCLAIMED_DIR
from pool_resource.core.exceptions import LockNoLongerAcquiredError, PoolResourceError, StoreError
from pool_resource.core.logging import with_log_context
from pool_resource.locks.models import Version
from pool_resource.store.git import GitRepository

_LOCK_COMMIT = re.compile(
    r"(?:^|\s)(?P<verb>unclaiming|claiming|adding claimed|adding unclaimed|removing|updating):?\s+"
    r"(?P<name>.+?)(?:\s+\[ci skip\])?\s*$"
)

CLAIMING_VERBS = frozenset({"claiming", "adding claimed"})
RELEASING_VERBS = frozenset({"unclaiming", "removing", "claiming"})


def parse_lock_commit(message: str) -> tuple[str, str] | None:
    """Extract ``(verb, lock name)`` from a lock commit subject.

    The build identity prefix is skipped; the colon after the verb is optional.
    """
    subject = message.strip().splitlines()[0] if message.strip() else ""
    match = _LOCK_COMMIT.search(subject)
    if match is None:
        return None
    return match.group("verb"), match.group("name").strip()


class LockFetcher:
    """Writes the lock recorded at a version into a destination directory."""

    def __init__(
        self,
        source: Source,
        *,
        repository: GitRepository | None = None,
        logger: logging.Logger | None = None,
    ):
        self.source = source
        base_logger = logger or logging.getLogger(__name__)
        self.logger = with_log_context(base_logger, pool=source.pool)
        self.repository = repository or GitRepository(
            source.uri,
            source.branch,
            private_key=source.private_key,
            git_config=source.git_config,
            bare=True,
            logger=base_logger,
        )

    def fetch(self, version: Version, destination: str | Path) -> str:
        """Write ``name`` and ``metadata`` for ``version``; returns the lock name.

        Raises:
            LockNoLongerAcquiredError: The version claimed a lock that a later
                commit on the branch released or removed
            StoreError: The version does not exist on the branch
            PoolResourceError: The destination directory cannot be written
        """
        self.repository.clone()
        try:
            return self._fetch(version, Path(destination))
        finally:
            self.repository.cleanup()

    def _fetch(self, version: Version, destination: Path) -> str:
        ref = self.repository.resolve(version.ref)
        if ref is None:
            raise StoreError(f"version {version.ref} not found on branch {self.source.branch}", command="rev-parse")

        parsed = parse_lock_commit(self.repository.commit_message(ref))
        if parsed is None:
            raise PoolResourceError("could not determine the lock of this version", f"commit {ref}")
        verb, lock_name = parsed
        self.logger.info(f"fetching lock: {lock_name} at {ref} ({verb})")

        if verb in CLAIMING_VERBS:
            self._ensure_still_acquired(lock_name, ref)

        contents = self._lock_contents(ref, lock_name)
        if contents is None:
            self.logger.debug(f"lock {lock_name} has no file at {ref}; skipping metadata")

        try:
            destination.mkdir(parents=True, exist_ok=True)
            (destination / NAME_FILE).write_text(lock_name, encoding="utf-8")
            if contents is not None:
                (destination / METADATA_FILE).write_bytes(contents)
        except OSError as e:
            raise PoolResourceError("could not write the lock into the destination", f"{destination}: {e}") from e
        return lock_name

    def _ensure_still_acquired(self, lock_name: str, ref: str) -> None:
        for message in self.repository.messages_since(ref, self.source.pool):
            parsed = parse_lock_commit(message)
            if parsed is None:
                continue
            verb, name = parsed
            if name == lock_name and verb in RELEASING_VERBS:
                raise LockNoLongerAcquiredError(lock_name, ref)

    def _lock_contents(self, ref: str, lock_name: str) -> bytes | None:
        pool = Path(self.source.pool)
        for state_dir in (CLAIMED_DIR, UNCLAIMED_DIR):
            contents = self.repository.read_blob(ref, pool / state_dir / lock_name)
            if contents is not None:
                return contents
        return None
