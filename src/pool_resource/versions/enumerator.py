"""Version enumeration for the ``check`` step.

A version of a pool is a commit at which the pool's subtree changed. Commits
that only touch other pools (or other files) sharing the branch are skipped.
"""

from __future__ import annotations

import logging

from pool_resource.core.config import Source
from pool_resource.locks.models import Version
from pool_resource.store.git import GitRepository


class VersionEnumerator:
    """Lists the commits at which one pool's directory changed.

    Subtree object ids are memoized per commit, so repeated calls against the
    same clone only look up commits they have not seen yet.
    """

    def __init__(
        self,
        source: Source,
        *,
        repository: GitRepository | None = None,
        logger: logging.Logger | None = None,
    ):
        self.source = source
        self.logger = logger or logging.getLogger(__name__)
        self.repository = repository or GitRepository(
            source.uri,
            source.branch,
            private_key=source.private_key,
            git_config=source.git_config,
            bare=True,
            logger=self.logger,
        )
        self._subtrees: dict[str, str | None] = {}

    def check(self, previous: Version | None = None) -> list[Version]:
        """Clone the branch, enumerate versions and clean up."""
        self.repository.clone()
        try:
            return self.versions_since(previous)
        finally:
            self.repository.cleanup()
            self._subtrees.clear()

    def versions_since(self, previous: Version | None = None) -> list[Version]:
        """Versions after ``previous`` (inclusive), oldest first.

        Without a usable previous version only the newest version is returned.
        """
        boundaries = self.boundaries()
        if not boundaries:
            self.logger.info(f"pool {self.source.pool} has no history on {self.source.branch}")
            return []

        if previous is not None:
            resolved = self.repository.resolve(previous.ref) or previous.ref
            if resolved in boundaries:
                start = boundaries.index(resolved)
                return [Version(ref=ref) for ref in boundaries[start:]]
            self.logger.info(f"version {previous.ref} is not a version of pool {self.source.pool}; starting over")

        return [Version(ref=boundaries[-1])]

    def boundaries(self) -> list[str]:
        """Commit ids at which the pool subtree changed, oldest first."""
        commits = self.repository.ancestry("HEAD")
        self._load_subtrees([commit for commit, _ in commits])

        result = []
        for commit, parents in commits:
            subtree = self._subtrees[commit]
            if not parents:
                if subtree is not None:
                    result.append(commit)
            elif any(self._subtrees[parent] != subtree for parent in parents):
                result.append(commit)
        return result

    def _load_subtrees(self, commits: list[str]) -> None:
        pending = [commit for commit in commits if commit not in self._subtrees]
        if not pending:
            return
        pool = self.source.pool.strip("/")
        ids = self.repository.object_ids([f"{commit}:{pool}" for commit in pending])
        self._subtrees.update(zip(pending, ids))
