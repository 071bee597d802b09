"""Remote store access for lock pools.

The shared branch ref is the only synchronization primitive; this package
wraps the git plumbing around it and classifies conditional updates.
"""

from pool_resource.store.cas import PushOutcome, PushResult, PushStatus, VersionedStore, classify_push
from pool_resource.store.git import GitRepository

__all__ = [
    "GitRepository",
    "PushOutcome",
    "PushResult",
    "PushStatus",
    "VersionedStore",
    "classify_push",
]
