"""
Pool Resource - git-backed distributed lock pools

Each pool is a directory on a git branch holding ``unclaimed/`` and
``claimed/`` lock files; every lock operation is a single commit pushed
with optimistic concurrency.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pool_resource.core.version import __version__

__all__ = ["__version__", "LockPool", "main"]

if TYPE_CHECKING:
    from pool_resource.cli.main import main
    from pool_resource.locks.pool import LockPool


def __getattr__(name: str) -> Any:
    if name == "main":
        from pool_resource.cli.main import main

        return main
    if name == "LockPool":
        from pool_resource.locks.pool import LockPool

        return LockPool
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
