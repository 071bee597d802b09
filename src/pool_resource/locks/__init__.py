"""Lock pool subsystem.

Lock state mutations, the retry executor that makes them durable, and the
coordinator exposing the public lock operations.
"""

from pool_resource.locks.executor import ExecutionStats, ExecutorState, RobustActionExecutor
from pool_resource.locks.handler import GitLockHandler, LockHandler
from pool_resource.locks.models import Version
from pool_resource.locks.pool import LockPool, read_lock_metadata, read_lock_name

__all__ = [
    "ExecutionStats",
    "ExecutorState",
    "GitLockHandler",
    "LockHandler",
    "LockPool",
    "RobustActionExecutor",
    "Version",
    "read_lock_metadata",
    "read_lock_name",
]
