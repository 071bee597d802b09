"""Resource step models and the ``in`` materializer."""

from pool_resource.resource.fetch import LockFetcher, parse_lock_commit
from pool_resource.resource.models import (
    CheckRequest,
    InRequest,
    LockResponse,
    MetadataPair,
    OutRequest,
)

__all__ = [
    "CheckRequest",
    "InRequest",
    "LockFetcher",
    "LockResponse",
    "MetadataPair",
    "OutRequest",
    "parse_lock_commit",
]
