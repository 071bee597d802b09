"""Pool version enumeration."""

from pool_resource.versions.enumerator import VersionEnumerator

__all__ = ["VersionEnumerator"]
