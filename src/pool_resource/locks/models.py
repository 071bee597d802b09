"""Data models shared by the lock pool and the resource steps."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class Version:
    """A position in the pool's history (a commit reference)."""

    ref: str

    def to_dict(self) -> dict[str, Any]:
        return {"ref": self.ref}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Version | None:
        """Parse ``{"ref": ...}``; returns None when no ref is given."""
        if not isinstance(data, dict):
            return None
        ref = str(data.get("ref") or "").strip()
        return cls(ref=ref) if ref else None
