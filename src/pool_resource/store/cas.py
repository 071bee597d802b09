"""Compare-and-swap semantics of the pool's shared branch ref.

The branch ref is the only shared mutable state of a pool. Every mutation
is a local commit followed by a conditional ref update (a push), whose
result is classified into one of three outcomes:

- ACCEPTED: the ref advanced exactly to our commit.
- CONFLICT: someone else moved the ref first (non-fast-forward), or the push
  was a no-op because an equivalent commit already landed. Both are expected
  optimistic-concurrency collisions.
- UNEXPECTED: anything else (auth, disk, network).
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

# <flag> TAB <from>:<to> TAB <summary>, as printed by `git push --porcelain`
_PORCELAIN_STATUS_LINE = re.compile(r"^(?P<flag>[ +\-*!=])\t(?P<refs>[^\t]*)\t(?P<summary>.*)$")

# Remote-side rejections caused by a concurrent ref update
_REMOTE_CONFLICT_REASONS = (
    "cannot lock ref",
    "failed to update ref",
    "incorrect old value",
    "stale info",
    "fetch first",
    "non-fast-forward",
)

# Fallback patterns for backends that print no porcelain status
_TEXT_CONFLICT_PATTERNS = (
    "everything up-to-date",
    "[rejected]",
    "[up to date]",
) + _REMOTE_CONFLICT_REASONS


class PushOutcome(Enum):
    """Result classes of a conditional ref update."""

    ACCEPTED = "accepted"
    CONFLICT = "conflict"
    UNEXPECTED = "unexpected"


@dataclass(frozen=True)
class PushStatus:
    """One ref status line from ``git push --porcelain``."""

    flag: str
    refs: str
    summary: str

    @property
    def rejected(self) -> bool:
        return self.flag == "!"

    @property
    def up_to_date(self) -> bool:
        return self.flag == "="


@dataclass(frozen=True)
class PushResult:
    """Classified outcome of a push plus the raw output git produced."""

    outcome: PushOutcome
    output: str = ""
    returncode: int | None = None

    @property
    def accepted(self) -> bool:
        return self.outcome is PushOutcome.ACCEPTED


def parse_porcelain(stdout: str) -> list[PushStatus]:
    """Extract ref status lines from porcelain push output."""
    statuses = []
    for line in stdout.splitlines():
        match = _PORCELAIN_STATUS_LINE.match(line)
        if match:
            statuses.append(PushStatus(match.group("flag"), match.group("refs"), match.group("summary")))
    return statuses


def _is_conflicting_rejection(status: PushStatus) -> bool:
    summary = status.summary.lower()
    if summary.startswith("[rejected]"):
        return True
    return any(reason in summary for reason in _REMOTE_CONFLICT_REASONS)


def classify_push(returncode: int, stdout: str, stderr: str) -> PushResult:
    """Classify a push into ACCEPTED, CONFLICT or UNEXPECTED.

    The structured porcelain status is authoritative when present; the
    diagnostic text is only matched when git printed no status line (for
    example when the transport failed before refs were negotiated).
    """
    output = "\n".join(part for part in (stdout.strip(), stderr.strip()) if part)
    statuses = parse_porcelain(stdout)

    if statuses:
        rejected = [status for status in statuses if status.rejected]
        if rejected:
            if all(_is_conflicting_rejection(status) for status in rejected):
                return PushResult(PushOutcome.CONFLICT, output, returncode)
            return PushResult(PushOutcome.UNEXPECTED, output, returncode)
        if all(status.up_to_date for status in statuses):
            # Nothing was pushed: an identical commit already advanced the ref.
            return PushResult(PushOutcome.CONFLICT, output, returncode)
        if returncode == 0:
            return PushResult(PushOutcome.ACCEPTED, output, returncode)
        return PushResult(PushOutcome.UNEXPECTED, output, returncode)

    lowered = output.lower()
    if any(pattern in lowered for pattern in _TEXT_CONFLICT_PATTERNS):
        return PushResult(PushOutcome.CONFLICT, output, returncode)
    if returncode == 0:
        return PushResult(PushOutcome.ACCEPTED, output, returncode)
    return PushResult(PushOutcome.UNEXPECTED, output, returncode)


class VersionedStore(Protocol):
    """Versioned storage with compare-and-swap semantics on a single ref.

    Implementations may be backed by any store offering atomic conditional
    updates, as long as they keep the three-way PushOutcome classification.
    """

    def current_position(self) -> str:
        """Return the position the local state is based on or has advanced to."""
        ...

    def compare_and_swap(self, expected_base: str, new_tip: str) -> PushResult:
        """Advance the shared ref from ``expected_base`` to ``new_tip``."""
        ...
