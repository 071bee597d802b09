"""Configuration dataclasses for pool-resource.

These dataclasses centralize the source configuration shared by the
check, in and out commands so it can be built from a JSON request or
used directly in code and tests.
"""

from __future__ import annotations

import logging
import math
import os
import re
from dataclasses import dataclass, field
from typing import Any

from pool_resource.core.constants import DEFAULT_RETRY_DELAY, MAX_UNEXPECTED_ERRORS, RETRY_DELAY_ENV
from pool_resource.core.exceptions import ConfigurationError

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")
_DURATION_UNITS: dict[str, float] = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}


def parse_duration(value: Any) -> float:
    """Parse a retry delay into seconds.

    Accepts a JSON number (seconds) or a duration string such as ``"10s"``,
    ``"500ms"`` or ``"1m30s"``. A bare numeric string is read as seconds.

    Raises:
        ConfigurationError: If the value is negative, not finite or unparseable
    """
    if isinstance(value, bool):
        raise ConfigurationError("invalid retry_delay", field="retry_delay", details=repr(value))

    if isinstance(value, (int, float)):
        seconds = float(value)
    elif isinstance(value, str):
        text = value.strip()
        try:
            seconds = float(text)
        except ValueError:
            seconds = _parse_duration_string(text)
    else:
        raise ConfigurationError("invalid retry_delay", field="retry_delay", details=repr(value))

    if not math.isfinite(seconds) or seconds < 0:
        raise ConfigurationError("invalid retry_delay", field="retry_delay", details=repr(value))
    return seconds


def _parse_duration_string(text: str) -> float:
    if not text:
        raise ConfigurationError("invalid retry_delay", field="retry_delay", details="empty duration")

    position = 0
    total = 0.0
    while position < len(text):
        match = _DURATION_PART.match(text, position)
        if match is None:
            raise ConfigurationError("invalid retry_delay", field="retry_delay", details=repr(text))
        total += float(match.group(1)) * _DURATION_UNITS[match.group(2)]
        position = match.end()
    return total


@dataclass
class RetryConfig:
    """Configuration for the lock pool retry loop.

    Attributes:
        retry_delay: Fixed delay in seconds between attempts (default: 10.0)
        max_unexpected_errors: Unexpected push failures tolerated before
            giving up (default: 5)
    """

    retry_delay: float = DEFAULT_RETRY_DELAY
    max_unexpected_errors: int = MAX_UNEXPECTED_ERRORS


@dataclass
class GitConfigEntry:
    """A single ``git config`` name/value pair applied to working clones."""

    name: str
    value: str


@dataclass
class Source:
    """Where the pool lives and how to talk to it.

    Attributes:
        uri: Clone URI of the pool repository
        branch: Branch that holds the pool
        pool: Pool directory inside the branch
        private_key: Optional SSH private key used for git transport
        retry_delay: Seconds to wait between attempts
        git_config: Extra git config entries for the working clone
    """

    uri: str = ""
    branch: str = ""
    pool: str = ""
    private_key: str | None = None
    retry_delay: float = DEFAULT_RETRY_DELAY
    git_config: list[GitConfigEntry] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> Source:
        """Build a Source from the ``source`` object of a request."""
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError("source must be a JSON object", field="source")

        retry_delay = effective_retry_delay(data.get("retry_delay"))

        entries = []
        for raw in data.get("git_config") or []:
            if not isinstance(raw, dict) or not raw.get("name"):
                raise ConfigurationError("git_config entries need a name", field="git_config", details=repr(raw))
            entries.append(GitConfigEntry(name=str(raw["name"]), value=str(raw.get("value", ""))))

        return cls(
            uri=str(data.get("uri") or ""),
            branch=str(data.get("branch") or ""),
            pool=str(data.get("pool") or ""),
            private_key=data.get("private_key") or None,
            retry_delay=retry_delay,
            git_config=entries,
        )

    def validate(self) -> list[str]:
        """Return every missing-field message (empty when valid)."""
        errors = []
        if not self.uri:
            errors.append("invalid payload (missing uri)")
        if not self.pool:
            errors.append("invalid payload (missing pool)")
        if not self.branch:
            errors.append("invalid payload (missing branch)")
        return errors

    @property
    def retry(self) -> RetryConfig:
        return RetryConfig(retry_delay=self.retry_delay)


@dataclass
class OutParams:
    """Parameters of an out request; exactly one operation is performed."""

    acquire: bool = False
    claim: str = ""
    release: str = ""
    add: str = ""
    add_claimed: str = ""
    remove: str = ""
    update: str = ""
    skip_trigger: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> OutParams:
        data = data or {}
        if not isinstance(data, dict):
            raise ConfigurationError("params must be a JSON object", field="params")
        return cls(
            acquire=bool(data.get("acquire", False)),
            claim=str(data.get("claim") or ""),
            release=str(data.get("release") or ""),
            add=str(data.get("add") or ""),
            add_claimed=str(data.get("add_claimed") or ""),
            remove=str(data.get("remove") or ""),
            update=str(data.get("update") or ""),
            skip_trigger=bool(data.get("skip_trigger", False)),
        )

    def has_operation(self) -> bool:
        return bool(
            self.acquire or self.claim or self.release or self.add or self.add_claimed or self.remove or self.update
        )


def effective_retry_delay(requested: Any = None) -> float:
    """Return the retry delay, honoring the POOL_RETRY_DELAY override.

    An explicit request value wins; otherwise a valid environment override
    is used; otherwise the 10 second default. Invalid environment values
    are ignored with a warning, invalid request values are errors.
    """
    if requested is not None and requested != "":
        return parse_duration(requested)

    env_value = os.environ.get(RETRY_DELAY_ENV)
    if env_value:
        try:
            return parse_duration(env_value)
        except ConfigurationError:
            logging.getLogger(__name__).warning(
                f"Ignoring invalid {RETRY_DELAY_ENV}={env_value!r}; using default {DEFAULT_RETRY_DELAY}"
            )
    return DEFAULT_RETRY_DELAY
