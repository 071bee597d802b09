"""Request and response models for the check, in and out steps."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pool_resource.core.config import OutParams, Source
from pool_resource.core.exceptions import ConfigurationError, RequestValidationError
from pool_resource.locks.models import Version

OUT_MISSING_OPERATION = "invalid payload (missing acquire, release, remove, claim, add, add_claimed, or update)"


def _require_object(payload: Any, name: str) -> dict[str, Any]:
    if payload is None:
        return {}
    if not isinstance(payload, dict):
        raise ConfigurationError(f"{name} must be a JSON object", field=name)
    return payload


def _validated_source(payload: dict[str, Any]) -> Source:
    source = Source.from_dict(_require_object(payload.get("source"), "source"))
    errors = source.validate()
    if errors:
        raise RequestValidationError(errors)
    return source


@dataclass
class MetadataPair:
    """One ``{"name", "value"}`` entry of a response's metadata list."""

    name: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"name": self.name, "value": self.value}


@dataclass
class CheckRequest:
    source: Source
    version: Version | None = None

    @classmethod
    def from_dict(cls, payload: Any) -> CheckRequest:
        payload = _require_object(payload, "request")
        return cls(source=_validated_source(payload), version=Version.from_dict(payload.get("version")))


@dataclass
class InRequest:
    source: Source
    version: Version

    @classmethod
    def from_dict(cls, payload: Any) -> InRequest:
        payload = _require_object(payload, "request")
        source = _validated_source(payload)
        version = Version.from_dict(payload.get("version"))
        if version is None:
            raise RequestValidationError(["invalid payload (missing version)"])
        return cls(source=source, version=version)


@dataclass
class OutRequest:
    """An out request: a source plus exactly one lock operation."""

    source: Source
    params: OutParams

    @classmethod
    def from_dict(cls, payload: Any) -> OutRequest:
        payload = _require_object(payload, "request")
        source = Source.from_dict(_require_object(payload.get("source"), "source"))
        params = OutParams.from_dict(_require_object(payload.get("params"), "params"))

        errors = source.validate()
        if not params.has_operation():
            errors.append(OUT_MISSING_OPERATION)
        if errors:
            raise RequestValidationError(errors)
        return cls(source=source, params=params)


@dataclass
class LockResponse:
    """Response of the in and out steps: the version plus lock metadata."""

    version: Version
    metadata: list[MetadataPair] = field(default_factory=list)

    @classmethod
    def for_lock(cls, version: Version, lock_name: str, pool: str) -> LockResponse:
        return cls(
            version=version,
            metadata=[MetadataPair("lock_name", lock_name), MetadataPair("pool_name", pool)],
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "version": self.version.to_dict(),
            "metadata": [pair.to_dict() for pair in self.metadata],
        }
