"""Build identity used to decorate lock commit messages."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass

from pool_resource.core.constants import SKIP_TRIGGER_MARKER


@dataclass(frozen=True)
class BuildIdentity:
    """Identifiers of the build performing a lock operation.

    All fields are optional; missing ones simply drop out of the prefix.
    """

    build_id: str = ""
    build_name: str = ""
    job_name: str = ""
    pipeline_name: str = ""
    team_name: str = ""

    @classmethod
    def from_environment(cls, environ: Mapping[str, str] | None = None) -> BuildIdentity:
        env = os.environ if environ is None else environ
        return cls(
            build_id=env.get("BUILD_ID", ""),
            build_name=env.get("BUILD_NAME", ""),
            job_name=env.get("BUILD_JOB_NAME", ""),
            pipeline_name=env.get("BUILD_PIPELINE_NAME", ""),
            team_name=env.get("BUILD_TEAM_NAME", ""),
        )

    def commit_prefix(self) -> str:
        """Return the prefix for commit messages, including a trailing space."""
        if self.pipeline_name and self.job_name and self.build_name:
            pipeline = f"{self.team_name}/{self.pipeline_name}" if self.team_name else self.pipeline_name
            return f"{pipeline}/{self.job_name} build {self.build_name} "
        if self.build_id:
            return f"one-off build {self.build_id} "
        return ""

    def commit_message(self, verb: str, lock_name: str, skip_trigger: bool = False) -> str:
        """Build ``<prefix><verb>: <lock>`` with an optional trigger-suppression marker."""
        message = f"{self.commit_prefix()}{verb}: {lock_name}"
        if skip_trigger:
            message = f"{message} {SKIP_TRIGGER_MARKER}"
        return message
