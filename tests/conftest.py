"""Pytest configuration and fixtures for pool-resource tests"""

from __future__ import annotations

import subprocess
from pathlib import Path

import pytest

from pool_resource.core.config import Source

TEST_USER = ["-c", "user.name=Pool Test", "-c", "user.email=pool-test@example.com"]


def run_git(*args: str, cwd: Path | None = None) -> str:
    """Run git and return stdout; fails the test on a non-zero exit."""
    result = subprocess.run(
        ["git", *TEST_USER, *args],
        cwd=str(cwd) if cwd else None,
        capture_output=True,
        text=True,
        timeout=60,
    )
    assert result.returncode == 0, f"git {' '.join(args)} failed: {result.stderr}"
    return result.stdout


class PoolRemote:
    """A bare remote plus a seeding clone used to shape pool history."""

    def __init__(self, root: Path, branch: str = "master"):
        self.branch = branch
        self.bare = root / "remote.git"
        self.work = root / "seed"
        run_git("init", "--bare", f"--initial-branch={branch}", str(self.bare))
        run_git("init", f"--initial-branch={branch}", str(self.work))
        run_git("remote", "add", "origin", str(self.bare), cwd=self.work)

    @property
    def uri(self) -> str:
        return str(self.bare)

    def commit(self, message: str, files: dict[str, bytes | None]) -> str:
        """Write (bytes) or delete (None) files, commit and push; returns the new tip."""
        if self.has_commits():
            run_git("fetch", "origin", self.branch, cwd=self.work)
            run_git("reset", "--hard", f"origin/{self.branch}", cwd=self.work)
        for relative, contents in files.items():
            path = self.work / relative
            if contents is None:
                run_git("rm", "-q", relative, cwd=self.work)
                continue
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_bytes(contents)
            run_git("add", relative, cwd=self.work)
        run_git("commit", "--allow-empty", "-q", "-m", message, cwd=self.work)
        run_git("push", "-q", "origin", f"HEAD:refs/heads/{self.branch}", cwd=self.work)
        return self.head()

    def has_commits(self) -> bool:
        result = subprocess.run(
            ["git", "--git-dir", str(self.bare), "rev-parse", "--verify", "--quiet", self.branch],
            capture_output=True,
            text=True,
        )
        return result.returncode == 0

    def head(self) -> str:
        return run_git("--git-dir", str(self.bare), "rev-parse", self.branch).strip()

    def files(self, directory: str) -> list[str]:
        """Non-hidden file names directly under ``directory`` on the branch tip."""
        output = run_git("--git-dir", str(self.bare), "ls-tree", "--name-only", f"{self.branch}:{directory}")
        return sorted(name for name in output.splitlines() if name and not name.startswith("."))

    def read(self, path: str, ref: str | None = None) -> bytes:
        result = subprocess.run(
            ["git", "--git-dir", str(self.bare), "cat-file", "blob", f"{ref or self.branch}:{path}"],
            capture_output=True,
        )
        assert result.returncode == 0, result.stderr
        return result.stdout

    def subjects(self) -> list[str]:
        """Commit subjects on the branch, newest first."""
        return run_git("--git-dir", str(self.bare), "log", "--format=%s", self.branch).splitlines()

    def last_author(self) -> str:
        return run_git("--git-dir", str(self.bare), "log", "-1", "--format=%an <%ae>", self.branch).strip()


@pytest.fixture(autouse=True)
def isolated_environment(tmp_path, monkeypatch):
    """Keep user git config and CI variables from leaking into tests."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    for name in (
        "BUILD_ID",
        "BUILD_NAME",
        "BUILD_JOB_NAME",
        "BUILD_PIPELINE_NAME",
        "BUILD_TEAM_NAME",
        "POOL_RETRY_DELAY",
        "POOL_LOG_DIR",
        "LOG_LEVEL",
        "LOG_FORMAT",
        "GIT_AUTHOR_NAME",
        "GIT_AUTHOR_EMAIL",
        "GIT_COMMITTER_NAME",
        "GIT_COMMITTER_EMAIL",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def pool_remote(tmp_path) -> PoolRemote:
    """Remote holding pool ``pool`` with unclaimed locks ``a`` and ``b``."""
    remote = PoolRemote(tmp_path / "remote")
    remote.commit(
        "initial pool",
        {
            "pool/unclaimed/.gitkeep": b"",
            "pool/claimed/.gitkeep": b"",
            "pool/unclaimed/a": b"lock a metadata\n",
            "pool/unclaimed/b": b"lock b metadata\n",
        },
    )
    return remote


@pytest.fixture
def source(pool_remote) -> Source:
    return Source(uri=pool_remote.uri, branch="master", pool="pool", retry_delay=0.0)


@pytest.fixture
def descriptor(tmp_path):
    """Factory for lock descriptor directories (``name`` plus optional ``metadata``)."""

    def _make(name: str, metadata: bytes | None = None, dirname: str | None = None) -> Path:
        directory = tmp_path / "descriptors" / (dirname or name)
        directory.mkdir(parents=True, exist_ok=True)
        (directory / "name").write_text(name + "\n", encoding="utf-8")
        if metadata is not None:
            (directory / "metadata").write_bytes(metadata)
        return directory

    return _make
