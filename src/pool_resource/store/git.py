"""Git-backed working clone of a pool repository.

Every lock operation owns one GitRepository: a disposable clone in a
temporary directory that is hard-reset to the remote before each attempt
and removed when the operation finishes.
"""

from __future__ import annotations

import logging
import os
import shutil
import stat
import subprocess
import tempfile
from collections.abc import Iterable
from pathlib import Path

from pool_resource.core.config import GitConfigEntry
from pool_resource.core.constants import (
    COMMIT_USER_EMAIL,
    COMMIT_USER_NAME,
    GIT_LOCAL_TIMEOUT,
    GIT_NETWORK_TIMEOUT,
)
from pool_resource.core.exceptions import StoreError, StoreSetupError
from pool_resource.store.cas import PushResult, classify_push


def git_environment(key_file: Path | None = None) -> dict[str, str]:
    """Environment for git subprocesses: never prompt, optionally use an SSH key."""
    env = dict(os.environ)
    env["GIT_TERMINAL_PROMPT"] = "0"
    if key_file is not None:
        env["GIT_SSH_COMMAND"] = f"ssh -i {key_file} -o StrictHostKeyChecking=no -o IdentitiesOnly=yes"
    return env


def write_private_key(private_key: str) -> Path:
    """Persist an SSH private key to a 0600 temporary file."""
    fd, name = tempfile.mkstemp(prefix="pool-resource-key-")
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(private_key if private_key.endswith("\n") else private_key + "\n")
    os.chmod(name, stat.S_IRUSR | stat.S_IWUSR)
    return Path(name)


class GitRepository:
    """Working clone of one branch of a pool repository.

    Implements the VersionedStore protocol: ``push`` is a compare-and-swap
    of the remote branch ref from the position observed at the last reset
    to the local HEAD.
    """

    def __init__(
        self,
        uri: str,
        branch: str,
        *,
        private_key: str | None = None,
        git_config: Iterable[GitConfigEntry] = (),
        bare: bool = False,
        logger: logging.Logger | None = None,
    ):
        self.uri = uri
        self.branch = branch
        self.private_key = private_key
        self.git_config = list(git_config)
        self.bare = bare
        self.logger = logger or logging.getLogger(__name__)

        self.dir: Path | None = None
        self._key_file: Path | None = None
        self._base: str | None = None

    # ------------------------------------------------------------------ lifecycle

    def clone(self) -> Path:
        """Clone the branch into a fresh temporary directory."""
        self.cleanup()
        if self.private_key:
            self._key_file = write_private_key(self.private_key)

        self.dir = Path(tempfile.mkdtemp(prefix="pool-resource-"))
        command = ["git", "clone", "--branch", self.branch]
        if self.bare:
            command.append("--bare")
        try:
            result = subprocess.run(
                [*command, self.uri, str(self.dir)],
                capture_output=True,
                text=True,
                timeout=GIT_NETWORK_TIMEOUT,
                env=git_environment(self._key_file),
            )
        except (subprocess.TimeoutExpired, FileNotFoundError) as e:
            raise StoreSetupError(f"could not clone {self.uri}", command="clone", output=str(e)) from e
        if result.returncode != 0:
            raise StoreSetupError(
                f"could not clone {self.uri}",
                command="clone",
                output=result.stderr,
                returncode=result.returncode,
            )

        try:
            self._git("config", "user.name", COMMIT_USER_NAME)
            self._git("config", "user.email", COMMIT_USER_EMAIL)
            for entry in self.git_config:
                self._git("config", entry.name, entry.value)
        except StoreError as e:
            raise StoreSetupError("could not configure working clone", command="config", output=e.output) from e

        self._base = self.current_position()
        self.logger.debug(f"Cloned {self.branch} into {self.dir} at {self._base}")
        return self.dir

    def reset_to_remote(self) -> str:
        """Fetch the branch and discard every local change; returns the remote tip."""
        self._git("fetch", "origin", self.branch, timeout=GIT_NETWORK_TIMEOUT)
        self._git("reset", "--hard", f"origin/{self.branch}")
        self._git("clean", "-fd")
        self._base = self.current_position()
        return self._base

    def cleanup(self) -> None:
        """Remove the working clone and any key material."""
        if self.dir is not None:
            shutil.rmtree(self.dir, ignore_errors=True)
            self.dir = None
        if self._key_file is not None:
            self._key_file.unlink(missing_ok=True)
            self._key_file = None
        self._base = None

    # ------------------------------------------------------------------ local mutations

    def path(self, relative: str | Path) -> Path:
        return self._require_dir() / relative

    def list_dir(self, relative: str | Path) -> list[str]:
        """Names of the non-hidden entries of a directory in the clone."""
        directory = self.path(relative)
        if not directory.is_dir():
            return []
        return sorted(entry.name for entry in directory.iterdir() if not entry.name.startswith("."))

    def exists(self, relative: str | Path) -> bool:
        return self.path(relative).exists()

    def move(self, src: str | Path, dst: str | Path) -> None:
        self._git("mv", str(src), str(dst))

    def add(self, relative: str | Path) -> None:
        self._git("add", str(relative))

    def remove(self, relative: str | Path) -> None:
        self._git("rm", str(relative))

    def write_file(self, relative: str | Path, contents: bytes) -> None:
        target = self.path(relative)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(contents)
        except OSError as e:
            raise StoreError(f"could not write {relative}", command="write", output=str(e)) from e

    def commit(self, message: str) -> str:
        """Commit everything staged and return the new HEAD.

        The commit is created even when the tree is unchanged, so every
        mutation advances the branch by exactly one commit.
        """
        self._git("commit", "--allow-empty", "-m", message)
        return self.current_position()

    # ------------------------------------------------------------------ positions

    def current_position(self) -> str:
        return self._git("rev-parse", "HEAD").stdout.strip()

    def compare_and_swap(self, expected_base: str, new_tip: str) -> PushResult:
        """Advance the remote branch from ``expected_base`` to ``new_tip``."""
        target = f"refs/heads/{self.branch}"
        result = self._git(
            "push",
            "--porcelain",
            f"--force-with-lease={target}:{expected_base}",
            "origin",
            f"{new_tip}:{target}",
            timeout=GIT_NETWORK_TIMEOUT,
            check=False,
        )
        return classify_push(result.returncode, result.stdout, result.stderr)

    def push(self) -> PushResult:
        """Push HEAD, expecting the remote to still be where the last reset found it."""
        if self._base is None:
            raise StoreError("cannot push before the working clone is synchronized", command="push")
        return self.compare_and_swap(self._base, "HEAD")

    # ------------------------------------------------------------------ history

    def resolve(self, rev: str) -> str | None:
        """Full commit id of ``rev``, or None when it is not a known commit."""
        result = self._git("rev-parse", "--verify", "--quiet", f"{rev}^{{commit}}", check=False)
        if result.returncode != 0:
            return None
        return result.stdout.strip()

    def ancestry(self, rev: str = "HEAD") -> list[tuple[str, list[str]]]:
        """Commits reachable from ``rev`` with their parents, oldest first."""
        output = self._git("rev-list", "--topo-order", "--reverse", "--parents", rev).stdout
        commits = []
        for line in output.splitlines():
            ids = line.split()
            if ids:
                commits.append((ids[0], ids[1:]))
        return commits

    def object_ids(self, specs: list[str]) -> list[str | None]:
        """Resolve ``<rev>:<path>`` specs in one batch; None marks a missing object."""
        if not specs:
            return []
        output = self._git("cat-file", "--batch-check", input_text="\n".join(specs) + "\n").stdout
        lines = output.splitlines()
        if len(lines) != len(specs):
            raise StoreError("unexpected cat-file output", command="cat-file", output=output)

        ids: list[str | None] = []
        for line in lines:
            ids.append(None if line.endswith(" missing") else line.split(" ", 1)[0])
        return ids

    def commit_message(self, rev: str) -> str:
        return self._git("log", "-1", "--format=%B", rev).stdout.strip()

    def messages_since(self, rev: str, path: str | Path) -> list[str]:
        """Subjects of the commits after ``rev`` on the branch that touch ``path``, oldest first."""
        output = self._git(
            "log", "--reverse", "--format=%s", f"{rev}..HEAD", "--", str(path)
        ).stdout
        return [line for line in output.splitlines() if line.strip()]

    def read_blob(self, rev: str, path: str | Path) -> bytes | None:
        """Raw contents of ``path`` at ``rev``, or None when it does not exist there."""
        directory = self._require_dir()
        try:
            result = subprocess.run(
                ["git", "-C", str(directory), "cat-file", "blob", f"{rev}:{Path(path).as_posix()}"],
                capture_output=True,
                timeout=GIT_LOCAL_TIMEOUT,
                env=git_environment(self._key_file),
            )
        except subprocess.TimeoutExpired as e:
            raise StoreError("git operation timed out", command="cat-file", output=str(e)) from e
        if result.returncode != 0:
            return None
        return result.stdout

    # ------------------------------------------------------------------ helpers

    def _require_dir(self) -> Path:
        if self.dir is None:
            raise StoreError("working clone has not been created")
        return self.dir

    def _git(
        self,
        *args: str,
        timeout: int = GIT_LOCAL_TIMEOUT,
        check: bool = True,
        input_text: str | None = None,
    ) -> subprocess.CompletedProcess:
        directory = self._require_dir()
        try:
            result = subprocess.run(
                ["git", "-C", str(directory), *args],
                input=input_text,
                capture_output=True,
                text=True,
                timeout=timeout,
                env=git_environment(self._key_file),
            )
        except subprocess.TimeoutExpired as e:
            raise StoreError("git operation timed out", command=args[0], output=str(e)) from e
        except FileNotFoundError as e:
            raise StoreError("git not found - ensure git is installed and in PATH", command=args[0]) from e

        if check and result.returncode != 0:
            self.logger.debug(f"git {args[0]} failed: {result.stderr.strip()}")
            raise StoreError(
                f"git {args[0]} failed",
                command=args[0],
                output="\n".join(part for part in (result.stdout.strip(), result.stderr.strip()) if part),
                returncode=result.returncode,
            )
        return result
