"""Tests for materializing lock versions (the in step)."""

from __future__ import annotations

import pytest

from pool_resource.core.exceptions import LockNoLongerAcquiredError, PoolResourceError, StoreError
from pool_resource.locks.models import Version
from pool_resource.locks.pool import LockPool
from pool_resource.resource.fetch import LockFetcher, parse_lock_commit


class TestParseLockCommit:
    @pytest.mark.parametrize(
        ("message", "expected"),
        [
            ("claiming: a", ("claiming", "a")),
            ("unclaiming: a", ("unclaiming", "a")),
            ("adding claimed: env-2", ("adding claimed", "env-2")),
            ("adding unclaimed: env-2 [ci skip]", ("adding unclaimed", "env-2")),
            ("infra/main/deploy build 12 removing: a", ("removing", "a")),
            ("one-off build 991 updating: a\n\nbody text", ("updating", "a")),
            ("claiming a", ("claiming", "a")),
        ],
    )
    def test_parses_verb_and_lock(self, message, expected):
        assert parse_lock_commit(message) == expected

    def test_unrelated_message(self):
        assert parse_lock_commit("initial pool") is None
        assert parse_lock_commit("") is None


class TestLockFetcher:
    def _pool(self, source):
        return LockPool(source, sleep=lambda _: None)

    def test_fetch_claimed_lock_writes_name_and_metadata(self, source, tmp_path):
        lock_name, version = self._pool(source).claim_lock("a")
        destination = tmp_path / "in"

        fetched = LockFetcher(source).fetch(version, destination)

        assert fetched == "a"
        assert (destination / "name").read_text() == "a"
        assert (destination / "metadata").read_bytes() == b"lock a metadata\n"

    def test_fetch_released_lock_reads_unclaimed_file(self, source, tmp_path, descriptor):
        self._pool(source).claim_lock("b")
        _, version = self._pool(source).release_lock(descriptor("b"))

        LockFetcher(source).fetch(version, tmp_path / "in")

        assert (tmp_path / "in" / "name").read_text() == "b"
        assert (tmp_path / "in" / "metadata").read_bytes() == b"lock b metadata\n"

    def test_removed_lock_has_no_metadata(self, source, tmp_path, descriptor):
        self._pool(source).claim_lock("b")
        _, version = self._pool(source).remove_lock(descriptor("b"))

        LockFetcher(source).fetch(version, tmp_path / "in")

        assert (tmp_path / "in" / "name").read_text() == "b"
        assert not (tmp_path / "in" / "metadata").exists()

    def test_claim_released_later_is_no_longer_acquired(self, source, tmp_path, descriptor):
        _, version = self._pool(source).claim_lock("a")
        self._pool(source).release_lock(descriptor("a"))

        with pytest.raises(LockNoLongerAcquiredError) as exc_info:
            LockFetcher(source).fetch(version, tmp_path / "in")

        assert exc_info.value.lock_name == "a"
        assert str(exc_info.value).startswith("lock instance is no longer acquired")

    def test_claim_removed_later_is_no_longer_acquired(self, source, tmp_path, descriptor):
        _, version = self._pool(source).add_claimed_lock(descriptor("c", metadata=b"c"))
        self._pool(source).remove_lock(descriptor("c"))

        with pytest.raises(LockNoLongerAcquiredError):
            LockFetcher(source).fetch(version, tmp_path / "in")

    def test_other_locks_changing_later_do_not_matter(self, source, tmp_path):
        _, version = self._pool(source).claim_lock("a")
        self._pool(source).claim_lock("b")

        assert LockFetcher(source).fetch(version, tmp_path / "in") == "a"

    def test_unknown_version(self, source, tmp_path):
        with pytest.raises(StoreError):
            LockFetcher(source).fetch(Version("f" * 40), tmp_path / "in")

    def test_unwritable_destination(self, source, tmp_path):
        _, version = self._pool(source).claim_lock("a")
        destination = tmp_path / "occupied"
        destination.write_text("not a directory")

        with pytest.raises(PoolResourceError) as exc_info:
            LockFetcher(source).fetch(version, destination)

        assert exc_info.value.message == "could not write the lock into the destination"
        assert str(destination) in exc_info.value.details
