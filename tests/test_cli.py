"""End-to-end tests for the check, in and out commands."""

from __future__ import annotations

import io
import json
import logging

import pytest

from pool_resource.cli import main as cli_main
from pool_resource.core.colors import ConsoleColors


def run_command(argv, payload, *, command=None):
    stdout = io.StringIO()
    stdin = io.StringIO(payload if isinstance(payload, str) else json.dumps(payload))
    exit_code = cli_main.main(argv, command=command, stdin=stdin, stdout=stdout)
    return exit_code, stdout.getvalue()


@pytest.fixture(autouse=True)
def plain_console(monkeypatch):
    monkeypatch.setattr(ConsoleColors, "_enabled", False)
    monkeypatch.setattr(cli_main, "load_dotenv", lambda: False)


@pytest.fixture(autouse=True)
def restore_root_logging():
    """main() reconfigures the root logger; put pytest's handlers back afterwards."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def source_payload(pool_remote):
    return {"uri": pool_remote.uri, "branch": "master", "pool": "pool", "retry_delay": "0s"}


class TestParser:
    def test_subcommands(self):
        parser = cli_main.create_parser()

        assert parser.parse_args(["out", "/tmp/src"]).command == "out"
        assert parser.parse_args(["in", "/tmp/dest"]).directory == "/tmp/dest"
        assert parser.parse_args(["check"]).command == "check"

    def test_single_command_parser(self):
        args = cli_main.create_parser(prog="pool-resource-out", command="out").parse_args(["/tmp/src"])

        assert args.command == "out"
        assert args.directory == "/tmp/src"

    def test_log_options(self):
        args = cli_main.create_parser().parse_args(["--log-level", "DEBUG", "--log-format", "json", "check"])

        assert args.log_level == "DEBUG"
        assert args.log_format == "json"


class TestOut:
    def test_acquire(self, tmp_path, source_payload, pool_remote):
        exit_code, output = run_command(
            ["out", str(tmp_path)], {"source": source_payload, "params": {"acquire": True}}
        )

        response = json.loads(output)
        assert exit_code == 0
        assert response["version"] == {"ref": pool_remote.head()}
        lock_name = response["metadata"][0]["value"]
        assert response["metadata"] == [
            {"name": "lock_name", "value": lock_name},
            {"name": "pool_name", "value": "pool"},
        ]
        assert pool_remote.files("pool/claimed") == [lock_name]

    def test_release_resolves_descriptor_relative_to_source_dir(self, tmp_path, source_payload, pool_remote):
        run_command(["out", str(tmp_path)], {"source": source_payload, "params": {"claim": "b"}})
        (tmp_path / "my-lock").mkdir()
        (tmp_path / "my-lock" / "name").write_text("b\n")

        exit_code, output = run_command(
            ["out", str(tmp_path)], {"source": source_payload, "params": {"release": "my-lock"}}
        )

        assert exit_code == 0
        assert json.loads(output)["metadata"][0] == {"name": "lock_name", "value": "b"}
        assert pool_remote.files("pool/claimed") == []

    def test_acquire_takes_precedence(self, tmp_path, source_payload, pool_remote):
        payload = {"source": source_payload, "params": {"acquire": True, "remove": "missing-dir"}}

        exit_code, _ = run_command(["out", str(tmp_path)], payload)

        assert exit_code == 0
        assert len(pool_remote.files("pool/claimed")) == 1

    def test_skip_trigger_marks_commit(self, tmp_path, source_payload, pool_remote):
        payload = {"source": source_payload, "params": {"claim": "a", "skip_trigger": True}}

        run_command(["out", str(tmp_path)], payload)

        assert pool_remote.subjects()[0] == "claiming: a [ci skip]"

    def test_build_identity_prefix(self, tmp_path, source_payload, pool_remote, monkeypatch):
        monkeypatch.setenv("BUILD_ID", "42")

        run_command(["out", str(tmp_path)], {"source": source_payload, "params": {"claim": "a"}})

        assert pool_remote.subjects()[0] == "one-off build 42 claiming: a"

    def test_missing_fields_are_reported_together(self, tmp_path, capsys):
        with pytest.raises(SystemExit) as exc_info:
            run_command(["out", str(tmp_path)], {"source": {}, "params": {}})

        assert exc_info.value.code == 1
        err = capsys.readouterr().err
        assert "ERROR: Error running out" in err
        assert "invalid payload (missing uri)" in err
        assert "invalid payload (missing pool)" in err
        assert "invalid payload (missing branch)" in err
        assert "invalid payload (missing acquire, release, remove, claim, add, add_claimed, or update)" in err

    def test_missing_descriptor_exits_with_error(self, tmp_path, source_payload, capsys):
        with pytest.raises(SystemExit):
            run_command(["out", str(tmp_path)], {"source": source_payload, "params": {"release": "nope"}})

        assert "could not read the name file of your lock" in capsys.readouterr().err

    def test_invalid_json(self, tmp_path, capsys):
        with pytest.raises(SystemExit):
            run_command(["out", str(tmp_path)], "{not json")

        assert "invalid request payload" in capsys.readouterr().err

    def test_per_command_entry_point(self, tmp_path, source_payload, pool_remote):
        exit_code, output = run_command(
            [str(tmp_path)], {"source": source_payload, "params": {"claim": "a"}}, command="out"
        )

        assert exit_code == 0
        assert json.loads(output)["version"]["ref"] == pool_remote.head()


class TestCheckAndIn:
    def test_check_then_in(self, tmp_path, source_payload, pool_remote):
        _, out_output = run_command(["out", str(tmp_path)], {"source": source_payload, "params": {"claim": "a"}})
        version = json.loads(out_output)["version"]

        _, check_output = run_command(["check"], {"source": source_payload})
        assert json.loads(check_output) == [version]

        destination = tmp_path / "dest"
        exit_code, in_output = run_command(["in", str(destination)], {"source": source_payload, "version": version})

        assert exit_code == 0
        assert json.loads(in_output) == {
            "version": version,
            "metadata": [{"name": "lock_name", "value": "a"}, {"name": "pool_name", "value": "pool"}],
        }
        assert (destination / "name").read_text() == "a"
        assert (destination / "metadata").read_bytes() == b"lock a metadata\n"

    def test_check_with_previous_version(self, tmp_path, source_payload, pool_remote):
        first = pool_remote.head()
        run_command(["out", str(tmp_path)], {"source": source_payload, "params": {"claim": "a"}})

        _, output = run_command(["check"], {"source": source_payload, "version": {"ref": first}})

        assert json.loads(output) == [{"ref": first}, {"ref": pool_remote.head()}]

    def test_in_requires_version(self, tmp_path, source_payload, capsys):
        with pytest.raises(SystemExit):
            run_command(["in", str(tmp_path)], {"source": source_payload})

        assert "invalid payload (missing version)" in capsys.readouterr().err

    def test_in_destination_that_is_a_file(self, tmp_path, source_payload, pool_remote, capsys):
        run_command(["out", str(tmp_path)], {"source": source_payload, "params": {"claim": "a"}})
        destination = tmp_path / "dest"
        destination.write_text("taken")

        with pytest.raises(SystemExit) as exc_info:
            run_command(["in", str(destination)], {"source": source_payload, "version": {"ref": pool_remote.head()}})

        assert exc_info.value.code == 1
        assert "ERROR: Error running in: could not write the lock into the destination" in capsys.readouterr().err
