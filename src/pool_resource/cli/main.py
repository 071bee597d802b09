"""Command-line entry points for the check, in and out resource steps.

Every step reads one JSON request from stdin and writes one JSON response to
stdout. Diagnostics go to stderr.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from collections.abc import Callable
from pathlib import Path
from typing import IO, Any, NoReturn

import argcomplete
from dotenv import load_dotenv

from pool_resource.core.colors import ConsoleColors, _format_error_msg
from pool_resource.core.exceptions import PoolResourceError
from pool_resource.core.identity import BuildIdentity
from pool_resource.core.logging import setup_logging
from pool_resource.core.version import __version__
from pool_resource.locks.handler import GitLockHandler
from pool_resource.locks.models import Version
from pool_resource.locks.pool import LockPool
from pool_resource.resource.fetch import LockFetcher
from pool_resource.resource.models import CheckRequest, InRequest, LockResponse, OutRequest
from pool_resource.versions.enumerator import VersionEnumerator

COMMANDS = ("check", "in", "out")


def _exit_error(msg: str) -> NoReturn:
    """Print a coloured error message to stderr and exit with code 1."""
    print(ConsoleColors.error(f"ERROR: {msg}"), file=sys.stderr)
    sys.exit(1)


def create_parser(prog: str = "pool-resource", command: str | None = None) -> argparse.ArgumentParser:
    """Build the argument parser.

    With ``command`` set the parser accepts only that step's arguments, which
    is how the per-step console scripts are wired.
    """
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Git-backed lock pool resource: check, in and out steps",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Logging level (default: LOG_LEVEL environment variable or INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=["text", "json"],
        default=None,
        help="Log output format (default: LOG_FORMAT environment variable or text)",
    )
    parser.add_argument("--log-dir", default=None, help="Also write a rotating log file to this directory")
    parser.add_argument("--no-color", action="store_true", help="Disable ANSI color codes in stderr output")

    if command is not None:
        _add_step_arguments(parser, command)
        parser.set_defaults(command=command)
    else:
        subparsers = parser.add_subparsers(dest="command", metavar="{check,in,out}")
        subparsers.required = True
        for name, help_text in (
            ("check", "List new versions of the pool"),
            ("in", "Write the lock of a version into a directory"),
            ("out", "Acquire, claim, release, add, remove or update a lock"),
        ):
            _add_step_arguments(subparsers.add_parser(name, help=help_text), name)

    argcomplete.autocomplete(parser)
    return parser


def _add_step_arguments(parser: argparse.ArgumentParser, command: str) -> None:
    if command == "in":
        parser.add_argument("directory", help="Destination directory for the name and metadata files")
    elif command == "out":
        parser.add_argument("directory", help="Directory that lock descriptor paths are relative to")
    elif command == "check":
        # Resource runners may pass a working directory to check; it is unused.
        parser.add_argument("directory", nargs="?", help=argparse.SUPPRESS)


def read_request(stream: IO[str]) -> Any:
    """Decode the JSON request from ``stream``."""
    try:
        return json.load(stream)
    except json.JSONDecodeError as e:
        raise PoolResourceError("invalid request payload", f"not valid JSON ({e})") from e


def write_response(response: Any, stream: IO[str]) -> None:
    json.dump(response, stream)
    stream.write("\n")
    stream.flush()


def run_check(payload: Any, logger: logging.Logger | None = None) -> list[dict[str, str]]:
    request = CheckRequest.from_dict(payload)
    enumerator = VersionEnumerator(request.source, logger=logger)
    return [version.to_dict() for version in enumerator.check(request.version)]


def run_in(payload: Any, destination: str | Path, logger: logging.Logger | None = None) -> dict[str, Any]:
    request = InRequest.from_dict(payload)
    fetcher = LockFetcher(request.source, logger=logger)
    lock_name = fetcher.fetch(request.version, destination)
    return LockResponse.for_lock(request.version, lock_name, request.source.pool).to_dict()


def run_out(
    payload: Any,
    source_dir: str | Path,
    logger: logging.Logger | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> dict[str, Any]:
    """Perform exactly one lock operation and build the out response.

    When several operations are requested the first of acquire, claim,
    release, add, add_claimed, remove and update wins.
    """
    request = OutRequest.from_dict(payload)
    params = request.params
    source_dir = Path(source_dir)

    handler = GitLockHandler(
        request.source,
        identity=BuildIdentity.from_environment(),
        skip_trigger=params.skip_trigger,
        logger=logger,
    )
    pool = LockPool(request.source, handler=handler, sleep=sleep, logger=logger)

    if params.acquire:
        lock_name, version = pool.acquire_lock()
    elif params.claim:
        lock_name, version = pool.claim_lock(params.claim)
    elif params.release:
        lock_name, version = pool.release_lock(source_dir / params.release)
    elif params.add:
        lock_name, version = pool.add_unclaimed_lock(source_dir / params.add)
    elif params.add_claimed:
        lock_name, version = pool.add_claimed_lock(source_dir / params.add_claimed)
    elif params.remove:
        lock_name, version = pool.remove_lock(source_dir / params.remove)
    else:
        lock_name, version = pool.update_lock(source_dir / params.update)

    return LockResponse.for_lock(Version(ref=version.ref), lock_name, request.source.pool).to_dict()


def main(
    argv: list[str] | None = None,
    *,
    command: str | None = None,
    prog: str = "pool-resource",
    stdin: IO[str] | None = None,
    stdout: IO[str] | None = None,
) -> int:
    load_dotenv()

    parser = create_parser(prog=prog, command=command)
    args = parser.parse_args(argv)
    ConsoleColors.configure(no_color=args.no_color)
    logger = setup_logging(log_level=args.log_level, log_format=args.log_format, log_dir=args.log_dir)

    stdin = stdin if stdin is not None else sys.stdin
    stdout = stdout if stdout is not None else sys.stdout

    try:
        payload = read_request(stdin)
        if args.command == "check":
            response: Any = run_check(payload, logger=logger)
        elif args.command == "in":
            response = run_in(payload, args.directory, logger=logger)
        else:
            response = run_out(payload, args.directory, logger=logger)
    except PoolResourceError as e:
        logger.debug(f"{args.command} failed", exc_info=True)
        _exit_error(_format_error_msg(f"running {args.command}", error=e))
    except KeyboardInterrupt:
        _exit_error(f"{args.command} interrupted")

    write_response(response, stdout)
    return 0


def check_main() -> int:
    return main(command="check", prog="pool-resource-check")


def in_main() -> int:
    return main(command="in", prog="pool-resource-in")


def out_main() -> int:
    return main(command="out", prog="pool-resource-out")


if __name__ == "__main__":
    sys.exit(main())
