"""The kind command line."""

from __future__ import annotations

import argparse
import logging
import sys
from dataclasses import dataclass

from .errors import stack_trace
from .exec import run_error_for_error
from .version import display_version, version

__all__ = ["build_parser", "main"]

_LOGGER_NAME = "kindcluster"
_TRACE_VERBOSITY = 2147483647

_handler: logging.Handler | None = None


@dataclass
class _Settings:
    quiet: bool
    verbosity: int


def _add_global_flags(parser: argparse.ArgumentParser, suppress: bool) -> None:
    def default(value):
        return argparse.SUPPRESS if suppress else value

    parser.add_argument("--loglevel", default=default(None), help="DEPRECATED: see -v instead")
    parser.add_argument(
        "-v", "--verbosity", type=int, default=default(None), help="info log verbosity"
    )
    parser.add_argument(
        "-q",
        "--quiet",
        action="store_true",
        default=default(False),
        help="silence all stderr output",
    )


def build_parser() -> argparse.ArgumentParser:
    """Return the parser of the root command and its subcommands."""
    parser = argparse.ArgumentParser(
        prog="kind",
        description="kind creates and manages local Kubernetes clusters "
        "using Docker container 'nodes'",
    )
    parser.add_argument("--version", action="version", version=f"kind version {version()}")
    _add_global_flags(parser, suppress=False)
    commands = parser.add_subparsers(dest="command", metavar="COMMAND")
    version_parser = commands.add_parser(
        "version",
        help="prints the kind CLI version",
        description="prints the kind CLI version",
    )
    _add_global_flags(version_parser, suppress=True)
    version_parser.set_defaults(func=_run_version)
    return parser


def _run_version(settings: _Settings) -> None:
    print(version() if settings.quiet else display_version())


def _settings(args: argparse.Namespace) -> _Settings:
    verbosity = args.verbosity
    if args.loglevel is not None and verbosity is None:
        if args.loglevel == "debug":
            verbosity = 3
        elif args.loglevel == "trace":
            verbosity = _TRACE_VERBOSITY
    return _Settings(quiet=bool(args.quiet), verbosity=verbosity or 0)


def _configure_logging(settings: _Settings) -> logging.Logger:
    global _handler
    logger = logging.getLogger(_LOGGER_NAME)
    if _handler is not None:
        logger.removeHandler(_handler)
        _handler = None
    logger.propagate = False
    if settings.quiet:
        logger.setLevel(logging.CRITICAL + 1)
        _handler = logging.NullHandler()
    else:
        logger.setLevel(logging.DEBUG if settings.verbosity >= 3 else logging.INFO)
        _handler = logging.StreamHandler(sys.stderr)
        _handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(_handler)
    return logger


def _log_error(logger: logging.Logger, err: BaseException, settings: _Settings) -> None:
    logger.error("ERROR: %s", err)
    if settings.quiet or settings.verbosity < 1:
        return
    run_error = run_error_for_error(err)
    if run_error is not None:
        logger.error("\nOutput:\n%s", run_error.output.decode("utf-8", errors="replace"))
    trace = stack_trace(err)
    if trace is not None:
        logger.error("\nStack Trace: %s", "".join(trace.format()))


def main(argv: list[str] | None = None) -> int:
    """Run the kind command line and return the process exit code."""
    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as exc:
        return 0 if exc.code in (0, None) else 1

    settings = _settings(args)
    logger = _configure_logging(settings)
    if args.loglevel is not None:
        logger.warning("WARNING: --loglevel is deprecated, please switch to -v and -q!")

    if args.command is None:
        parser.print_help()
        return 0
    try:
        args.func(settings)
    except Exception as exc:
        _log_error(logger, exc, settings)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())