import logging

import pytest

from kindcluster.cli import build_parser, main
from kindcluster.version import display_version, version


def test_version_command(capsys):
    assert main(["version"]) == 0
    out = capsys.readouterr().out
    assert out == display_version() + "\n"


def test_quiet_version_command(capsys):
    assert main(["-q", "version"]) == 0
    captured = capsys.readouterr()
    assert captured.out == version() + "\n"
    assert captured.err == ""


def test_flags_after_subcommand(capsys):
    assert main(["version", "-q"]) == 0
    assert capsys.readouterr().out == version() + "\n"


def test_no_command_prints_help(capsys):
    assert main([]) == 0
    assert "version" in capsys.readouterr().out


def test_unknown_command_fails(capsys):
    assert main(["bogus"]) == 1
    assert "bogus" in capsys.readouterr().err


def test_version_flag(capsys):
    assert main(["--version"]) == 0
    assert version() in capsys.readouterr().out


def test_parser_reads_verbosity():
    args = build_parser().parse_args(["-v", "3", "version"])
    assert args.verbosity == 3
    assert args.command == "version"


def test_deprecated_loglevel_warns_and_sets_debug(capsys):
    assert main(["--loglevel", "debug", "version"]) == 0
    captured = capsys.readouterr()
    assert "--loglevel is deprecated" in captured.err
    assert logging.getLogger("kindcluster").level == logging.DEBUG


def test_explicit_verbosity_wins_over_loglevel(capsys):
    assert main(["--loglevel", "debug", "-v", "0", "version"]) == 0
    capsys.readouterr()
    assert logging.getLogger("kindcluster").level == logging.INFO


@pytest.mark.parametrize("argv", [["-q", "version"], ["--quiet", "version"]])
def test_quiet_silences_logging(argv, capsys):
    assert main(argv) == 0
    captured = capsys.readouterr()
    assert captured.err == ""
    assert logging.getLogger("kindcluster").isEnabledFor(logging.CRITICAL) is False