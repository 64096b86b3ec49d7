import io
import shlex
import subprocess
import sys

import pytest

from kindcluster import errors
from kindcluster import exec as kexec

PY = sys.executable


def py(code):
    return kexec.command(PY, "-c", code)


@pytest.mark.parametrize(
    "parts",
    [["echo", "hello world"], ["ls", "-la", "it's"], ["a", ""], ["cmd", "$HOME", "x;y"]],
)
def test_pretty_command_round_trips_through_shell_parsing(parts):
    assert shlex.split(kexec.pretty_command(*parts)) == parts


def test_pretty_command_leaves_safe_words_alone():
    assert kexec.pretty_command("docker", "ps", "-a") == "docker ps -a"


def test_output_lines_captures_stdout_only():
    cmd = py("import sys; sys.stdout.write('a\\nb\\n'); sys.stderr.write('err\\n')")
    assert kexec.output_lines(cmd) == ["a", "b"]


def test_combined_output_lines_includes_stderr():
    cmd = py("import sys; sys.stdout.write('out\\n'); sys.stdout.flush(); sys.stderr.write('err\\n')")
    lines = kexec.combined_output_lines(cmd)
    assert sorted(lines) == ["err", "out"]


def test_empty_output_gives_no_lines():
    assert kexec.output_lines(py("pass")) == []


def test_failure_raises_run_error_with_output():
    cmd = py("import sys; sys.stderr.write('boom'); sys.exit(3)")
    with pytest.raises(kexec.RunError) as info:
        cmd.run()
    err = info.value
    assert b"boom" in err.output
    assert err.command[0] == PY
    assert isinstance(err.inner, subprocess.CalledProcessError)
    assert err.inner.returncode == 3
    assert str(err).startswith(f'command "{kexec.pretty_command(*err.command)}" failed with error:')


def test_missing_program_raises_run_error():
    with pytest.raises(kexec.RunError) as info:
        kexec.command("definitely-not-a-real-program-xyz").run()
    assert isinstance(info.value.inner, FileNotFoundError)
    assert info.value.cause is info.value.inner


def test_run_error_cause_without_inner_is_itself():
    err = kexec.RunError(["true"], b"", None)
    assert err.cause is err
    assert err.pretty_command() == "true"


def test_run_error_for_error_walks_causes():
    run_err = kexec.RunError(["x"], b"", ValueError("v"))
    wrapped = errors.wrap(errors.with_stack(run_err), "context")
    assert kexec.run_error_for_error(wrapped) is run_err
    assert kexec.run_error_for_error(ValueError("plain")) is None
    assert kexec.run_error_for_error(None) is None


def test_separate_writers_receive_their_own_streams():
    out, err = io.BytesIO(), io.BytesIO()
    cmd = py("import sys; sys.stdout.write('to-out'); sys.stderr.write('to-err')")
    cmd.set_stdout(out).set_stderr(err).run()
    assert out.getvalue() == b"to-out"
    assert err.getvalue() == b"to-err"


def test_stdin_from_bytes_reader():
    out = io.BytesIO()
    cmd = py("import sys; sys.stdout.write(sys.stdin.read())")
    cmd.set_stdin(io.BytesIO(b"payload")).set_stdout(out).run()
    assert out.getvalue() == b"payload"


def test_set_env_is_visible_to_process():
    cmd = py("import os, sys; sys.stdout.write(os.environ['KIND_TEST_VAR'])")
    cmd.set_env("KIND_TEST_VAR=some=value")
    assert kexec.output_lines(cmd) == ["some=value"]


def test_text_writer_receives_decoded_output():
    out = io.StringIO()
    py("import sys; sys.stdout.write('text')").set_stdout(out).run()
    assert out.getvalue() == "text"


def test_inherit_output_returns_same_cmd(capfd):
    cmd = py("import sys; sys.stdout.write('inherited')")
    assert kexec.inherit_output(cmd) is cmd
    cmd.run()
    assert "inherited" in capfd.readouterr().out


def test_run_with_stdout_reader():
    collected = []
    cmd = py("import sys; sys.stdout.write('hello')")
    kexec.run_with_stdout_reader(cmd, lambda reader: collected.append(reader.read()))
    assert collected == [b"hello"]


def test_run_with_stdout_reader_propagates_reader_error():
    def reader_func(reader):
        raise ValueError("reader failed")

    with pytest.raises(ValueError, match="reader failed"):
        kexec.run_with_stdout_reader(py("pass"), reader_func)


def test_run_with_stdout_reader_prefers_command_error():
    def reader_func(reader):
        raise ValueError("reader failed")

    with pytest.raises(kexec.RunError):
        kexec.run_with_stdout_reader(py("import sys; sys.exit(1)"), reader_func)


def test_run_with_stdin_writer():
    out = io.BytesIO()
    cmd = py("import sys; sys.stdout.write(sys.stdin.read())")
    cmd.set_stdout(out)
    kexec.run_with_stdin_writer(cmd, lambda writer: writer.write(b"streamed"))
    assert out.getvalue() == b"streamed"


def test_local_cmder_builds_runnable_commands():
    cmd = kexec.LocalCmder().command(PY, "-c", "print('x')")
    assert cmd.args == [PY, "-c", "print('x')"]
    assert kexec.output_lines(cmd) == ["x"]