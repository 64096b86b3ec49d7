"""Running commands: a small command interface over subprocess, plus helpers."""

from __future__ import annotations

import abc
import codecs
import contextlib
import io
import logging
import os
import shlex
import subprocess
import sys
import threading
from typing import BinaryIO, Callable

__all__ = [
    "RunError",
    "Cmd",
    "Cmder",
    "LocalCmd",
    "LocalCmder",
    "DEFAULT_CMDER",
    "pretty_command",
    "run_error_for_error",
    "combined_output_lines",
    "output_lines",
    "inherit_output",
    "run_with_stdout_reader",
    "run_with_stdin_writer",
    "command",
]

logger = logging.getLogger(__name__)

_CHUNK = 65536


def pretty_command(name: str, *args: str) -> str:
    """Return the command as a string that could be pasted into a shell."""
    return " ".join(shlex.quote(part) for part in (name, *args))


class RunError(Exception):
    """A command failed to run or exited unsuccessfully."""

    def __init__(self, command: list[str], output: bytes, inner: BaseException | None):
        self.command = list(command)
        self.output = output
        self.inner = inner
        super().__init__(str(self))

    def __str__(self) -> str:
        return f'command "{self.pretty_command()}" failed with error: {self.inner}'

    def pretty_command(self) -> str:
        """Return the failed command quoted for a shell."""
        return pretty_command(self.command[0], *self.command[1:])

    @property
    def cause(self) -> BaseException:
        return self.inner if self.inner is not None else self


class Cmd(abc.ABC):
    """A command that can be configured and run somewhere."""

    @abc.abstractmethod
    def run(self) -> None:
        """Run the command, raising RunError on failure."""

    @abc.abstractmethod
    def set_env(self, *args: str) -> "Cmd":
        """Set the environment from "key=value" entries."""

    @abc.abstractmethod
    def set_stdin(self, reader) -> "Cmd":
        """Set the source of standard input."""

    @abc.abstractmethod
    def set_stdout(self, writer) -> "Cmd":
        """Set the destination of standard output."""

    @abc.abstractmethod
    def set_stderr(self, writer) -> "Cmd":
        """Set the destination of standard error."""


class Cmder(abc.ABC):
    """A factory of commands."""

    @abc.abstractmethod
    def command(self, name: str, *args: str) -> Cmd:
        """Return a command for name and args."""


def _write(sink, chunk: bytes, decoder) -> None:
    if decoder is not None:
        sink.write(decoder.decode(chunk))
    else:
        sink.write(chunk)
    flush = getattr(sink, "flush", None)
    if flush is not None:
        flush()


def _pump(source: BinaryIO, sink, record: Callable[[bytes], None], failures: list) -> None:
    decoder = None
    if isinstance(sink, io.TextIOBase):
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    try:
        for chunk in iter(lambda: source.read1(_CHUNK), b""):
            record(chunk)
            if sink is None:
                continue
            try:
                _write(sink, chunk, decoder)
            except Exception as exc:  # keep draining so the child never blocks
                failures.append(exc)
                sink = None
    finally:
        source.close()


def _feed(reader, pipe: BinaryIO, failures: list) -> None:
    try:
        for chunk in iter(lambda: reader.read(_CHUNK), b""):
            if not chunk:
                break
            if isinstance(chunk, str):
                chunk = chunk.encode("utf-8")
            pipe.write(chunk)
    except BrokenPipeError:
        pass
    except Exception as exc:
        failures.append(exc)
    finally:
        with contextlib.suppress(OSError):
            pipe.close()


def _start(target, *args) -> threading.Thread:
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


class LocalCmd(Cmd):
    """A command run as a local process."""

    def __init__(self, name: str, *args: str):
        self.args = [name, *args]
        self._env: dict[str, str] | None = None
        self._stdin = None
        self._stdout = None
        self._stderr = None

    def set_env(self, *args: str) -> "LocalCmd":
        if not args:
            self._env = None
        else:
            env = {}
            for entry in args:
                key, _, value = entry.partition("=")
                env[key] = value
            self._env = env
        return self

    def set_stdin(self, reader) -> "LocalCmd":
        if isinstance(reader, (bytes, bytearray)):
            reader = io.BytesIO(bytes(reader))
        elif isinstance(reader, str):
            reader = io.BytesIO(reader.encode("utf-8"))
        self._stdin = reader
        return self

    def set_stdout(self, writer) -> "LocalCmd":
        self._stdout = writer
        return self

    def set_stderr(self, writer) -> "LocalCmd":
        self._stderr = writer
        return self

    def _stdin_source(self):
        if self._stdin is None:
            return subprocess.DEVNULL, None
        try:
            self._stdin.fileno()
        except (AttributeError, OSError, ValueError):
            return subprocess.PIPE, self._stdin
        return self._stdin, None

    def run(self) -> None:
        """Run the process, raising RunError with the combined output on failure."""
        logger.debug('Running: "%s"', pretty_command(*self.args))
        combined = io.BytesIO()
        lock = threading.Lock()

        def record(chunk: bytes) -> None:
            with lock:
                combined.write(chunk)

        shared = self._stdout is self._stderr
        stdin_arg, feeder = self._stdin_source()
        try:
            proc = subprocess.Popen(
                self.args,
                stdin=stdin_arg,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT if shared else subprocess.PIPE,
                env=self._env,
            )
        except OSError as exc:
            raise RunError(self.args, b"", exc) from exc

        failures: list[BaseException] = []
        threads = [_start(_pump, proc.stdout, self._stdout, record, failures)]
        if not shared:
            threads.append(_start(_pump, proc.stderr, self._stderr, record, failures))
        if feeder is not None:
            threads.append(_start(_feed, feeder, proc.stdin, failures))
        for thread in threads:
            thread.join()
        returncode = proc.wait()

        output = combined.getvalue()
        if returncode != 0:
            inner = subprocess.CalledProcessError(returncode, self.args, output)
            raise RunError(self.args, output, inner) from inner
        if failures:
            raise RunError(self.args, output, failures[0]) from failures[0]


class LocalCmder(Cmder):
    """A factory of LocalCmd."""

    def command(self, name: str, *args: str) -> LocalCmd:
        return LocalCmd(name, *args)


DEFAULT_CMDER = LocalCmder()


def command(name: str, *args: str) -> Cmd:
    """Return a command from the default cmder."""
    return DEFAULT_CMDER.command(name, *args)


def run_error_for_error(err: BaseException | None) -> RunError | None:
    """Return the deepest RunError in the cause chain of err, if any."""
    found = None
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        if isinstance(err, RunError):
            found = err
        err = getattr(err, "cause", None)
    return found


def _split_lines(data: bytes) -> list[str]:
    text = data.decode("utf-8", errors="replace")
    if not text:
        return []
    lines = text.split("\n")
    if text.endswith("\n"):
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def combined_output_lines(cmd: Cmd) -> list[str]:
    """Run cmd and return the lines of its stdout and stderr together."""
    buffer = io.BytesIO()
    cmd.set_stdout(buffer)
    cmd.set_stderr(buffer)
    cmd.run()
    return _split_lines(buffer.getvalue())


def output_lines(cmd: Cmd) -> list[str]:
    """Run cmd and return the lines of its stdout."""
    buffer = io.BytesIO()
    cmd.set_stdout(buffer)
    cmd.run()
    return _split_lines(buffer.getvalue())


def inherit_output(cmd: Cmd) -> Cmd:
    """Send cmd's output to this process's stdout and stderr."""
    cmd.set_stderr(sys.stderr)
    cmd.set_stdout(sys.stdout)
    return cmd


def run_with_stdout_reader(cmd: Cmd, reader_func: Callable[[BinaryIO], object]) -> None:
    """Run cmd with its stdout piped to reader_func, run in a thread."""
    read_fd, write_fd = os.pipe()
    with open(read_fd, "rb") as reader, open(write_fd, "wb") as writer:
        cmd.set_stdout(writer)
        failures: list[BaseException] = []

        def consume() -> None:
            try:
                reader_func(reader)
            except BaseException as exc:
                failures.append(exc)
            finally:
                reader.close()

        thread = _start(consume)
        try:
            cmd.run()
        finally:
            with contextlib.suppress(OSError):
                writer.close()
            thread.join()
    if failures:
        raise failures[0]


def run_with_stdin_writer(cmd: Cmd, writer_func: Callable[[BinaryIO], object]) -> None:
    """Run cmd with writer_func, run in a thread, piped to its stdin."""
    read_fd, write_fd = os.pipe()
    with open(read_fd, "rb") as reader, open(write_fd, "wb") as writer:
        cmd.set_stdin(reader)
        failures: list[BaseException] = []

        def produce() -> None:
            try:
                writer_func(writer)
            except BrokenPipeError:
                pass
            except BaseException as exc:
                failures.append(exc)
            finally:
                with contextlib.suppress(OSError):
                    writer.close()

        thread = _start(produce)
        try:
            cmd.run()
        finally:
            reader.close()
            thread.join()
    if failures:
        raise failures[0]