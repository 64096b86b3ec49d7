"""Error helpers: wrapping with context and stacks, aggregates, concurrency."""

from __future__ import annotations

import concurrent.futures
import traceback
from typing import Callable, Iterable, Iterator, Sequence

__all__ = [
    "KindError",
    "Aggregate",
    "new",
    "errorf",
    "wrap",
    "wrapf",
    "with_stack",
    "stack_trace",
    "new_aggregate",
    "errors_of",
    "until_error_concurrent",
    "aggregate_concurrent",
]


def _capture_stack() -> traceback.StackSummary:
    """Return the current stack without the frames of this module."""
    frames = traceback.extract_stack()
    while frames and frames[-1].filename == __file__:
        frames.pop()
    return traceback.StackSummary.from_list(frames)


class KindError(Exception):
    """An error carrying an optional message, an optional cause and a stack."""

    def __init__(self, message: str | None = None, cause: BaseException | None = None):
        self.message = message
        self.cause = cause
        self.stack = _capture_stack()
        super().__init__(str(self))
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        if self.message is None:
            return str(self.cause)
        if self.cause is None:
            return self.message
        return f"{self.message}: {self.cause}"


class Aggregate(Exception):
    """Several errors reported together."""

    def __init__(self, errors: Sequence[BaseException]):
        self.errors = list(errors)
        super().__init__(str(self))

    def __str__(self) -> str:
        if len(self.errors) == 1:
            return str(self.errors[0])
        return "[" + ", ".join(str(err) for err in self.errors) + "]"


def _cause_chain(err: BaseException | None) -> Iterator[BaseException]:
    """Yield err and each error it was caused by, stopping on cycles."""
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        err = getattr(err, "cause", None)


def new(message: str) -> KindError:
    """Return an error with the given message and the current stack."""
    return KindError(message)


def errorf(format: str, *args) -> KindError:
    """Return an error with a printf-style formatted message."""
    return KindError(format % args if args else format)


def wrap(err: BaseException | None, message: str) -> KindError | None:
    """Annotate err with a message and the current stack; None stays None."""
    if err is None:
        return None
    return KindError(message, err)


def wrapf(err: BaseException | None, format: str, *args) -> KindError | None:
    """Annotate err with a formatted message; None stays None."""
    if err is None:
        return None
    return KindError(format % args if args else format, err)


def with_stack(err: BaseException | None) -> KindError | None:
    """Annotate err with the current stack; None stays None."""
    if err is None:
        return None
    return KindError(None, err)


def stack_trace(err: BaseException | None) -> traceback.StackSummary | None:
    """Return the deepest stack recorded in the cause chain of err."""
    found = None
    for item in _cause_chain(err):
        stack = getattr(item, "stack", None)
        if isinstance(stack, traceback.StackSummary):
            found = stack
    return found


def _flatten(errs: Iterable[BaseException | None]) -> list[BaseException]:
    flat: list[BaseException] = []
    for err in errs:
        if err is None:
            continue
        if isinstance(err, Aggregate):
            flat.extend(_flatten(err.errors))
        else:
            flat.append(err)
    return flat


def new_aggregate(errlist: Iterable[BaseException | None]) -> KindError | None:
    """Flatten and reduce errlist into one error wrapped with a stack.

    None entries are dropped; no errors gives None and a single error is
    returned (wrapped) on its own rather than as an aggregate.
    """
    flat = _flatten(errlist)
    if not flat:
        return None
    if len(flat) == 1:
        return with_stack(flat[0])
    return with_stack(Aggregate(flat))


def errors_of(err: BaseException | None) -> list[BaseException] | None:
    """Return the errors of the deepest Aggregate in the cause chain of err."""
    found = None
    for item in _cause_chain(err):
        if isinstance(item, Aggregate):
            found = item
    return list(found.errors) if found is not None else None


def until_error_concurrent(funcs: Sequence[Callable[[], object]]) -> None:
    """Run funcs concurrently and raise the first error any of them raises."""
    if not funcs:
        return
    executor = concurrent.futures.ThreadPoolExecutor(max_workers=len(funcs))
    try:
        futures = [executor.submit(func) for func in funcs]
        for future in concurrent.futures.as_completed(futures):
            exc = future.exception()
            if exc is not None:
                raise exc
    finally:
        executor.shutdown(wait=False)


def aggregate_concurrent(funcs: Sequence[Callable[[], object]]) -> None:
    """Run funcs concurrently and wait for all of them.

    A single failure is raised as it is; several are raised as an aggregate.
    """
    if not funcs:
        return
    with concurrent.futures.ThreadPoolExecutor(max_workers=len(funcs)) as executor:
        futures = [executor.submit(func) for func in funcs]
        errs = [
            exc
            for future in concurrent.futures.as_completed(futures)
            if (exc := future.exception()) is not None
        ]
    if len(errs) > 1:
        raise new_aggregate(errs)
    if errs:
        raise errs[0]