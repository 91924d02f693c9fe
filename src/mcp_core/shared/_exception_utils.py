"""Unwrap the exception groups that anyio task groups raise.

A session or transport that fails inside a task group surfaces as a
``BaseExceptionGroup`` holding the real error plus the ``Cancelled`` of every
sibling that was torn down. Callers of this package expect the real error
(``McpError``, ``ConnectionError``...), so the helpers below re-raise it on its
own with the group chained as ``__cause__``. Two or more real errors are left
grouped, minus the cancellations.
"""

from __future__ import annotations

import contextlib
import sys
from collections.abc import AsyncIterator, Iterator
from types import TracebackType

import anyio
import anyio.abc

if sys.version_info < (3, 11):  # pragma: no cover
    from exceptiongroup import BaseExceptionGroup


def collapse_exception_group(eg: BaseExceptionGroup) -> BaseException:
    """Return the error *eg* stands for once sibling cancellations are dropped.

    A group made only of cancellations collapses to its first member.
    """
    # split() matches leaf exceptions by type, never the group itself.
    _, errors = eg.split(anyio.get_cancelled_exc_class())
    if errors is None:
        return eg.exceptions[0]
    if len(errors.exceptions) == 1:
        return errors.exceptions[0]
    return errors


@contextlib.contextmanager
def _collapsed() -> Iterator[None]:
    try:
        yield
    except BaseExceptionGroup as eg:
        collapsed = collapse_exception_group(eg)
        if collapsed is eg:
            raise
        raise collapsed from eg


@contextlib.asynccontextmanager
async def open_task_group() -> AsyncIterator[anyio.abc.TaskGroup]:
    """``anyio.create_task_group()`` that raises collapsed errors."""
    with _collapsed():
        async with anyio.create_task_group() as tg:
            yield tg


async def exit_task_group(
    tg: anyio.abc.TaskGroup,
    exc_type: type[BaseException] | None,
    exc_val: BaseException | None,
    exc_tb: TracebackType | None,
) -> bool | None:
    """Leave a task group that was entered by hand from an ``__aexit__``."""
    with _collapsed():
        return await tg.__aexit__(exc_type, exc_val, exc_tb)
