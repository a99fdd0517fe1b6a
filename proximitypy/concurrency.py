"""
Cooperative cancellation and join-barrier phases on a shared executor.
"""

import threading
from concurrent.futures import FIRST_EXCEPTION, Executor, wait
from typing import Callable, Iterable, TypeVar

from proximitypy.core.errors import AnalysisCancelled

T = TypeVar("T")
R = TypeVar("R")


class CancellationToken:
    """
    Cancellation flag threaded explicitly through every initialization phase.

    Examples
    --------
    >>> token = CancellationToken()
    >>> token.cancel()
    >>> token.raise_if_cancelled()
    Traceback (most recent call last):
    ...
    proximitypy.core.errors.AnalysisCancelled: Proximity analysis cancelled
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise AnalysisCancelled("Proximity analysis cancelled")


def run_phase(
    executor: Executor,
    task: Callable[[T], R],
    items: Iterable[T],
    token: CancellationToken,
) -> list[R]:
    """
    Run ``task`` once per item on ``executor`` and wait for all of them.

    The token is polled before submitting and again inside every task.
    When a task raises, tasks that have not started are cancelled, running
    ones are awaited, and the first error (cancellation preferred) is
    re-raised. Results are returned in item order.

    Parameters
    ----------
    executor : Executor
        Shared worker pool.
    task : callable
        Function applied to each item.
    items : iterable
        Work items.
    token : CancellationToken
        Cooperative cancellation flag.

    Returns
    -------
    list
        One result per item.
    """
    token.raise_if_cancelled()

    def guarded(item):
        token.raise_if_cancelled()
        return task(item)

    futures = [executor.submit(guarded, item) for item in items]
    done, pending = wait(futures, return_when=FIRST_EXCEPTION)
    if pending:
        for future in pending:
            future.cancel()
        wait(pending)

    errors = [
        future.exception()
        for future in futures
        if not future.cancelled() and future.exception() is not None
    ]
    if errors:
        cancelled = [e for e in errors if isinstance(e, AnalysisCancelled)]
        raise (cancelled or errors)[0]

    token.raise_if_cancelled()
    return [future.result() for future in futures]
