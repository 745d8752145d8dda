"""Cancellable, deadline-bounded engine calls.

A parse that never terminates is itself a finding. Each bounded call runs
on a supervised daemon worker thread; when the deadline passes the
supervisor sets the worker's CancellationFlag, waits a short grace period
for the worker to notice, and raises TimeoutExceededError. The caller
never blocks longer than deadline + grace.

A worker that ignores its flag cannot be killed from Python. It is
abandoned (it is a daemon thread, so it does not keep the process alive)
and a warning is logged.

Python 3.13+.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from parsecheck.constants import DEFAULT_CANCEL_GRACE
from parsecheck.diagnostics.errors import ParseCancelledError, TimeoutExceededError

__all__ = ["WORKER_THREAD_NAME", "CancellationFlag", "call_with_deadline"]

logger = logging.getLogger(__name__)

WORKER_THREAD_NAME = "parsecheck-parse-worker"


class CancellationFlag:
    """Cooperative cancellation signal polled by engines.

    Thread Safety:
        Thread-safe. Set by the supervisor, read by the worker.
    """

    __slots__ = ("_event",)

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        """Request cancellation."""
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        """True once cancellation was requested."""
        return self._event.is_set()

    def check(self) -> None:
        """Raise ParseCancelledError if cancellation was requested."""
        if self._event.is_set():
            msg = "Parse cancelled"
            raise ParseCancelledError(msg)


class _Outcome[T]:
    __slots__ = ("error", "value")

    def __init__(self) -> None:
        self.value: T | None = None
        self.error: Exception | None = None


def call_with_deadline[T](
    fn: Callable[[CancellationFlag], T],
    timeout: float | None,
    *,
    grace: float = DEFAULT_CANCEL_GRACE,
) -> T:
    """Run ``fn(flag)`` and give up after ``timeout`` seconds.

    Args:
        fn: Callable receiving the CancellationFlag it should poll
        timeout: Deadline in seconds; None runs ``fn`` directly, unbounded;
            0 expires immediately
        grace: Seconds to wait for the worker after cancelling it

    Returns:
        Whatever ``fn`` returned

    Raises:
        TimeoutExceededError: If the deadline passed
        ValueError: If timeout or grace is negative
        Exception: Whatever ``fn`` raised, re-raised in the caller's thread
    """
    flag = CancellationFlag()
    if timeout is None:
        return fn(flag)
    if timeout < 0 or grace < 0:
        msg = f"Deadline and grace must be >= 0, got {timeout} and {grace}"
        raise ValueError(msg)

    outcome: _Outcome[T] = _Outcome()

    def worker() -> None:
        try:
            outcome.value = fn(flag)
        except Exception as e:  # noqa: BLE001 - transferred to the caller's thread
            outcome.error = e

    thread = threading.Thread(target=worker, name=WORKER_THREAD_NAME, daemon=True)
    if timeout == 0:
        flag.cancel()
    thread.start()
    thread.join(timeout)

    if thread.is_alive() or timeout == 0:
        flag.cancel()
        thread.join(grace)
        abandoned = thread.is_alive()
        if abandoned:
            logger.warning(
                "Parse worker ignored cancellation for %gs after a %gs deadline; abandoning it",
                grace,
                timeout,
            )
        raise TimeoutExceededError(timeout, abandoned=abandoned)

    if outcome.error is not None:
        raise outcome.error
    return outcome.value  # type: ignore[return-value]
