from __future__ import annotations

import threading
from concurrent.futures import Future
from typing import Generic, TypeVar

T = TypeVar("T")


class Outcome(Generic[T]):
    """Write-once result cell backed by a ``concurrent.futures.Future``.

    The first ``resolve``/``reject`` wins; later attempts return False and
    leave the stored value untouched.
    """

    def __init__(self) -> None:
        self._future: Future[T] = Future()
        self._lock = threading.Lock()

    @property
    def future(self) -> Future[T]:
        return self._future

    def done(self) -> bool:
        return self._future.done()

    def succeeded(self) -> bool:
        return self._future.done() and self._future.exception() is None

    def resolve(self, value: T) -> bool:
        with self._lock:
            if self._future.done():
                return False
            self._future.set_result(value)
            return True

    def reject(self, error: BaseException) -> bool:
        with self._lock:
            if self._future.done():
                return False
            self._future.set_exception(error)
            return True

    @classmethod
    def resolved(cls, value: T) -> "Outcome[T]":
        outcome: Outcome[T] = cls()
        outcome.resolve(value)
        return outcome
