"""
Deferred results for stubs that emulate asynchronous collaborators.

A Deferred starts pending and settles exactly once, either resolved with a
value or rejected with an exception. It can be polled (`done()`,
`result()`), waited on from a thread (`wait()`), or awaited from a
coroutine:

    deferred = when(client).fetch("https://x/1").then_defer()
    pending = client.fetch("https://x/1")
    assert not pending.done()
    deferred.resolve(Response(200, text="ok"))
    assert (await pending).status_code == 200
"""
from __future__ import annotations

import asyncio
import threading
from enum import Enum
from typing import Any, Callable, Generator, List, Optional

from .types import DeferredError


class DeferredState(str, Enum):
    PENDING = "pending"
    RESOLVED = "resolved"
    REJECTED = "rejected"


class Deferred:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._settled = threading.Event()
        self._state = DeferredState.PENDING
        self._value: Any = None
        self._error: Optional[BaseException] = None
        self._callbacks: List[Callable[["Deferred"], None]] = []

    @classmethod
    def resolved(cls, value: Any) -> "Deferred":
        deferred = cls()
        deferred.resolve(value)
        return deferred

    @classmethod
    def rejected(cls, error: BaseException) -> "Deferred":
        deferred = cls()
        deferred.reject(error)
        return deferred

    @property
    def state(self) -> DeferredState:
        return self._state

    def done(self) -> bool:
        return self._state is not DeferredState.PENDING

    def resolve(self, value: Any) -> None:
        self._settle(DeferredState.RESOLVED, value, None)

    def reject(self, error: BaseException) -> None:
        if not isinstance(error, BaseException):
            raise TypeError(f"reject() expects an exception, got {type(error).__name__}")
        self._settle(DeferredState.REJECTED, None, error)

    def _settle(
        self, state: DeferredState, value: Any, error: Optional[BaseException]
    ) -> None:
        with self._lock:
            if self._state is not DeferredState.PENDING:
                raise DeferredError(f"deferred already {self._state.value}")
            self._state = state
            self._value = value
            self._error = error
            callbacks, self._callbacks = self._callbacks, []
            self._settled.set()
        for callback in callbacks:
            callback(self)

    def result(self) -> Any:
        """Return the resolved value, raise the rejection, or fail while pending."""
        if self._state is DeferredState.PENDING:
            raise DeferredError("deferred is still pending")
        if self._error is not None:
            raise self._error
        return self._value

    def exception(self) -> Optional[BaseException]:
        if self._state is DeferredState.PENDING:
            raise DeferredError("deferred is still pending")
        return self._error

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block the calling thread until settled; False on timeout."""
        return self._settled.wait(timeout)

    def add_done_callback(self, callback: Callable[["Deferred"], None]) -> None:
        with self._lock:
            if self._state is DeferredState.PENDING:
                self._callbacks.append(callback)
                return
        callback(self)

    def __await__(self) -> Generator[Any, None, Any]:
        if not self.done():
            loop = asyncio.get_running_loop()
            waiter = loop.create_future()

            def _wake_waiter() -> None:
                if not waiter.done():
                    waiter.set_result(None)

            def _on_settled(_: "Deferred") -> None:
                if not loop.is_closed():
                    loop.call_soon_threadsafe(_wake_waiter)

            self.add_done_callback(_on_settled)
            yield from waiter.__await__()
        return self.result()

    def __repr__(self) -> str:
        return f"<Deferred {self._state.value}>"
