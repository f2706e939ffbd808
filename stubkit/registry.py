from __future__ import annotations

import heapq
import itertools
import threading
import weakref
from typing import Any, List, Optional, Tuple, Type, TypeVar

from ._logging import get_component_logger
from .stub import StubEngine, engine_of, stub_class_for
from .types import Invocation, StubConfigurationError, VerificationMismatchError
from .verification import VerificationResult

T = TypeVar("T")


class StubRegistry:
    """
    Creates stubs and numbers their invocations from one shared counter.

    Usage:
        registry = StubRegistry()
        client = registry.create_stub(HttpClient)
        cache = registry.create_stub(Cache)
        ...
        registry.verify_in_order(
            verify(cache, on.lookup("k")),
            verify(client, on.get("https://x/1")),
        )

    One registry per test keeps sequence numbers and history local to it;
    the pytest plugin's `stub_registry` fixture does exactly that. Stubs are
    tracked weakly: once a stub is unreachable it drops out of `stub_names()`
    and `history()`.
    """

    def __init__(
        self,
        logger: Optional[Any] = None,
        strict: Optional[bool] = None,
        debug: Optional[bool] = None,
    ):
        self._counter = itertools.count(1)
        self._counter_lock = threading.Lock()
        self._stubs_lock = threading.Lock()
        # Weak, so a stub nobody holds is freed with its history.
        self._engines: "weakref.WeakKeyDictionary[StubEngine, None]" = weakref.WeakKeyDictionary()
        self._strict = strict
        self._debug = debug
        self._base_logger = logger
        self._logger = get_component_logger("StubRegistry", logger)

    def _next_sequence(self) -> int:
        with self._counter_lock:
            return next(self._counter)

    def create_stub(self, interface: Type[T], name: Optional[str] = None) -> T:
        cls = stub_class_for(interface)
        engine = StubEngine(
            interface,
            name or interface.__name__,
            sequencer=self._next_sequence,
            operations=dict(cls._stubkit_operations),
            logger=self._base_logger,
            strict=self._strict,
            debug=self._debug,
        )
        with self._stubs_lock:
            self._engines[engine] = None
        self._logger.debug(
            "stub_created",
            interface=interface.__name__,
            stub=engine.name,
            operations=sorted(engine.operations),
        )
        return cls(engine)

    def owns(self, stub: Any) -> bool:
        engine = engine_of(stub)
        with self._stubs_lock:
            return engine in self._engines

    def stub_names(self) -> List[str]:
        with self._stubs_lock:
            return [e.name for e in list(self._engines)]

    def history(self) -> Tuple[Invocation, ...]:
        """Invocations of every stub in this registry, in sequence order."""
        with self._stubs_lock:
            engines = list(self._engines)
        merged = heapq.merge(
            *(e.history() for e in engines), key=lambda i: i.sequence
        )
        return tuple(merged)

    def verify_in_order(self, *results: VerificationResult) -> None:
        """Assert the first matching call of each result happened in the given order."""
        if len(results) < 2:
            raise StubConfigurationError("verify_in_order() needs at least two results")
        for earlier, later in zip(results, results[1:]):
            try:
                earlier.called_before(later)
            except VerificationMismatchError as exc:
                self._logger.info(
                    "verification_mismatch",
                    stub=exc.stub_name,
                    pattern=exc.pattern,
                    expected=exc.expected,
                )
                raise VerificationMismatchError(
                    stub_name=exc.stub_name,
                    pattern=exc.pattern,
                    expected=exc.expected,
                    actual=exc.actual,
                    history=tuple(i.describe() for i in self.history()),
                ) from None
