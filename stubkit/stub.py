"""
Stub engine and stub class generation.

`stub_class_for(interface)` builds a subclass, shared per interface, whose
public operations all forward into a StubEngine. The engine owns the
ordered expectation list and the append-only invocation history of one
stub instance.
"""
from __future__ import annotations

import inspect
import threading
import time
import weakref
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ._logging import get_component_logger
from .directives import ResponseDirective
from .matchers import CallPattern
from .settings import is_strict_signatures, is_stubkit_debug
from .types import Invocation, StubConfigurationError, UnstubbedCallError, format_call

_ENGINE_ATTR = "_stubkit_engine"


@dataclass(frozen=True)
class OperationSpec:
    name: str
    signature: Optional[inspect.Signature]  # without `self`; None if not introspectable
    is_async: bool


@dataclass(frozen=True)
class Expectation:
    index: int
    pattern: CallPattern
    directive: ResponseDirective

    def describe(self) -> str:
        return f"{self.pattern.describe()} -> {self.directive.describe()}"


def _abstract_names(interface: type) -> frozenset:
    return frozenset(getattr(interface, "__abstractmethods__", ()))


def discover_operations(interface: type) -> Dict[str, OperationSpec]:
    """
    Public plain and async functions of `interface`, including inherited ones.

    Abstract methods are operations whatever their name, so an abstract
    `__call__` or `_load` is stubbed like any public method.
    """
    if not inspect.isclass(interface):
        raise StubConfigurationError(
            f"stubs are created from a class, got {type(interface).__name__}"
        )
    abstract = _abstract_names(interface)
    operations: Dict[str, OperationSpec] = {}
    for name in dir(interface):
        if name.startswith("_") and name not in abstract:
            continue
        raw = inspect.getattr_static(interface, name)
        if not inspect.isfunction(raw):
            continue
        try:
            signature = inspect.signature(raw)
            params = list(signature.parameters.values())[1:]
            signature = signature.replace(parameters=params)
        except (TypeError, ValueError):
            signature = None
        operations[name] = OperationSpec(
            name=name,
            signature=signature,
            is_async=inspect.iscoroutinefunction(raw),
        )
    return operations


class StubEngine:
    def __init__(
        self,
        interface: type,
        name: str,
        sequencer: Callable[[], int],
        operations: Optional[Dict[str, OperationSpec]] = None,
        logger: Optional[Any] = None,
        strict: Optional[bool] = None,
        debug: Optional[bool] = None,
    ):
        self.interface = interface
        self.name = name
        self.operations = operations if operations is not None else discover_operations(interface)
        self.strict = is_strict_signatures() if strict is None else strict
        self.debug = is_stubkit_debug() if debug is None else debug
        self._next_sequence = sequencer
        self._lock = threading.RLock()
        self._expectations: List[Expectation] = []
        self._history: List[Invocation] = []
        self._verified: Set[int] = set()
        self._logger = get_component_logger("StubEngine", logger).bind(stub=name)

    # -- configuration -------------------------------------------------

    def compile(self, pattern: CallPattern) -> CallPattern:
        """Check a pattern against the interface and bind it to the operation signature."""
        spec = self.operations.get(pattern.operation)
        if spec is None:
            raise StubConfigurationError(
                f"{self.interface.__name__} has no operation '{pattern.operation}'",
                stub_name=self.name,
            )
        if not self.strict or spec.signature is None:
            return pattern
        try:
            return pattern.bind_to(spec.signature)
        except TypeError as exc:
            raise StubConfigurationError(
                f"pattern {pattern.describe()} does not fit "
                f"{spec.name}{spec.signature}: {exc}",
                stub_name=self.name,
            ) from exc

    def register(self, pattern: CallPattern, directive: ResponseDirective) -> Expectation:
        compiled = self.compile(pattern)
        with self._lock:
            expectation = Expectation(
                index=len(self._expectations), pattern=compiled, directive=directive
            )
            self._expectations.append(expectation)
        if self.debug:
            self._logger.debug(
                "expectation_registered",
                index=expectation.index,
                expectation=expectation.describe(),
            )
        return expectation

    def expectations(self, operation: Optional[str] = None) -> Tuple[Expectation, ...]:
        with self._lock:
            return tuple(
                e for e in self._expectations
                if operation is None or e.pattern.operation == operation
            )

    # -- invocation ----------------------------------------------------

    def record(self, operation: str, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Invocation:
        """
        Append an invocation record.

        With strict signatures the call is bound first; a call that does not
        fit raises TypeError, like the real method would, and is not recorded.
        """
        spec = self.operations[operation]
        arguments: Dict[str, Any] = {}
        if self.strict and spec.signature is not None:
            bound = spec.signature.bind(*args, **kwargs)
            bound.apply_defaults()
            arguments = dict(bound.arguments)
        with self._lock:
            invocation = Invocation(
                sequence=self._next_sequence(),
                stub_name=self.name,
                operation=operation,
                args=tuple(args),
                kwargs=MappingProxyType(dict(kwargs)),
                arguments=MappingProxyType(arguments),
                timestamp=time.time(),
            )
            self._history.append(invocation)
        return invocation

    def respond(self, invocation: Invocation) -> Any:
        """Select the newest matching expectation and evaluate its directive."""
        candidates = self.expectations(invocation.operation)
        for expectation in reversed(candidates):
            if expectation.pattern.matches(invocation):
                if self.debug:
                    self._logger.debug(
                        "stub_dispatch",
                        call=invocation.describe(),
                        expectation=expectation.index,
                        directive=expectation.directive.kind.value,
                    )
                return expectation.directive.respond(invocation)

        self.unstubbed(
            invocation.operation,
            invocation.args,
            dict(invocation.kwargs),
            configured=tuple(e.describe() for e in candidates),
            call=invocation.describe(),
        )

    def unstubbed(
        self,
        operation: str,
        args: Tuple[Any, ...] = (),
        kwargs: Optional[Dict[str, Any]] = None,
        configured: Tuple[str, ...] = (),
        call: Optional[str] = None,
    ) -> None:
        kwargs = kwargs or {}
        self._logger.warning(
            "unstubbed_call",
            call=call or f"{self.name}.{format_call(operation, args, kwargs)}",
            configured=len(configured),
        )
        raise UnstubbedCallError(
            stub_name=self.name,
            operation=operation,
            call_args=args,
            call_kwargs=kwargs,
            configured=configured,
        )

    def dispatch(self, operation: str, args: Tuple[Any, ...], kwargs: Dict[str, Any]) -> Any:
        return self.respond(self.record(operation, args, kwargs))

    # -- history -------------------------------------------------------

    def history(self, operation: Optional[str] = None) -> Tuple[Invocation, ...]:
        with self._lock:
            return tuple(
                i for i in self._history
                if operation is None or i.operation == operation
            )

    def find(self, pattern: CallPattern) -> Tuple[Invocation, ...]:
        compiled = self.compile(pattern)
        return tuple(i for i in self.history(pattern.operation) if compiled.matches(i))

    def mark_verified(self, invocations: Tuple[Invocation, ...]) -> None:
        with self._lock:
            self._verified.update(i.sequence for i in invocations)

    def unverified(self) -> Tuple[Invocation, ...]:
        with self._lock:
            return tuple(i for i in self._history if i.sequence not in self._verified)


def engine_of(stub: Any) -> StubEngine:
    engine = getattr(stub, _ENGINE_ATTR, None)
    if not isinstance(engine, StubEngine):
        raise StubConfigurationError(
            f"{stub!r} is not a stub; create one with create_stub(Interface)"
        )
    return engine


def is_stub(obj: Any) -> bool:
    return isinstance(getattr(obj, _ENGINE_ATTR, None), StubEngine)


def _forwarder(spec: OperationSpec) -> Callable[..., Any]:
    name = spec.name

    if spec.is_async:
        # Recorded when called; matched and answered when awaited.
        def forward(self, *args, **kwargs):
            engine = engine_of(self)
            invocation = engine.record(name, args, kwargs)

            async def respond():
                result = engine.respond(invocation)
                if inspect.isawaitable(result):
                    result = await result
                return result

            return respond()
    else:
        def forward(self, *args, **kwargs):
            return engine_of(self).dispatch(name, args, kwargs)

    forward.__name__ = name
    forward.__qualname__ = f"Stub.{name}"
    return forward


def _unstubbed_member(name: str) -> Callable[..., Any]:
    def fail(self, *args, **kwargs):
        engine_of(self).unstubbed(name, args, kwargs)

    fail.__name__ = name
    fail.__qualname__ = f"Stub.{name}"
    return fail


# interface -> weakref to its stub class; neither is kept alive by the cache.
_stub_classes: "weakref.WeakKeyDictionary[type, weakref.ref]" = weakref.WeakKeyDictionary()
_stub_classes_lock = threading.Lock()


def stub_class_for(interface: type) -> type:
    """Stub class for `interface`, shared while any of its stubs is alive."""
    with _stub_classes_lock:
        ref = _stub_classes.get(interface)
        cls = ref() if ref is not None else None
        if cls is None:
            cls = _build_stub_class(interface)
            _stub_classes[interface] = weakref.ref(cls)
        return cls


def _build_stub_class(interface: type) -> type:
    operations = discover_operations(interface)

    def __init__(self, engine: StubEngine):
        object.__setattr__(self, _ENGINE_ATTR, engine)

    def __repr__(self) -> str:
        engine = engine_of(self)
        return f"<Stub {interface.__name__} {engine.name!r}>"

    namespace: Dict[str, Any] = {
        "__init__": __init__,
        "__repr__": __repr__,
        "__module__": interface.__module__,
        "_stubkit_operations": MappingProxyType(operations),
    }
    for spec in operations.values():
        namespace[spec.name] = _forwarder(spec)
    # Abstract properties, classmethods and staticmethods are not operations;
    # touching one fails like an unconfigured call.
    for name in _abstract_names(interface) - set(operations):
        member = _unstubbed_member(name)
        raw = inspect.getattr_static(interface, name, None)
        namespace[name] = property(member) if isinstance(raw, property) else member

    metaclass = type(interface)
    return metaclass(f"Stub{interface.__name__}", (interface,), namespace)
