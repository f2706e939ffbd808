"""
Plain-function surface: create_stub, when, verify.

    client = create_stub(HttpClient)
    when(client, on.get("https://x/1")).then_return(Response(200))
    when(client).get("https://x/2").then_fail(NotFoundError, "missing")

    service.load(client)

    verify(client, on.get("https://x/1"), times=1)
"""
from __future__ import annotations

from typing import Any, Callable, Optional, Tuple, Type, TypeVar, Union

from ._logging import get_component_logger
from .deferred import Deferred
from .directives import Answer, Defer, Fail, ResponseDirective, ReturnValue
from .matchers import CallPattern
from .registry import StubRegistry
from .stub import engine_of
from .types import Invocation, StubConfigurationError, VerificationMismatchError
from .verification import VerificationResult

T = TypeVar("T")

_default_registry = StubRegistry()


def default_registry() -> StubRegistry:
    return _default_registry


class _OperationFactory:
    """`on.get("u")` builds CallPattern("get", ("u",), {})."""

    def __getattr__(self, operation: str) -> Callable[..., CallPattern]:
        if operation.startswith("__"):
            raise AttributeError(operation)

        def build(*args: Any, **kwargs: Any) -> CallPattern:
            return CallPattern(operation, args, kwargs)

        build.__name__ = operation
        return build

    def __call__(self, operation: str, *args: Any, **kwargs: Any) -> CallPattern:
        return CallPattern(operation, args, kwargs)


on = _OperationFactory()


def create_stub(
    interface: Type[T],
    name: Optional[str] = None,
    registry: Optional[StubRegistry] = None,
) -> T:
    return (registry or _default_registry).create_stub(interface, name=name)


class ExpectationBuilder:
    """
    Finishes a `when(...)` by attaching a response directive.

    Each `then_*` call registers one expectation. Later registrations win
    over earlier ones for calls both would match.
    """

    def __init__(self, stub: Any, pattern: CallPattern):
        self._stub = stub
        self._engine = engine_of(stub)
        # Fail at setup time if the pattern cannot match anything.
        self._engine.compile(pattern)
        self._pattern = pattern

    def _register(self, directive: ResponseDirective) -> Any:
        self._engine.register(self._pattern, directive)
        return self._stub

    def then_return(self, value: Any) -> Any:
        return self._register(ReturnValue(value))

    def then_answer(self, fn: Callable[..., Any]) -> Any:
        return self._register(Answer(fn))

    def then_fail(
        self,
        error: Union[BaseException, Type[BaseException]],
        message: Optional[str] = None,
    ) -> Any:
        return self._register(Fail(error, message))

    def then_defer(self) -> Deferred:
        directive = Defer()
        self._register(directive)
        return directive.deferred


class _WhenProxy:
    def __init__(self, stub: Any):
        engine_of(stub)
        self._stub = stub

    def __getattr__(self, operation: str) -> Callable[..., ExpectationBuilder]:
        if operation.startswith("__"):
            raise AttributeError(operation)

        def build(*args: Any, **kwargs: Any) -> ExpectationBuilder:
            return ExpectationBuilder(self._stub, CallPattern(operation, args, kwargs))

        return build


def when(stub: Any, pattern: Optional[CallPattern] = None) -> Any:
    """
    Begin configuring a stub.

    `when(stub, on.get("u"))` returns the builder directly;
    `when(stub).get("u")` spells the same call in place.
    """
    if pattern is None:
        return _WhenProxy(stub)
    if not isinstance(pattern, CallPattern):
        raise StubConfigurationError(
            f"when() expects a call pattern such as on.get(...), got {pattern!r}"
        )
    return ExpectationBuilder(stub, pattern)


def verify(
    stub: Any,
    pattern: CallPattern,
    times: Optional[int] = None,
    at_least: Optional[int] = None,
    at_most: Optional[int] = None,
) -> VerificationResult:
    """
    Look up recorded calls matching `pattern`.

    Without count arguments this only reports; with them a mismatch raises
    VerificationMismatchError. Matching calls count as verified for
    verify_no_more_interactions() once the checks pass.
    """
    engine = engine_of(stub)
    matched = engine.find(pattern)
    result = VerificationResult(
        stub_name=engine.name,
        pattern=pattern.describe(),
        invocations=matched,
        history=engine.history(pattern.operation),
    )
    try:
        if times is not None:
            result.times(times)
        if at_least is not None:
            result.at_least(at_least)
        if at_most is not None:
            result.at_most(at_most)
    except VerificationMismatchError as exc:
        get_component_logger("Verification").info(
            "verification_mismatch",
            stub=exc.stub_name,
            pattern=exc.pattern,
            expected=exc.expected,
            actual=exc.actual,
        )
        raise
    engine.mark_verified(matched)
    return result


def history(stub: Any) -> Tuple[Invocation, ...]:
    return engine_of(stub).history()


def verify_no_interactions(stub: Any) -> None:
    engine = engine_of(stub)
    calls = engine.history()
    if calls:
        raise VerificationMismatchError(
            stub_name=engine.name,
            pattern="*",
            expected="no interactions",
            actual=f"{len(calls)} {'call' if len(calls) == 1 else 'calls'}",
            history=tuple(i.describe() for i in calls),
        )


def verify_no_more_interactions(stub: Any) -> None:
    """Fail if any recorded call was never matched by a passing verify()."""
    engine = engine_of(stub)
    leftover = engine.unverified()
    if leftover:
        raise VerificationMismatchError(
            stub_name=engine.name,
            pattern="*",
            expected="no unverified interactions",
            actual=f"{len(leftover)} unverified",
            history=tuple(i.describe() for i in leftover),
        )
