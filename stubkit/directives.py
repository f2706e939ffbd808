from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional, Type, Union

from .deferred import Deferred
from .types import DirectiveKind, Invocation


class ResponseDirective(ABC):
    """What a matched call does. Evaluated at call time, never at setup."""

    kind: DirectiveKind

    @abstractmethod
    def respond(self, invocation: Invocation) -> Any:
        ...

    @abstractmethod
    def describe(self) -> str:
        ...


class ReturnValue(ResponseDirective):
    kind = DirectiveKind.RETURN

    def __init__(self, value: Any):
        self.value = value

    def respond(self, invocation: Invocation) -> Any:
        return self.value

    def describe(self) -> str:
        return f"return {self.value!r}"


class Answer(ResponseDirective):
    """
    Computes the response from the actual call arguments.

    The callback receives the arguments exactly as the caller passed them.
    Whatever it returns (a value, a coroutine, a Deferred) is handed back.
    """

    kind = DirectiveKind.ANSWER

    def __init__(self, fn: Callable[..., Any]):
        if not callable(fn):
            raise TypeError(f"then_answer() expects a callable, got {type(fn).__name__}")
        self.fn = fn

    def respond(self, invocation: Invocation) -> Any:
        return self.fn(*invocation.args, **invocation.kwargs)

    def describe(self) -> str:
        return f"answer {getattr(self.fn, '__name__', repr(self.fn))}"


class Fail(ResponseDirective):
    kind = DirectiveKind.FAIL

    def __init__(
        self,
        error: Union[BaseException, Type[BaseException]],
        message: Optional[str] = None,
    ):
        is_type = isinstance(error, type) and issubclass(error, BaseException)
        if not is_type and not isinstance(error, BaseException):
            raise TypeError(
                f"then_fail() expects an exception type or instance, got {error!r}"
            )
        if not is_type and message is not None:
            raise TypeError("then_fail() takes no message when given an exception instance")
        self.error = error
        self.message = message

    def respond(self, invocation: Invocation) -> Any:
        if isinstance(self.error, BaseException):
            raise self.error
        if self.message is None:
            raise self.error()
        raise self.error(self.message)

    def describe(self) -> str:
        if isinstance(self.error, BaseException):
            return f"fail {self.error!r}"
        name = self.error.__name__
        if self.message is None:
            return f"fail {name}"
        return f"fail {name}({self.message!r})"


class Defer(ResponseDirective):
    kind = DirectiveKind.DEFER

    def __init__(self, deferred: Optional[Deferred] = None):
        self.deferred = deferred or Deferred()

    def respond(self, invocation: Invocation) -> Any:
        return self.deferred

    def describe(self) -> str:
        return f"defer {self.deferred!r}"
