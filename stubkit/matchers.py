"""
Argument matchers and call patterns.

A call pattern names an operation and the arguments it should be called
with. Plain values compare by equality; matcher objects decide for
themselves:

    on.get("https://x/1")              # exact
    on.get(ANY)                        # any single argument
    on.get(Predicate(lambda u: u.endswith("/1")))
    on.get(...)                        # any arguments at all
"""
from __future__ import annotations

import inspect
import re
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Mapping, Optional, Pattern, Tuple, Type, Union

from .types import Invocation, format_call


class ArgumentMatcher(ABC):
    @abstractmethod
    def matches(self, value: Any) -> bool:
        ...


class Eq(ArgumentMatcher):
    def __init__(self, expected: Any):
        self.expected = expected

    def matches(self, value: Any) -> bool:
        return bool(value == self.expected)

    def __repr__(self) -> str:
        return repr(self.expected)


class _AnyValue(ArgumentMatcher):
    def matches(self, value: Any) -> bool:
        return True

    def __repr__(self) -> str:
        return "ANY"


ANY = _AnyValue()


class Predicate(ArgumentMatcher):
    def __init__(self, fn: Callable[[Any], bool], description: Optional[str] = None):
        self.fn = fn
        self.description = description or getattr(fn, "__name__", "predicate")

    def matches(self, value: Any) -> bool:
        # A predicate that cannot handle the value does not match it.
        try:
            return bool(self.fn(value))
        except Exception:
            return False

    def __repr__(self) -> str:
        return f"<{self.description}>"


class IsInstance(ArgumentMatcher):
    def __init__(self, kind: Union[Type, Tuple[Type, ...]]):
        self.kind = kind

    def matches(self, value: Any) -> bool:
        return isinstance(value, self.kind)

    def __repr__(self) -> str:
        names = self.kind if isinstance(self.kind, tuple) else (self.kind,)
        return f"<instance of {'|'.join(k.__name__ for k in names)}>"


class Regex(ArgumentMatcher):
    def __init__(self, pattern: Union[str, Pattern[str]]):
        self.pattern = re.compile(pattern) if isinstance(pattern, str) else pattern

    def matches(self, value: Any) -> bool:
        return isinstance(value, str) and self.pattern.search(value) is not None

    def __repr__(self) -> str:
        return f"<matching /{self.pattern.pattern}/>"


class Contains(ArgumentMatcher):
    def __init__(self, item: Any):
        self.item = item

    def matches(self, value: Any) -> bool:
        try:
            return self.item in value
        except TypeError:
            return False

    def __repr__(self) -> str:
        return f"<containing {self.item!r}>"


def as_matcher(value: Any) -> ArgumentMatcher:
    if isinstance(value, ArgumentMatcher):
        return value
    return Eq(value)


def _match_positional(expected: Tuple[ArgumentMatcher, ...], actual: Tuple[Any, ...]) -> bool:
    if len(expected) != len(actual):
        return False
    return all(m.matches(v) for m, v in zip(expected, actual))


def _match_keywords(expected: Mapping[str, ArgumentMatcher], actual: Mapping[str, Any]) -> bool:
    if set(expected) != set(actual):
        return False
    return all(m.matches(actual[k]) for k, m in expected.items())


class CallPattern:
    """
    Operation name plus argument matchers.

    Unbound patterns compare positional and keyword arguments as given.
    `bind_to(signature)` produces a pattern that compares calls by parameter
    name, so `get("u")` and `get(url="u")` are the same call.
    """

    def __init__(
        self,
        operation: str,
        args: Tuple[Any, ...] = (),
        kwargs: Optional[Dict[str, Any]] = None,
    ):
        kwargs = kwargs or {}
        self.operation = operation
        self.any_args = len(args) == 1 and args[0] is Ellipsis and not kwargs
        self.args: Tuple[Any, ...] = () if self.any_args else tuple(args)
        self.kwargs: Dict[str, Any] = dict(kwargs)
        self._signature: Optional[inspect.Signature] = None
        self._bound: Optional[Dict[str, Any]] = None

    def bind_to(self, signature: inspect.Signature) -> "CallPattern":
        """
        Bind the pattern to an operation signature (without `self`).

        Raises TypeError when the pattern does not fit the signature.
        """
        bound_pattern = CallPattern(self.operation, self.args, self.kwargs)
        bound_pattern.any_args = self.any_args
        if self.any_args:
            return bound_pattern
        bound = signature.bind(*self.args, **self.kwargs)
        bound.apply_defaults()
        matchers: Dict[str, Any] = {}
        for name, value in bound.arguments.items():
            kind = signature.parameters[name].kind
            if kind is inspect.Parameter.VAR_POSITIONAL:
                matchers[name] = tuple(as_matcher(v) for v in value)
            elif kind is inspect.Parameter.VAR_KEYWORD:
                matchers[name] = {k: as_matcher(v) for k, v in value.items()}
            else:
                matchers[name] = as_matcher(value)
        bound_pattern._signature = signature
        bound_pattern._bound = matchers
        return bound_pattern

    def matches(self, invocation: Invocation) -> bool:
        if invocation.operation != self.operation:
            return False
        if self.any_args:
            return True
        if self._bound is not None and self._signature is not None:
            return self._match_bound(invocation.arguments)
        return _match_positional(
            tuple(as_matcher(a) for a in self.args), invocation.args
        ) and _match_keywords(
            {k: as_matcher(v) for k, v in self.kwargs.items()}, invocation.kwargs
        )

    def _match_bound(self, actual: Mapping[str, Any]) -> bool:
        if set(self._bound) != set(actual):
            return False
        for name, expected in self._bound.items():
            kind = self._signature.parameters[name].kind
            value = actual[name]
            if kind is inspect.Parameter.VAR_POSITIONAL:
                if not _match_positional(expected, tuple(value)):
                    return False
            elif kind is inspect.Parameter.VAR_KEYWORD:
                if not _match_keywords(expected, value):
                    return False
            elif not expected.matches(value):
                return False
        return True

    def describe(self) -> str:
        if self.any_args:
            return f"{self.operation}(...)"
        return format_call(
            self.operation,
            tuple(as_matcher(a) for a in self.args),
            {k: as_matcher(v) for k, v in self.kwargs.items()},
        )

    def __repr__(self) -> str:
        return f"CallPattern({self.describe()})"
