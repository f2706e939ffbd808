from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Tuple


class DirectiveKind(str, Enum):
    RETURN = "return"
    ANSWER = "answer"
    FAIL = "fail"
    DEFER = "defer"


def format_call(operation: str, args: Tuple[Any, ...], kwargs: Mapping[str, Any]) -> str:
    parts = [repr(a) for a in args]
    parts.extend(f"{k}={v!r}" for k, v in kwargs.items())
    return f"{operation}({', '.join(parts)})"


class StubkitError(Exception):
    """Base class for errors raised by stubkit itself."""


@dataclass(eq=False)
class UnstubbedCallError(StubkitError):
    stub_name: str
    operation: str
    call_args: Tuple[Any, ...] = ()
    call_kwargs: Mapping[str, Any] = field(default_factory=dict)
    configured: Tuple[str, ...] = ()

    def __str__(self) -> str:
        call = format_call(self.operation, self.call_args, self.call_kwargs)
        if not self.configured:
            return (
                f"unstubbed call {self.stub_name}.{call}: "
                f"no expectations configured for '{self.operation}'"
            )
        listing = "; ".join(self.configured)
        return (
            f"unstubbed call {self.stub_name}.{call}: "
            f"no configured pattern matched (configured: {listing})"
        )


@dataclass(eq=False)
class VerificationMismatchError(StubkitError):
    stub_name: str
    pattern: str
    expected: str
    actual: str
    history: Tuple[str, ...] = ()

    def __str__(self) -> str:
        lines = [
            f"verification failed for {self.stub_name}.{self.pattern}",
            f"  expected: {self.expected}",
            f"  actual:   {self.actual}",
        ]
        if self.history:
            lines.append("  recorded calls:")
            lines.extend(f"    {entry}" for entry in self.history)
        else:
            lines.append("  recorded calls: none")
        return "\n".join(lines)


@dataclass(eq=False)
class StubConfigurationError(StubkitError):
    message: str
    stub_name: Optional[str] = None

    def __str__(self) -> str:
        if self.stub_name:
            return f"{self.stub_name}: {self.message}"
        return self.message


class DeferredError(StubkitError):
    """Raised on misuse of a Deferred (double resolution, reading while pending)."""


@dataclass(frozen=True, eq=False)
class Invocation:
    """
    One recorded call on a stub.

    `arguments` holds the call bound to the operation's signature (defaults
    applied) when strict signatures are enabled, otherwise it is empty.

    Records compare and hash by identity; each one is a distinct call. Argument
    objects are kept by reference, so mutating one after the call shows up here.
    """
    sequence: int
    stub_name: str
    operation: str
    args: Tuple[Any, ...]
    kwargs: Mapping[str, Any]
    arguments: Mapping[str, Any]
    timestamp: float

    def describe(self) -> str:
        return f"#{self.sequence} {self.stub_name}.{format_call(self.operation, self.args, self.kwargs)}"
