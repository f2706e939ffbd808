"""Verification results and the assertions that can be chained on them."""
from __future__ import annotations

from typing import Any, List, Optional, Tuple

from .types import Invocation, VerificationMismatchError


def _plural(count: int) -> str:
    return "call" if count == 1 else "calls"


class VerificationResult:
    """
    Invocations of one stub that matched one call pattern.

    Ordering helpers compare sequence numbers, which are shared by every
    stub created from the same registry.
    """

    def __init__(
        self,
        stub_name: str,
        pattern: str,
        invocations: Tuple[Invocation, ...],
        history: Tuple[Invocation, ...] = (),
    ):
        self.stub_name = stub_name
        self.pattern = pattern
        self.invocations = invocations
        self.history = history

    @property
    def count(self) -> int:
        return len(self.invocations)

    @property
    def called(self) -> bool:
        return bool(self.invocations)

    @property
    def sequence_numbers(self) -> List[int]:
        return [i.sequence for i in self.invocations]

    @property
    def first(self) -> Optional[Invocation]:
        return self.invocations[0] if self.invocations else None

    @property
    def last(self) -> Optional[Invocation]:
        return self.invocations[-1] if self.invocations else None

    def args_list(self) -> List[Tuple[Any, ...]]:
        """Positional arguments of each matching call, oldest first."""
        return [i.args for i in self.invocations]

    def _fail(self, expected: str, actual: Optional[str] = None) -> VerificationMismatchError:
        return VerificationMismatchError(
            stub_name=self.stub_name,
            pattern=self.pattern,
            expected=expected,
            actual=actual or f"{self.count} matching {_plural(self.count)}",
            history=tuple(i.describe() for i in self.history),
        )

    def times(self, expected: int) -> "VerificationResult":
        if self.count != expected:
            raise self._fail(f"exactly {expected} {_plural(expected)}")
        return self

    def never(self) -> "VerificationResult":
        return self.times(0)

    def at_least(self, minimum: int) -> "VerificationResult":
        if self.count < minimum:
            raise self._fail(f"at least {minimum} {_plural(minimum)}")
        return self

    def at_most(self, maximum: int) -> "VerificationResult":
        if self.count > maximum:
            raise self._fail(f"at most {maximum} {_plural(maximum)}")
        return self

    def called_before(self, other: "VerificationResult") -> "VerificationResult":
        """First matching call here precedes the first matching call of `other`."""
        if self.first is None or other.first is None:
            raise self._fail(
                f"called before {other.stub_name}.{other.pattern}",
                f"{self.count} here, {other.count} for {other.stub_name}.{other.pattern}",
            )
        if self.first.sequence >= other.first.sequence:
            raise self._fail(
                f"called before {other.stub_name}.{other.pattern}",
                f"first call #{self.first.sequence} came after #{other.first.sequence}",
            )
        return self

    def called_after(self, other: "VerificationResult") -> "VerificationResult":
        other.called_before(self)
        return self

    def __repr__(self) -> str:
        return (
            f"<VerificationResult {self.stub_name}.{self.pattern} "
            f"count={self.count} sequence={self.sequence_numbers}>"
        )
