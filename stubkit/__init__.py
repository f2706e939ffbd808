from .types import (
    DeferredError,
    DirectiveKind,
    Invocation,
    StubConfigurationError,
    StubkitError,
    UnstubbedCallError,
    VerificationMismatchError,
)
from .matchers import ANY, ArgumentMatcher, CallPattern, Contains, Eq, IsInstance, Predicate, Regex
from .deferred import Deferred, DeferredState
from .directives import Answer, Defer, Fail, ResponseDirective, ReturnValue
from .registry import StubRegistry
from .verification import VerificationResult
from .stub import is_stub
from .api import (
    ExpectationBuilder,
    create_stub,
    default_registry,
    history,
    on,
    verify,
    verify_no_interactions,
    verify_no_more_interactions,
    when,
)

__all__ = [
    # Types
    "DeferredError",
    "DirectiveKind",
    "Invocation",
    "StubConfigurationError",
    "StubkitError",
    "UnstubbedCallError",
    "VerificationMismatchError",
    # Matchers
    "ANY",
    "ArgumentMatcher",
    "CallPattern",
    "Contains",
    "Eq",
    "IsInstance",
    "Predicate",
    "Regex",
    # Deferred results
    "Deferred",
    "DeferredState",
    # Directives
    "Answer",
    "Defer",
    "Fail",
    "ResponseDirective",
    "ReturnValue",
    # Registry
    "StubRegistry",
    "VerificationResult",
    "is_stub",
    # API
    "ExpectationBuilder",
    "create_stub",
    "default_registry",
    "history",
    "on",
    "verify",
    "verify_no_interactions",
    "verify_no_more_interactions",
    "when",
]
