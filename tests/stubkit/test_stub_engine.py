from abc import ABC, abstractmethod
from typing import Optional

import pytest

from stubkit import (
    ANY,
    Predicate,
    StubConfigurationError,
    StubRegistry,
    UnstubbedCallError,
    create_stub,
    is_stub,
    on,
    verify,
    when,
)


class NotFoundError(Exception):
    pass


class Fetcher(ABC):
    @abstractmethod
    def get(self, url: str, timeout: Optional[float] = None) -> str:
        ...

    @abstractmethod
    def delete(self, url: str) -> None:
        ...


class Catalog:
    """Concrete class used as an interface; its real methods must never run."""

    def lookup(self, key, *extra, **options):
        raise AssertionError("real lookup called")

    @property
    def size(self):
        return 42

    def _private(self):
        return "private"


@pytest.fixture
def registry():
    return StubRegistry()


def test_unconfigured_operation_raises(registry):
    fetcher = create_stub(Fetcher, registry=registry)

    with pytest.raises(UnstubbedCallError) as exc_info:
        fetcher.get("https://x/1")

    err = exc_info.value
    assert err.operation == "get"
    assert err.call_args == ("https://x/1",)
    assert err.configured == ()
    assert "no expectations configured for 'get'" in str(err)


def test_then_return_is_idempotent(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    body = {"title": "Test"}
    when(fetcher, on.get("https://x/1")).then_return(body)

    assert fetcher.get("https://x/1") is body
    assert fetcher.get("https://x/1") is body
    assert fetcher.get("https://x/1") is body


def test_last_registration_wins(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get("https://x/1")).then_return(1)
    when(fetcher, on.get("https://x/1")).then_return(2)

    assert fetcher.get("https://x/1") == 2


def test_specific_registered_before_wildcard_is_shadowed(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get("https://x/1")).then_return("specific")
    when(fetcher, on.get(ANY)).then_return("wildcard")

    assert fetcher.get("https://x/1") == "wildcard"


def test_wildcard_then_specific_override(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get(ANY)).then_return("wildcard")
    when(fetcher, on.get("https://x/1")).then_return("specific")

    assert fetcher.get("https://x/1") == "specific"
    assert fetcher.get("https://x/2") == "wildcard"


def test_then_fail_matching_and_non_matching(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get("url/1")).then_fail(NotFoundError, "missing")

    with pytest.raises(NotFoundError, match="missing"):
        fetcher.get("url/1")

    with pytest.raises(UnstubbedCallError) as exc_info:
        fetcher.get("url/2")
    assert exc_info.value.configured == (
        "get('url/1') -> fail NotFoundError('missing')",
    )


def test_then_fail_instance_is_raised_verbatim(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    error = NotFoundError("gone")
    when(fetcher, on.delete("url/1")).then_fail(error)

    with pytest.raises(NotFoundError) as exc_info:
        fetcher.delete("url/1")
    assert exc_info.value is error


def test_then_fail_new_instance_per_call(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get("u")).then_fail(NotFoundError, "missing")

    errors = []
    for _ in range(2):
        with pytest.raises(NotFoundError) as exc_info:
            fetcher.get("u")
        errors.append(exc_info.value)
    assert errors[0] is not errors[1]


def test_then_fail_rejects_non_exceptions(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    with pytest.raises(TypeError):
        when(fetcher, on.get("u")).then_fail("not an exception")


def test_then_answer_receives_call_arguments(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get(ANY, timeout=ANY)).then_answer(
        lambda url, timeout=None: f"{url}@{timeout}"
    )

    assert fetcher.get("https://x/1", timeout=2.5) == "https://x/1@2.5"
    assert fetcher.get("https://x/2") == "https://x/2@None"


def test_then_answer_is_evaluated_lazily(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    counter = {"calls": 0}

    def answer(url, timeout=None):
        counter["calls"] += 1
        return counter["calls"]

    when(fetcher, on.get("u")).then_answer(answer)
    assert counter["calls"] == 0
    assert fetcher.get("u") == 1
    assert fetcher.get("u") == 2


def test_positional_and_keyword_calls_match_same_pattern(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get("u")).then_return("ok")

    assert fetcher.get(url="u") == "ok"
    assert fetcher.get("u", None) == "ok"
    with pytest.raises(UnstubbedCallError):
        fetcher.get("u", timeout=1.0)


def test_any_arguments_pattern(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get(...)).then_return("anything")

    assert fetcher.get("a") == "anything"
    assert fetcher.get("b", timeout=3) == "anything"


def test_when_proxy_form(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher).get("u").then_return("proxied")

    assert fetcher.get("u") == "proxied"


def test_then_methods_return_the_stub(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    assert when(fetcher).get("u").then_return(1) is fetcher


def test_call_not_fitting_signature_raises_type_error_and_is_not_recorded(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get(...)).then_return("x")

    with pytest.raises(TypeError):
        fetcher.get()
    with pytest.raises(TypeError):
        fetcher.get("u", bogus=True)

    assert verify(fetcher, on.get(...)).count == 0


def test_pattern_not_fitting_signature_is_rejected(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    with pytest.raises(StubConfigurationError, match="does not fit"):
        when(fetcher, on.get("u", "v", "w"))


def test_unknown_operation_is_rejected(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    with pytest.raises(StubConfigurationError, match="no operation 'post'"):
        when(fetcher).post("u")


def test_when_requires_a_stub():
    with pytest.raises(StubConfigurationError, match="is not a stub"):
        when(object(), on.get("u"))


def test_when_requires_a_call_pattern(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    with pytest.raises(StubConfigurationError, match="call pattern"):
        when(fetcher, "get")


def test_create_stub_requires_a_class(registry):
    with pytest.raises(StubConfigurationError):
        registry.create_stub(object())


def test_stub_satisfies_interface(registry):
    fetcher = create_stub(Fetcher, name="primary", registry=registry)

    assert isinstance(fetcher, Fetcher)
    assert is_stub(fetcher)
    assert not is_stub(object())
    assert repr(fetcher) == "<Stub Fetcher 'primary'>"


def test_concrete_class_interface_never_runs_real_code(registry):
    catalog = create_stub(Catalog, registry=registry)
    when(catalog, on.lookup("k", 1, 2, mode="fast")).then_return("hit")

    assert catalog.lookup("k", 1, 2, mode="fast") == "hit"
    with pytest.raises(UnstubbedCallError):
        catalog.lookup("k", 1, mode="fast")
    with pytest.raises(UnstubbedCallError):
        catalog.lookup("k", 1, 2)
    # Properties and private methods are not operations.
    assert catalog.size == 42
    assert catalog._private() == "private"


def test_stubs_are_independent(registry):
    first = create_stub(Fetcher, registry=registry)
    second = create_stub(Fetcher, registry=registry)
    when(first, on.get("u")).then_return("first")

    assert first.get("u") == "first"
    with pytest.raises(UnstubbedCallError):
        second.get("u")


def test_registration_after_invocation_applies_to_later_calls(registry):
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get("u")).then_return("before")
    assert fetcher.get("u") == "before"

    when(fetcher, on.get("u")).then_return("after")
    assert fetcher.get("u") == "after"


def test_non_strict_signatures_compare_arguments_as_given():
    registry = StubRegistry(strict=False)
    fetcher = create_stub(Fetcher, registry=registry)
    when(fetcher, on.get("u")).then_return("positional")

    assert fetcher.get("u") == "positional"
    with pytest.raises(UnstubbedCallError):
        fetcher.get(url="u")


class EventSink(ABC):
    @abstractmethod
    def __call__(self, event):
        ...

    @abstractmethod
    def handle(self, event):
        ...

    @abstractmethod
    def _flush(self, force: bool = False):
        ...

    @property
    @abstractmethod
    def pending(self) -> int:
        ...


def test_abstract_call_is_an_operation(registry):
    sink = create_stub(EventSink, registry=registry)

    with pytest.raises(UnstubbedCallError) as exc_info:
        sink("x")
    assert exc_info.value.operation == "__call__"

    when(sink, on("__call__", "x")).then_return("handled")
    assert sink("x") == "handled"
    # The unconfigured call above is recorded too.
    assert verify(sink, on("__call__", ANY), times=2).count == 2


def test_private_abstract_method_is_an_operation(registry):
    sink = create_stub(EventSink, registry=registry)

    with pytest.raises(UnstubbedCallError):
        sink._flush()

    when(sink, on._flush(force=True)).then_return(3)
    assert sink._flush(True) == 3


def test_abstract_property_fails_loudly(registry):
    sink = create_stub(EventSink, registry=registry)

    with pytest.raises(UnstubbedCallError) as exc_info:
        sink.pending
    assert exc_info.value.operation == "pending"


def test_raising_predicate_is_a_non_match(registry):
    sink = create_stub(EventSink, registry=registry)
    when(sink, on.handle(Predicate(lambda e: e.endswith("/1")))).then_return("one")

    assert sink.handle("event/1") == "one"
    with pytest.raises(UnstubbedCallError):
        sink.handle(None)
