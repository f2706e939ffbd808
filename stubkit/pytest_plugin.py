"""
pytest fixtures for stubkit.

Enable with `pytest_plugins = ["stubkit.pytest_plugin"]` in a root
conftest.py. Each test gets its own registry, so sequence numbers and
cross-stub history never leak between tests.
"""
from __future__ import annotations

from typing import Any, Callable, Optional

import pytest

from .registry import StubRegistry


@pytest.fixture
def stub_registry() -> StubRegistry:
    """Fresh StubRegistry for the current test."""
    return StubRegistry()


@pytest.fixture
def make_stub(stub_registry: StubRegistry) -> Callable[..., Any]:
    """
    Factory creating stubs in the test's registry.

        def test_load(make_stub):
            client = make_stub(HttpClient)
    """

    def _make(interface: type, name: Optional[str] = None) -> Any:
        return stub_registry.create_stub(interface, name=name)

    return _make
