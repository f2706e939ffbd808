from __future__ import annotations

from abc import ABC, abstractmethod
from importlib import metadata


def _version(pkg: str) -> str:
    try:
        return metadata.version(pkg)
    except metadata.PackageNotFoundError:
        return "unknown"


class _Probe(ABC):
    @abstractmethod
    def ping(self, value: int) -> int:
        ...


def run_selftest() -> bool:
    """
    Lightweight import/dep check plus one stub round through the engine.
    """
    try:
        import structlog  # noqa: F401
        print(f"stubkit selftest: structlog {_version('structlog')}")
    except ImportError as exc:
        print(f"stubkit selftest: missing structlog ({exc})")
        return False

    try:
        from stubkit.api import create_stub, on, verify, when
        from stubkit.registry import StubRegistry
        print("stubkit selftest: core imports ok")
    except ImportError as exc:
        print(f"stubkit selftest: import failed ({exc})")
        return False

    registry = StubRegistry()
    probe = create_stub(_Probe, registry=registry)
    when(probe, on.ping(1)).then_return(2)
    if probe.ping(1) != 2 or verify(probe, on.ping(1)).count != 1:
        print("stubkit selftest: stub round trip failed")
        return False

    print("stubkit selftest: ok")
    return True


if __name__ == "__main__":
    run_selftest()
