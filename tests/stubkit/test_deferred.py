import asyncio
import threading

import pytest

from stubkit import Deferred, DeferredError, DeferredState


def test_pending_deferred():
    deferred = Deferred()

    assert not deferred.done()
    assert deferred.state == DeferredState.PENDING
    with pytest.raises(DeferredError, match="pending"):
        deferred.result()
    with pytest.raises(DeferredError):
        deferred.exception()
    assert repr(deferred) == "<Deferred pending>"


def test_resolve_once():
    deferred = Deferred()
    deferred.resolve(5)

    assert deferred.done()
    assert deferred.state == DeferredState.RESOLVED
    assert deferred.result() == 5
    assert deferred.exception() is None
    with pytest.raises(DeferredError, match="already resolved"):
        deferred.resolve(6)
    with pytest.raises(DeferredError):
        deferred.reject(ValueError("late"))


def test_reject_raises_on_result():
    error = ValueError("boom")
    deferred = Deferred.rejected(error)

    assert deferred.state == DeferredState.REJECTED
    assert deferred.exception() is error
    with pytest.raises(ValueError, match="boom"):
        deferred.result()


def test_reject_requires_exception():
    with pytest.raises(TypeError):
        Deferred().reject("not an exception")


def test_done_callbacks():
    seen = []
    deferred = Deferred()
    deferred.add_done_callback(lambda d: seen.append(("early", d.result())))
    deferred.resolve("v")
    deferred.add_done_callback(lambda d: seen.append(("late", d.result())))

    assert seen == [("early", "v"), ("late", "v")]


def test_wait_from_thread():
    deferred = Deferred()
    assert deferred.wait(timeout=0.01) is False

    timer = threading.Timer(0.05, deferred.resolve, args=("later",))
    timer.start()
    try:
        assert deferred.wait(timeout=2.0) is True
    finally:
        timer.join()
    assert deferred.result() == "later"


@pytest.mark.asyncio
async def test_await_already_resolved():
    assert await Deferred.resolved(3) == 3


@pytest.mark.asyncio
async def test_await_pending_then_resolved_in_loop():
    deferred = Deferred()
    asyncio.get_running_loop().call_later(0.01, deferred.resolve, "ready")

    assert await asyncio.wait_for(deferred, timeout=1.0) == "ready"


@pytest.mark.asyncio
async def test_await_resolved_from_other_thread():
    deferred = Deferred()
    timer = threading.Timer(0.02, deferred.resolve, args=("threaded",))
    timer.start()
    try:
        assert await asyncio.wait_for(deferred, timeout=2.0) == "threaded"
    finally:
        timer.join()


@pytest.mark.asyncio
async def test_await_rejected():
    deferred = Deferred()
    asyncio.get_running_loop().call_soon(deferred.reject, KeyError("k"))

    with pytest.raises(KeyError):
        await deferred
