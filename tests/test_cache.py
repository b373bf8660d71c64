import asyncio
import threading
from datetime import datetime, timedelta, timezone

import pytest

from flatflow.services.cache import EPOCH, ResultCache, make_fingerprint


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


T0 = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_make_fingerprint_takes_latest_timestamp():
    fp = make_fingerprint("g1", T0, None, T0 + timedelta(minutes=5))
    assert fp.last_modified == T0 + timedelta(minutes=5)
    assert fp.etag == f'"g1-{int((T0 + timedelta(minutes=5)).timestamp() * 1000)}"'


def test_make_fingerprint_without_data():
    assert make_fingerprint("g1").last_modified == EPOCH
    assert make_fingerprint("g1", None, None).last_modified == EPOCH


def test_make_fingerprint_treats_naive_as_utc():
    naive = datetime(2026, 1, 1, 12, 0)
    assert make_fingerprint("g1", naive) == make_fingerprint("g1", T0)


def test_hit_with_matching_fingerprint():
    cache = ResultCache(clock=FakeClock())
    fp = make_fingerprint("g1", T0)

    assert cache.get("g1", fp) is None
    assert cache.publish("g1", fp, "report")
    assert cache.get("g1", fp) == "report"


def test_entry_expires_after_ttl():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=300, clock=clock)
    fp = make_fingerprint("g1", T0)
    cache.publish("g1", fp, "report")

    clock.advance(300)
    assert cache.get("g1", fp) == "report"

    clock.advance(1)
    assert cache.get("g1", fp) is None
    assert len(cache) == 0


def test_newer_fingerprint_invalidates_entry():
    cache = ResultCache(clock=FakeClock())
    cache.publish("g1", make_fingerprint("g1", T0), "old")

    assert cache.get("g1", make_fingerprint("g1", T0 + timedelta(seconds=1))) is None
    assert len(cache) == 0


def test_older_fingerprint_keeps_newer_entry():
    cache = ResultCache(clock=FakeClock())
    newer = make_fingerprint("g1", T0 + timedelta(seconds=1))
    cache.publish("g1", newer, "new")

    assert cache.get("g1", make_fingerprint("g1", T0)) is None
    assert cache.get("g1", newer) == "new"


def test_publish_rejects_stale_result():
    cache = ResultCache(clock=FakeClock())
    newer = make_fingerprint("g1", T0 + timedelta(seconds=1))
    cache.publish("g1", newer, "new")

    assert not cache.publish("g1", make_fingerprint("g1", T0), "old")
    assert cache.get("g1", newer) == "new"


def test_publish_replaces_expired_newer_entry():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=10, clock=clock)
    cache.publish("g1", make_fingerprint("g1", T0 + timedelta(seconds=1)), "new")
    clock.advance(11)

    older = make_fingerprint("g1", T0)
    assert cache.publish("g1", older, "old")
    assert cache.get("g1", older) == "old"


def test_sweep_removes_only_expired():
    clock = FakeClock()
    cache = ResultCache(ttl_seconds=10, clock=clock)
    cache.publish("g1", make_fingerprint("g1", T0), "a")
    clock.advance(6)
    cache.publish("g2", make_fingerprint("g2", T0), "b")
    clock.advance(6)

    assert cache.sweep() == 1
    assert len(cache) == 1
    assert cache.get("g2", make_fingerprint("g2", T0)) == "b"


def test_max_entries_evicts_oldest():
    clock = FakeClock()
    cache = ResultCache(max_entries=2, clock=clock)
    for group_id in ("g1", "g2", "g3"):
        cache.publish(group_id, make_fingerprint(group_id, T0), group_id)
        clock.advance(1)

    assert len(cache) == 2
    assert cache.get("g1", make_fingerprint("g1", T0)) is None
    assert cache.get("g3", make_fingerprint("g3", T0)) == "g3"


def test_invalidate_and_clear():
    cache = ResultCache(clock=FakeClock())
    cache.publish("g1", make_fingerprint("g1", T0), "a")
    cache.publish("g2", make_fingerprint("g2", T0), "b")

    cache.invalidate("g1")
    assert len(cache) == 1
    cache.clear()
    assert len(cache) == 0


def test_rejects_bad_configuration():
    with pytest.raises(ValueError):
        ResultCache(ttl_seconds=0)
    with pytest.raises(ValueError):
        ResultCache(max_entries=0)


@pytest.mark.asyncio
async def test_get_or_compute_caches_result():
    cache = ResultCache(clock=FakeClock())
    fp = make_fingerprint("g1", T0)
    calls = 0

    async def compute() -> str:
        nonlocal calls
        calls += 1
        return "report"

    assert await cache.get_or_compute("g1", fp, compute) == ("report", False)
    assert await cache.get_or_compute("g1", fp, compute) == ("report", True)
    assert calls == 1


@pytest.mark.asyncio
async def test_get_or_compute_coalesces_concurrent_callers():
    cache = ResultCache(clock=FakeClock())
    fp = make_fingerprint("g1", T0)
    release = asyncio.Event()
    calls = 0

    async def compute() -> str:
        nonlocal calls
        calls += 1
        await release.wait()
        return "report"

    waiters = [asyncio.create_task(cache.get_or_compute("g1", fp, compute)) for _ in range(5)]
    await asyncio.sleep(0)
    release.set()
    results = await asyncio.gather(*waiters)

    assert calls == 1
    assert results == [("report", False)] * 5
    assert cache.get("g1", fp) == "report"


@pytest.mark.asyncio
async def test_get_or_compute_propagates_errors_and_retries():
    cache = ResultCache(clock=FakeClock())
    fp = make_fingerprint("g1", T0)
    attempts = 0

    async def compute() -> str:
        nonlocal attempts
        attempts += 1
        if attempts == 1:
            raise RuntimeError("database went away")
        return "report"

    with pytest.raises(RuntimeError):
        await cache.get_or_compute("g1", fp, compute)

    assert await cache.get_or_compute("g1", fp, compute) == ("report", False)
    assert attempts == 2


@pytest.mark.asyncio
async def test_get_or_compute_serves_cached_none():
    cache = ResultCache(clock=FakeClock())
    fp = make_fingerprint("g1", T0)
    calls = 0

    async def compute() -> None:
        nonlocal calls
        calls += 1
        return None

    assert await cache.get_or_compute("g1", fp, compute) == (None, False)
    assert await cache.get_or_compute("g1", fp, compute) == (None, True)
    assert calls == 1


def test_get_or_compute_coalesces_across_threads():
    cache = ResultCache()
    fp = make_fingerprint("g1", T0)
    started = threading.Event()
    release = threading.Event()
    calls: list[str] = []
    results: dict[str, tuple] = {}
    errors: list[BaseException] = []

    async def slow() -> str:
        calls.append("slow")
        started.set()
        while not release.is_set():
            await asyncio.sleep(0.01)
        return "report"

    async def fast() -> str:
        calls.append("fast")
        return "other"

    def run(name, compute) -> None:
        try:
            results[name] = asyncio.run(cache.get_or_compute("g1", fp, compute))
        except Exception as exc:
            errors.append(exc)

    first = threading.Thread(target=run, args=("first", slow))
    first.start()
    assert started.wait(5)

    second = threading.Thread(target=run, args=("second", fast))
    second.start()
    second.join(0.2)
    assert second.is_alive()

    release.set()
    first.join(5)
    second.join(5)

    assert errors == []
    assert calls == ["slow"]
    assert results == {"first": ("report", False), "second": ("report", False)}
    assert cache.get("g1", fp) == "report"


def test_failure_reaches_callers_on_other_threads():
    cache = ResultCache()
    fp = make_fingerprint("g1", T0)
    started = threading.Event()
    release = threading.Event()
    errors: dict[str, BaseException] = {}

    async def failing() -> str:
        started.set()
        while not release.is_set():
            await asyncio.sleep(0.01)
        raise RuntimeError("database went away")

    async def unused() -> str:
        return "other"

    def run(name, compute) -> None:
        try:
            asyncio.run(cache.get_or_compute("g1", fp, compute))
        except Exception as exc:
            errors[name] = exc

    first = threading.Thread(target=run, args=("first", failing))
    first.start()
    assert started.wait(5)
    second = threading.Thread(target=run, args=("second", unused))
    second.start()
    second.join(0.2)

    release.set()
    first.join(5)
    second.join(5)

    assert isinstance(errors["first"], RuntimeError)
    assert isinstance(errors["second"], RuntimeError)
    assert len(cache) == 0
