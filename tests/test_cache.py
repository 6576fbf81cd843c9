import threading
import time

import pytest

from myjantes.errors import ApiError, ValidationError
from myjantes.services.cache import QueryCache


def test_fresh_entries_are_served_from_cache():
    cache = QueryCache(stale_seconds=60, retry=0)
    calls = []
    fn = lambda: calls.append(1) or ["quote"]
    assert cache.fetch(("quotes",), fn) == ["quote"]
    assert cache.fetch(("quotes",), fn) == ["quote"]
    assert len(calls) == 1


def test_stale_entries_are_refetched():
    cache = QueryCache(stale_seconds=0, retry=0)
    calls = []
    cache.fetch(("quotes",), lambda: calls.append(1))
    time.sleep(0.01)
    cache.fetch(("quotes",), lambda: calls.append(1))
    assert len(calls) == 2


def test_retries_api_errors_but_not_validation_errors():
    cache = QueryCache(retry=2)
    attempts = []

    def flaky():
        attempts.append(1)
        if len(attempts) < 3:
            raise ApiError("503 Service Unavailable", status_code=503)
        return "ok"

    assert cache.fetch(("flaky",), flaky) == "ok"
    assert len(attempts) == 3

    def invalid():
        attempts.append(1)
        raise ValidationError("nope")

    attempts.clear()
    with pytest.raises(ValidationError):
        cache.fetch(("invalid",), invalid)
    assert len(attempts) == 1


def test_gives_up_after_retry_budget():
    cache = QueryCache(retry=1)
    attempts = []

    def down():
        attempts.append(1)
        raise ApiError("500 Internal Server Error", status_code=500)

    with pytest.raises(ApiError):
        cache.fetch(("down",), down)
    assert len(attempts) == 2
    assert cache.peek(("down",)) is None


def test_invalidate_by_prefix():
    cache = QueryCache()
    cache.set(("quotes",), [1])
    cache.set(("quote", "1"), {"id": 1})
    cache.set(("quote", "2"), {"id": 2})
    cache.set(("invoices",), [])
    assert cache.invalidate(("quote",)) == 2
    assert cache.peek(("quotes",)) == [1]
    assert cache.peek(("quote", "1")) is None
    cache.clear()
    assert cache.peek(("invoices",)) is None


def test_concurrent_fetches_share_one_call():
    cache = QueryCache(retry=0)
    calls = []
    gate = threading.Event()

    def slow():
        calls.append(1)
        gate.wait(1)
        return "data"

    results = []
    threads = [threading.Thread(target=lambda: results.append(cache.fetch(("k",), slow))) for _ in range(5)]
    for t in threads:
        t.start()
    time.sleep(0.05)
    gate.set()
    for t in threads:
        t.join()
    assert results == ["data"] * 5
    assert len(calls) == 1


def test_result_fetched_across_an_invalidation_is_not_cached():
    cache = QueryCache(retry=0)

    def list_then_mutate():
        # A mutation lands while the list request is still on the wire
        cache.invalidate(("admin-invoices",))
        return ["before mutation"]

    assert cache.fetch(("admin-invoices",), list_then_mutate) == ["before mutation"]
    assert cache.peek(("admin-invoices",)) is None
    assert cache.fetch(("admin-invoices",), lambda: ["after mutation"]) == ["after mutation"]
    assert cache.peek(("admin-invoices",)) == ["after mutation"]


def test_failed_fetch_keeps_a_newer_callers_lock():
    cache = QueryCache(retry=0)
    newer = threading.Lock()

    def fail_after_newer_caller_registers():
        with cache._lock:
            cache._inflight[("k",)] = newer
        raise ApiError("502 Bad Gateway", status_code=502)

    with pytest.raises(ApiError):
        cache.fetch(("k",), fail_after_newer_caller_registers)
    assert cache._inflight.get(("k",)) is newer
