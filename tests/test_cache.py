# tests/test_cache.py

"""
Tests for caching functionality.
"""

from datetime import datetime, timedelta
from unittest.mock import Mock, patch

import pytest
from core.cache import (
    SimpleCache,
    cache_clear,
    get_cache,
    cached_call,
    invalidate,
)
from core.scheduler import run_cleanup


def test_cache_set_and_get():
    get_cache().set("locations:1", ["Harbour"], ttl_seconds=60)
    assert get_cache().get("locations:1") == ["Harbour"]


def test_cache_expiration():
    cache = SimpleCache()
    cache.set("brands:1", "Toyota", ttl_seconds=60)

    later = datetime.now() + timedelta(seconds=61)
    with patch("core.cache.datetime") as mock_datetime:
        mock_datetime.now.return_value = later
        assert cache.get("brands:1") is None


def test_cleanup_expired_counts_removed():
    cache = SimpleCache()
    cache.set("stale", 1, ttl_seconds=0)
    cache.set("fresh", 2, ttl_seconds=300)

    assert cache.cleanup_expired() == 1
    assert cache.size() == 1


def test_invalidate_by_prefix():
    get_cache().set("hotels:1:20", "page one")
    get_cache().set("hotels:2:20", "page two")
    get_cache().set("locations:1:20", "kept")

    invalidate("hotels:")

    assert get_cache().get("hotels:1:20") is None
    assert get_cache().get("hotels:2:20") is None
    assert get_cache().get("locations:1:20") == "kept"


def test_cached_call_loads_once():
    loader = Mock(return_value={"data": []})

    assert cached_call("currencies:1", loader) == {"data": []}
    assert cached_call("currencies:1", loader) == {"data": []}
    assert loader.call_count == 1


def test_cached_call_does_not_store_failures():
    loader = Mock(side_effect=RuntimeError("db down"))

    with pytest.raises(RuntimeError):
        cached_call("currencies:2", loader)
    assert get_cache().get("currencies:2") is None


def test_cache_clear():
    get_cache().set("key1", "value1")
    get_cache().set("key2", "value2")

    cache_clear()

    assert get_cache().get("key1") is None
    assert get_cache().get("key2") is None


def test_scheduled_cleanup_prunes_both_stores():
    with patch("core.scheduler.rate_limiter.cleanup_expired", return_value=2) as windows, \
            patch("core.scheduler.get_cache") as mock_get_cache:
        mock_get_cache.return_value.cleanup_expired.return_value = 3
        run_cleanup()

    windows.assert_called_once()
    mock_get_cache.return_value.cleanup_expired.assert_called_once()
