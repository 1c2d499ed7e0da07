"""
Tests for the dataset and statistics caches.
"""
import time
import pytest
from app.core.cache import (
    CachedDataset,
    SimpleCache,
    configure_cache_ttl,
    generate_dataset_id,
    get_dataset_cache,
    get_stats_cache,
)


@pytest.mark.unit
def test_simple_cache_set_get():
    """Test basic cache set and get operations."""
    cache = SimpleCache(default_ttl=1.0)

    cache.set("key1", "value1")
    assert cache.get("key1") == "value1"

    cache.set("key2", "value2", ttl=0.1)
    time.sleep(0.2)
    assert cache.get("key2") is None
    assert cache.get("never-set") is None


@pytest.mark.unit
def test_simple_cache_cleanup_and_stats():
    """Expired entries are removed and no longer counted."""
    cache = SimpleCache(default_ttl=0.1)
    cache.set("key1", "value1")
    cache.set("key2", "value2", ttl=5.0)

    time.sleep(0.15)
    stats = cache.get_stats()

    assert stats["size"] == 1
    assert stats["default_ttl"] == 0.1
    assert cache.get("key2") == "value2"


@pytest.mark.unit
def test_simple_cache_delete_and_clear():
    cache = SimpleCache()
    cache.set("a", 1)
    cache.set("b", 2)
    cache.delete("a")
    cache.delete("missing")
    assert cache.get("a") is None
    cache.clear()
    assert cache.get_stats()["size"] == 0


@pytest.mark.unit
def test_generate_dataset_id():
    """Same content and name give the same id; anything else differs."""
    first = generate_dataset_id(b"a,b\n1,2", "data.csv")
    assert first == generate_dataset_id(b"a,b\n1,2", "data.csv")
    assert first != generate_dataset_id(b"a,b\n1,3", "data.csv")
    assert first != generate_dataset_id(b"a,b\n1,2", "other.csv")
    assert len(first) == 32


@pytest.mark.unit
def test_cached_dataset_is_frozen():
    dataset = CachedDataset(filename="f.csv", header=["a"], rows=[{"a": 1}])
    assert dataset.dropped_rows == 0
    with pytest.raises(AttributeError):
        dataset.filename = "other.csv"


@pytest.mark.unit
def test_cache_instances():
    """Test that cache instances are singletons."""
    assert get_dataset_cache() is get_dataset_cache()
    assert get_stats_cache() is get_stats_cache()
    assert get_dataset_cache() is not get_stats_cache()


@pytest.mark.unit
def test_configure_cache_ttl():
    original = get_dataset_cache().default_ttl
    try:
        configure_cache_ttl(120)
        assert get_dataset_cache().default_ttl == 120
        assert get_stats_cache().default_ttl == 120
    finally:
        configure_cache_ttl(original)
