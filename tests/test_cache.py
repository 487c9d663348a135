from __future__ import annotations

import pytest

from facematch.core.cache import DescriptorCache
from facematch.models.types import FaceDetection, NOT_DETECTED


def _face(x: float) -> FaceDetection:
    return FaceDetection.from_vector([x, 0.0])


def test_lookup_returns_stored_detection_and_none_when_absent():
    cache = DescriptorCache()
    cache.store("https://img.test/a.png", _face(0.1))
    cache.store("data:image/png;base64,AAAA", NOT_DETECTED)

    assert cache.lookup("https://img.test/a.png") == _face(0.1)
    assert cache.lookup("data:image/png;base64,AAAA") is NOT_DETECTED
    assert cache.lookup("https://img.test/missing.png") is None
    assert len(cache) == 2
    assert "https://img.test/a.png" in cache


def test_keys_use_exact_string_equality():
    cache = DescriptorCache()
    cache.store("https://img.test/a.png", _face(0.1))

    assert cache.lookup("https://img.test/a.png ") is None
    assert cache.lookup("HTTPS://img.test/a.png") is None


def test_unbounded_cache_never_evicts():
    cache = DescriptorCache()
    for i in range(500):
        cache.store(f"key-{i}", _face(i / 1000))

    assert cache.policy == "none"
    assert len(cache) == 500
    assert cache.lookup("key-0") == _face(0.0)


def test_lru_evicts_least_recently_used_entry():
    cache = DescriptorCache(max_entries=2)
    cache.store("a", _face(0.1))
    cache.store("b", _face(0.2))

    # Touch "a" so "b" becomes the eviction candidate
    assert cache.lookup("a") is not None
    cache.store("c", _face(0.3))

    assert cache.policy == "lru"
    assert len(cache) == 2
    assert "b" not in cache
    assert cache.lookup("a") == _face(0.1)
    assert cache.lookup("c") == _face(0.3)


def test_overwriting_a_key_does_not_grow_the_cache():
    cache = DescriptorCache(max_entries=2)
    cache.store("a", _face(0.1))
    cache.store("a", _face(0.2))

    assert len(cache) == 1
    assert cache.lookup("a") == _face(0.2)


def test_rejects_placeholder_values():
    cache = DescriptorCache()
    with pytest.raises(TypeError):
        cache.store("https://img.test/a.png", "https://img.test/a.png")


@pytest.mark.parametrize("max_entries", [0, -3])
def test_rejects_non_positive_cap(max_entries: int):
    with pytest.raises(ValueError):
        DescriptorCache(max_entries=max_entries)


def test_clear_empties_the_cache():
    cache = DescriptorCache()
    cache.store("a", _face(0.1))
    cache.clear()

    assert len(cache) == 0
    assert cache.lookup("a") is None
