import os
import pickle
import subprocess
import sys
from pathlib import Path
from typing import Any, Dict

import pytest

from kvcache.domain.interfaces.cache import Cache
from kvcache.domain.models.common import MISS, is_miss


class DictCache(Cache):
    """Minimal in-test backend to exercise the contract's default methods."""

    def __init__(self):
        self.data: Dict[str, Any] = {}
        self.fail_on = set()

    def get(self, key):
        return self.data.get(self.build_key(key), MISS)

    def exists(self, key):
        return self.build_key(key) in self.data

    def set(self, key, value, duration=0):
        if key in self.fail_on:
            return False
        self.data[self.build_key(key)] = value
        return True

    def add(self, key, value, duration=0):
        if self.exists(key):
            return False
        return self.set(key, value, duration)

    def delete(self, key):
        return self.data.pop(self.build_key(key), MISS) is not MISS

    def flush(self):
        self.data.clear()
        return True


@pytest.fixture
def cache():
    return DictCache()


def test_build_key_is_stable_sha256_hex(cache: DictCache):
    """The same logical key always normalizes to the same 64-char hex id."""
    first = cache.build_key("user:42")
    assert first == cache.build_key("user:42")
    assert len(first) == 64
    assert all(c in "0123456789abcdef" for c in first)


def test_build_key_distinguishes_different_keys(cache: DictCache):
    assert cache.build_key("a") != cache.build_key("b")
    assert cache.build_key("a") != cache.build_key(["a"])


def test_build_key_structurally_equal_composites_match(cache: DictCache):
    """Mapping order and list/tuple spelling do not change the normalized key."""
    assert cache.build_key({"b": 2, "a": 1}) == cache.build_key({"a": 1, "b": 2})
    assert cache.build_key(("page", 3)) == cache.build_key(["page", 3])
    assert cache.build_key({"q": ["x", {"z": 1, "y": 2}]}) == cache.build_key({"q": ["x", {"y": 2, "z": 1}]})



@pytest.mark.parametrize("key", [
    {1: "a", "b": 2},
    {(1, 2): "x"},
    {None: 1, True: 2, 3.5: 3},
    [{"b", "a"}, {2: [1, 2]}],
])
def test_build_key_accepts_mappings_with_non_string_keys(cache: DictCache, key):
    normalized = cache.build_key(key)
    assert len(normalized) == 64
    assert normalized == cache.build_key(key)


def test_build_key_mixed_mapping_ignores_insertion_order(cache: DictCache):
    assert cache.build_key({1: "a", "b": 2}) == cache.build_key({"b": 2, 1: "a"})
    assert cache.build_key({(1, 2): "x", (3, 4): "y"}) == cache.build_key({(3, 4): "y", (1, 2): "x"})
    assert cache.build_key({1: "a", "b": 2}) != cache.build_key({1: "a", "b": 3})


def test_build_key_sets_are_order_independent(cache: DictCache):
    assert cache.build_key({"x", "y", "z"}) == cache.build_key(frozenset(["z", "y", "x"]))
    assert cache.build_key({1, "a"}) == cache.build_key({"a", 1})
    assert cache.build_key({"x", "y"}) != cache.build_key({"x", "z"})


def test_build_key_self_referencing_key_falls_back_to_repr(cache: DictCache):
    looped = []
    looped.append(looped)
    assert cache.build_key(looped) == cache.build_key(looped)


SET_KEY_SCRIPT = """
import sys
from kvcache.infrastructure.cache.file_cache import FileCache
cache = FileCache(sys.argv[1])
print(cache.build_key({"tags": {"red", "green", "blue"}, "ids": frozenset({3, 1, 2}), 7: {"x", "y"}}))
"""


def test_build_key_for_sets_is_stable_across_hash_seeds(tmp_path: Path):
    """Set iteration order changes with PYTHONHASHSEED; the normalized key must not."""
    project_root = Path(__file__).resolve().parents[3]
    python_path = os.pathsep.join(filter(None, [str(project_root), os.environ.get("PYTHONPATH")]))
    outputs = set()
    for seed in range(6):
        result = subprocess.run(
            [sys.executable, "-c", SET_KEY_SCRIPT, str(tmp_path / "cache")],
            env={**os.environ, "PYTHONHASHSEED": str(seed), "PYTHONPATH": python_path},
            capture_output=True,
            text=True,
            check=True,
        )
        outputs.add(result.stdout.strip())
    assert len(outputs) == 1
    assert len(outputs.pop()) == 64

def test_miss_sentinel_is_falsy_singleton():
    assert not MISS
    assert repr(MISS) == "MISS"
    assert type(MISS)() is MISS
    assert pickle.loads(pickle.dumps(MISS)) is MISS
    assert is_miss(MISS)
    assert not is_miss(None)


def test_mget_maps_each_key_independently(cache: DictCache):
    cache.set("a", 1)
    cache.set("b", None)
    assert cache.mget(["a", "b", "c"]) == {"a": 1, "b": None, "c": MISS}


def test_mset_reports_failed_keys_without_rollback(cache: DictCache):
    cache.fail_on.add("b")
    failed = cache.mset({"a": 1, "b": 2, "c": 3}, 60)
    assert failed == ["b"]
    assert cache.get("a") == 1
    assert cache.get("c") == 3
    assert cache.get("b") is MISS


def test_madd_skips_present_keys(cache: DictCache):
    cache.set("a", 1)
    failed = cache.madd({"a": 10, "b": 20})
    assert failed == ["a"]
    assert cache.get("a") == 1
    assert cache.get("b") == 20


def test_get_or_set_computes_once(cache: DictCache):
    calls = []

    def compute():
        calls.append(1)
        return "computed"

    assert cache.get_or_set("k", compute, 60) == "computed"
    assert cache.get_or_set("k", compute, 60) == "computed"
    assert len(calls) == 1


def test_get_or_set_returns_cached_falsy_value(cache: DictCache):
    cache.set("k", 0)
    assert cache.get_or_set("k", lambda: 99) == 0
