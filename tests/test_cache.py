from datetime import timedelta

from ghdashboard.cache import CACHE_FILE, Cache
from ghdashboard.models import Issue, Repository

HOUR = timedelta(hours=1)


def test_set_then_get(tmp_path):
    cache = Cache(tmp_path, HOUR)
    cache.set("repos_octo", [Repository(name="alpha")])
    assert cache.get("repos_octo") == [Repository(name="alpha")]


def test_missing_key_returns_default(tmp_path):
    cache = Cache(tmp_path, HOUR)
    assert cache.get("absent") is None
    marker = object()
    assert cache.get("absent", marker) is marker


def test_expired_entry_is_hidden(tmp_path):
    cache = Cache(tmp_path, timedelta(seconds=-1))
    cache.set("k", [1, 2])
    assert cache.get("k", "gone") == "gone"


def test_persists_across_instances(tmp_path):
    first = Cache(tmp_path, HOUR)
    first.set("issues_o_r", [Issue(number=3, title="bug")])
    assert (tmp_path / CACHE_FILE).is_file()
    second = Cache(tmp_path, HOUR)
    assert second.get("issues_o_r") == [Issue(number=3, title="bug")]


def test_expired_entries_dropped_on_load(tmp_path):
    stale = Cache(tmp_path, timedelta(seconds=-1))
    stale.set("old", "value")
    fresh = Cache(tmp_path, HOUR)
    assert fresh.get("old", "missing") == "missing"


def test_clear_removes_and_persists(tmp_path):
    cache = Cache(tmp_path, HOUR)
    cache.set("a", 1)
    cache.set("b", 2)
    cache.clear()
    assert cache.get("a") is None
    assert Cache(tmp_path, HOUR).get("b") is None


def test_corrupt_file_starts_fresh(tmp_path):
    (tmp_path / CACHE_FILE).write_bytes(b"not a cache at all")
    cache = Cache(tmp_path, HOUR)
    assert cache.get("anything", "empty") == "empty"
    cache.set("x", "y")
    assert Cache(tmp_path, HOUR).get("x") == "y"


def test_missing_directory_does_not_raise_on_save(tmp_path):
    directory = tmp_path / "nowhere"
    cache = Cache(directory, HOUR)
    cache.set("k", "v")
    assert cache.get("k") == "v"
    assert not directory.exists()


def test_overwrite_replaces_value(tmp_path):
    cache = Cache(tmp_path, HOUR)
    cache.set("k", "first")
    cache.set("k", "second")
    assert cache.get("k") == "second"
    assert Cache(tmp_path, HOUR).get("k") == "second"