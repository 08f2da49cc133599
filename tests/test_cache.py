from pathlib import Path

from drivetime.cache import FileCache, MemoryCache


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


def test_memory_cache_expires_after_ttl():
    clock = FakeClock()
    cache = MemoryCache(clock=clock)

    cache.put("k", "42", 3600)
    clock.now += 3599
    assert cache.get("k") == "42"

    clock.now += 1
    assert cache.get("k") is None


def test_file_cache_survives_new_instances(tmp_path: Path):
    clock = FakeClock()
    path = tmp_path / "state" / "cache.json"

    FileCache(str(path), clock=clock).put("drive|a|b|08", "3600000", 3600)

    assert FileCache(str(path), clock=clock).get("drive|a|b|08") == "3600000"


def test_file_cache_drops_expired_entries_on_write(tmp_path: Path):
    clock = FakeClock()
    cache = FileCache(str(tmp_path / "cache.json"), clock=clock)

    cache.put("old", "1", 10)
    clock.now += 20
    cache.put("new", "2", 10)

    assert cache.get("old") is None
    assert "old" not in (tmp_path / "cache.json").read_text(encoding="utf-8")


def test_file_cache_treats_corrupt_file_as_empty(tmp_path: Path):
    path = tmp_path / "cache.json"
    path.write_text("{not json", encoding="utf-8")
    cache = FileCache(str(path))

    assert cache.get("anything") is None
    cache.put("k", "v", 60)
    assert cache.get("k") == "v"


def test_file_cache_ignores_wrong_shape_entries(tmp_path: Path):
    path = tmp_path / "cache.json"
    path.write_text(
        '{"drive|Home|Office|08": "3600000", "other": [1], "bad": {"value": "1", "expires_at": "soon"}}',
        encoding="utf-8",
    )
    cache = FileCache(str(path))

    assert cache.get("drive|Home|Office|08") is None
    assert cache.get("bad") is None
    cache.put("drive|Home|Office|08", "3600000", 60)
    assert cache.get("drive|Home|Office|08") == "3600000"
