"""Tests for the Redis layer cache and fingerprint helpers."""

import hashlib
import json

import pytest
import pytest_mock
import redis

from layering.cache import LayerCache, cache_key, file_md5
from layering.errors import CacheError
from layering.models import BoundingBox, Layer, LayerResult, LayerType


def _result(md5: str = "abc") -> LayerResult:
    return LayerResult(
        md5=md5,
        width=40,
        height=30,
        timestamp=1700000000,
        layers=[
            Layer(1, LayerType.FOREGROUND, BoundingBox(1, 2, 3, 4), "Zm9v", 0.25),
            Layer(2, LayerType.BACKGROUND, BoundingBox(0, 0, 40, 30), "YmFy", 0.75),
        ],
    )


@pytest.fixture
def client(mocker: pytest_mock.MockerFixture):
    return mocker.create_autospec(redis.Redis, instance=True)


def test_cache_key_variants() -> None:
    assert cache_key("abc") == "abc"
    assert cache_key("abc", max_foreground_only=True) == "abc:max_fg"


def test_fingerprints(tmp_path) -> None:
    data = b"layer me"
    path = tmp_path / "img.bin"
    path.write_bytes(data)

    expected = hashlib.md5(data).hexdigest()
    assert file_md5(path, chunk_size=3) == expected


def test_get_miss_returns_none(client) -> None:
    client.get.return_value = None

    assert LayerCache(client, ttl=60).get("abc") is None
    client.get.assert_called_once_with("layer:abc")


def test_set_then_get_round_trips_through_json(client) -> None:
    cache = LayerCache(client, ttl=3600)
    result = _result()

    cache.set("abc", result)
    key, ttl, payload = client.setex.call_args.args
    assert (key, ttl) == ("layer:abc", 3600)
    assert json.loads(payload)["layers"][0]["type"] == "foreground"

    client.get.return_value = payload.encode("utf-8")
    assert cache.get("abc") == result


def test_redis_failures_become_cache_errors(client) -> None:
    client.get.side_effect = redis.ConnectionError("down")
    client.setex.side_effect = redis.TimeoutError("slow")
    cache = LayerCache(client, ttl=60)

    with pytest.raises(CacheError):
        cache.get("abc")
    with pytest.raises(CacheError):
        cache.set("abc", _result())


def test_corrupt_entry_is_cache_error(client) -> None:
    client.get.return_value = b'{"md5": "abc"}'

    with pytest.raises(CacheError):
        LayerCache(client, ttl=60).get("abc")


def test_ping_reports_unreachable_redis(client) -> None:
    client.ping.side_effect = redis.ConnectionError("down")

    assert LayerCache(client, ttl=60).ping() is False
