from __future__ import annotations

import pytest

from flatkv import JsonSerializer, LiteralSerializer, RecordStore, StoreConfig, unload


@pytest.fixture(autouse=True)
def _forget_shared_instances():
    yield
    unload()


@pytest.fixture
def make_store(tmp_path):
    """Build a RecordStore in tmp_path; keyword args override StoreConfig fields."""

    def _make(name: str = "test", **options) -> RecordStore:
        cfg = StoreConfig(directory=tmp_path, **options)
        return RecordStore(cfg.path_for(name), cfg)

    return _make


# serializer x cache x gzip, the combinations the store must behave identically under
VARIANTS = [
    pytest.param({"serializer": LiteralSerializer(), "cache": False, "gzip": False}, id="literal-nocache"),
    pytest.param({"serializer": LiteralSerializer(), "cache": True, "gzip": False}, id="literal-cache"),
    pytest.param({"serializer": LiteralSerializer(), "cache": True, "gzip": True}, id="literal-cache-gzip"),
    pytest.param({"serializer": JsonSerializer(), "cache": False, "gzip": False}, id="json-nocache"),
    pytest.param({"serializer": JsonSerializer(), "cache": True, "gzip": False}, id="json-cache"),
    pytest.param({"serializer": JsonSerializer(), "cache": False, "gzip": True}, id="json-nocache-gzip"),
]


@pytest.fixture(params=VARIANTS)
def store(request, make_store) -> RecordStore:
    return make_store(**request.param)
