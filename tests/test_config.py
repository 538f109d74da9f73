from __future__ import annotations

from pathlib import Path

import pytest

from flatkv import ConfigError, JsonSerializer, LiteralSerializer, StoreConfig, init_config, load_config


def test_defaults(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    cfg = StoreConfig()
    assert cfg.directory == tmp_path
    assert cfg.extension == ".dat"
    assert cfg.gzip is False
    assert cfg.cache is True
    assert cfg.swap_memory_limit == 2 * 1024 * 1024
    assert isinstance(cfg.serializer, LiteralSerializer)
    assert cfg.separator == "="


def test_path_for(tmp_path):
    cfg = StoreConfig(directory=str(tmp_path), extension="db")
    assert cfg.extension == ".db"
    assert cfg.path_for("users") == tmp_path / "users.db"
    assert StoreConfig(directory=tmp_path, extension="").path_for("raw") == tmp_path / "raw"


def test_serializer_by_name(tmp_path):
    assert isinstance(StoreConfig(directory=tmp_path, serializer="json").serializer, JsonSerializer)
    with pytest.raises(ConfigError):
        StoreConfig(directory=tmp_path, serializer="yaml")
    with pytest.raises(ConfigError):
        StoreConfig(directory=tmp_path, serializer=object())


@pytest.mark.parametrize("limit", [-1, 1.5, "2M", True])
def test_invalid_swap_limit(tmp_path, limit):
    with pytest.raises(ConfigError):
        StoreConfig(directory=tmp_path, swap_memory_limit=limit)


@pytest.mark.parametrize("options", [{"gzip": "no"}, {"gzip": 0}, {"cache": 1}, {"cache": "false"}, {"cache": None}])
def test_invalid_bool_options(tmp_path, options):
    with pytest.raises(ConfigError, match="must be true or false"):
        StoreConfig(directory=tmp_path, **options)


def test_load_config_rejects_quoted_bool(tmp_path):
    (tmp_path / "flatkv.toml").write_text('[flatkv]\ngzip = "no"\n')
    with pytest.raises(ConfigError, match="gzip"):
        load_config(tmp_path)


@pytest.mark.parametrize("separator",["", "==", "\n", "\r", 1])
def test_invalid_separator(tmp_path, separator):
    with pytest.raises(ConfigError):
        StoreConfig(directory=tmp_path, separator=separator)


def test_config_is_frozen(tmp_path):
    cfg = StoreConfig(directory=tmp_path)
    with pytest.raises(AttributeError):
        cfg.gzip = True  # type: ignore[misc]


def test_replace(tmp_path):
    cfg = StoreConfig(directory=tmp_path)
    other = cfg.replace(cache=False, serializer="json")
    assert other.cache is False
    assert isinstance(other.serializer, JsonSerializer)
    assert cfg.cache is True
    assert cfg == StoreConfig(directory=tmp_path)
    with pytest.raises(ConfigError):
        cfg.replace(colour="blue")


def test_load_config_without_file(tmp_path):
    cfg = load_config(tmp_path)
    assert cfg.directory == tmp_path
    assert cfg == StoreConfig(directory=tmp_path)


def test_load_config_from_toml(tmp_path):
    (tmp_path / "flatkv.toml").write_text(
        '[flatkv]\n'
        'directory = "data"\n'
        'extension = "kv"\n'
        'gzip = true\n'
        'cache = false\n'
        'swap_memory_limit = 1024\n'
        'serializer = "json"\n'
        'separator = "|"\n'
    )
    cfg = load_config(tmp_path)
    assert cfg.directory == tmp_path / "data"
    assert cfg.extension == ".kv"
    assert cfg.gzip is True
    assert cfg.cache is False
    assert cfg.swap_memory_limit == 1024
    assert isinstance(cfg.serializer, JsonSerializer)
    assert cfg.separator == "|"


def test_load_config_absolute_directory(tmp_path):
    target = tmp_path / "elsewhere"
    (tmp_path / "flatkv.toml").write_text(f'[flatkv]\ndirectory = "{target}"\n')
    assert load_config(tmp_path).directory == target


def test_load_config_searches_upward(tmp_path, monkeypatch):
    (tmp_path / "flatkv.toml").write_text('[flatkv]\ndirectory = "store"\n')
    nested = tmp_path / "a" / "b"
    nested.mkdir(parents=True)
    monkeypatch.chdir(nested)
    assert load_config().directory == tmp_path / "store"


def test_load_config_rejects_unknown_options(tmp_path):
    (tmp_path / "flatkv.toml").write_text('[flatkv]\ncompression = "zstd"\n')
    with pytest.raises(ConfigError, match="compression"):
        load_config(tmp_path)


def test_load_config_rejects_bad_toml(tmp_path):
    (tmp_path / "flatkv.toml").write_text("[flatkv\n")
    with pytest.raises(ConfigError):
        load_config(tmp_path)


def test_init_config(tmp_path):
    path = init_config(tmp_path)
    assert path == tmp_path / "flatkv.toml"
    cfg = load_config(tmp_path)
    assert cfg.directory == tmp_path / "data"
    assert cfg == StoreConfig(directory=Path(tmp_path / "data"))
    with pytest.raises(FileExistsError):
        init_config(tmp_path)
