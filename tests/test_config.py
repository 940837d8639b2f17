from __future__ import annotations

import logging

import pytest

from treelinks.config import ManifestConfig, default_config
from treelinks.errors import ConfigError
from treelinks.runtime import configure_logging


def test_default_config_values(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in ("TREELINKS_OUTPUT_NAME", "TREELINKS_HASH_ALGORITHM", "TREELINKS_CHUNK_SIZE"):
        monkeypatch.delenv(key, raising=False)
    config = default_config()
    assert config.output_name == ".link"
    assert config.hash_algorithm == "sha512"
    assert config.digest_size == 64
    assert config.file_name() == ".link"
    assert config.file_name("snap") == "snap.link"


def test_default_config_env_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TREELINKS_OUTPUT_NAME", ".manifest")
    monkeypatch.setenv("TREELINKS_HASH_ALGORITHM", "SHA256")
    monkeypatch.setenv("TREELINKS_CHUNK_SIZE", "4096")
    config = default_config()
    assert config.output_name == ".manifest"
    assert config.hash_algorithm == "sha256"
    assert config.digest_size == 32
    assert config.chunk_size == 4096


@pytest.mark.parametrize(
    "kwargs",
    [
        {"output_name": ""},
        {"output_name": "dir/.link"},
        {"hash_algorithm": "not-a-hash"},
        {"chunk_size": 0},
    ],
)
def test_invalid_config_rejected(kwargs: dict[str, object]) -> None:
    with pytest.raises(ValueError):
        ManifestConfig(**kwargs)  # type: ignore[arg-type]


def test_configure_logging_honors_env_level(monkeypatch: pytest.MonkeyPatch) -> None:
    root = logging.getLogger()
    previous = root.level
    monkeypatch.setenv("TREELINKS_LOG_LEVEL", "debug")
    try:
        configure_logging(logging.WARNING)
        assert root.level == logging.DEBUG
    finally:
        root.setLevel(previous)


def test_non_integer_chunk_size_names_variable(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("TREELINKS_CHUNK_SIZE", "64k")
    with pytest.raises(ConfigError) as excinfo:
        default_config()
    assert "TREELINKS_CHUNK_SIZE" in str(excinfo.value)
    assert "64k" in str(excinfo.value)
