from __future__ import annotations

import os
from dataclasses import dataclass

from treelinks.canonical import DEFAULT_ALGORITHM, digest_size as algorithm_digest_size
from treelinks.errors import ConfigError

DEFAULT_OUTPUT_NAME = ".link"
DEFAULT_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class ManifestConfig:
    output_name: str = DEFAULT_OUTPUT_NAME
    hash_algorithm: str = DEFAULT_ALGORITHM
    chunk_size: int = DEFAULT_CHUNK_SIZE

    def __post_init__(self) -> None:
        if not self.output_name or "/" in self.output_name or "\\" in self.output_name:
            raise ConfigError(f"invalid manifest output name: {self.output_name!r}")
        if self.chunk_size <= 0:
            raise ConfigError(f"invalid chunk size: {self.chunk_size}")
        try:
            algorithm_digest_size(self.hash_algorithm)
        except ValueError as exc:
            raise ConfigError(f"unsupported hash algorithm: {self.hash_algorithm!r}") from exc

    @property
    def digest_size(self) -> int:
        return algorithm_digest_size(self.hash_algorithm)

    def file_name(self, name: str = "") -> str:
        return f"{name}{self.output_name}"


def _env_int(key: str, default: int) -> int:
    raw = os.getenv(key, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ConfigError(f"{key} must be an integer, got {raw!r}") from exc


def default_config() -> ManifestConfig:
    output_env = os.getenv("TREELINKS_OUTPUT_NAME", "").strip()
    algorithm_env = os.getenv("TREELINKS_HASH_ALGORITHM", "").strip()
    return ManifestConfig(
        output_name=output_env or DEFAULT_OUTPUT_NAME,
        hash_algorithm=algorithm_env.lower() or DEFAULT_ALGORITHM,
        chunk_size=_env_int("TREELINKS_CHUNK_SIZE", DEFAULT_CHUNK_SIZE),
    )
