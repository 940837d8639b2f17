from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Protocol

from treelinks.canonical import DEFAULT_ALGORITHM
from treelinks.config import DEFAULT_CHUNK_SIZE
from treelinks.errors import FileHashError, HashErrorKind


class HasherProtocol(Protocol):
    def hash(self, path: Path) -> bytes: ...


class FileHasher:
    def __init__(
        self, algorithm: str = DEFAULT_ALGORITHM, chunk_size: int = DEFAULT_CHUNK_SIZE
    ) -> None:
        self.algorithm = algorithm
        self.chunk_size = chunk_size

    @property
    def digest_size(self) -> int:
        return hashlib.new(self.algorithm).digest_size

    def hash(self, path: Path) -> bytes:
        h = hashlib.new(self.algorithm)
        try:
            with Path(path).open("rb") as handle:
                for chunk in iter(lambda: handle.read(self.chunk_size), b""):
                    h.update(chunk)
        except PermissionError as exc:
            raise FileHashError(path, HashErrorKind.PERMISSION_DENIED, str(exc)) from exc
        except OSError as exc:
            raise FileHashError(path, HashErrorKind.IO, str(exc)) from exc
        return h.digest()


def hash_file(path: Path, algorithm: str = DEFAULT_ALGORITHM) -> bytes:
    return FileHasher(algorithm).hash(path)
