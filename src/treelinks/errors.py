from __future__ import annotations

from collections.abc import Iterable
from enum import Enum
from pathlib import Path


class HashErrorKind(str, Enum):
    PERMISSION_DENIED = "permission_denied"
    IO = "io"


class TreeLinksError(Exception):
    pass


class TraversalError(TreeLinksError):
    pass


class FileHashError(TreeLinksError):
    def __init__(self, path: Path | str, kind: HashErrorKind, message: str = "") -> None:
        self.path = str(path)
        self.kind = kind
        detail = f": {message}" if message else ""
        super().__init__(f"hash {kind.value} {self.path}{detail}")

    @property
    def permission_denied(self) -> bool:
        return self.kind is HashErrorKind.PERMISSION_DENIED


class ArchiveDecodeError(TreeLinksError, ValueError):
    pass


class ManifestError(TreeLinksError):
    pass


class GenerateError(ManifestError):
    pass


class ManifestStateError(ManifestError):
    pass


class ManifestDecodeError(ManifestError):
    pass


class IgnoredPathsError(TreeLinksError):
    """Advisory: generation succeeded but these paths were auto-ignored."""

    def __init__(self, paths: Iterable[str]) -> None:
        self.paths = list(paths)
        super().__init__("auto-ignored paths: " + ", ".join(self.paths))


class ConfigError(TreeLinksError, ValueError):
    pass
