from __future__ import annotations

import os
from pathlib import Path
from typing import Protocol

from treelinks.errors import TraversalError


class WalkerProtocol(Protocol):
    @property
    def root(self) -> Path: ...

    def walk(self) -> None: ...

    def files(self) -> list[Path]: ...


class Walker:
    def __init__(self, root: Path | str) -> None:
        self._root = Path(root).absolute()
        self._files: list[Path] = []

    @property
    def root(self) -> Path:
        return self._root

    def walk(self) -> None:
        if not self._root.exists():
            raise TraversalError(f"walk: root does not exist: {self._root}")
        if not self._root.is_dir():
            raise TraversalError(f"walk: root is not a directory: {self._root}")

        def _raise(exc: OSError) -> None:
            raise TraversalError(f"walk: cannot read {exc.filename}: {exc.strerror}") from exc

        found: list[Path] = []
        for dirpath, _dirnames, filenames in os.walk(self._root, onerror=_raise):
            base = Path(dirpath)
            for filename in filenames:
                candidate = base / filename
                if candidate.is_file():
                    found.append(candidate)
        self._files = found

    def files(self) -> list[Path]:
        return list(self._files)
