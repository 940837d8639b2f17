from __future__ import annotations

import json
import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from treelinks.archive import CanonicalArchive, normalize_relpath
from treelinks.canonical import (
    DEFAULT_ALGORITHM,
    canonical_json_bytes,
    decode_digest,
    digest_bytes,
    encode_digest,
)
from treelinks.config import ManifestConfig, default_config
from treelinks.errors import (
    ArchiveDecodeError,
    FileHashError,
    GenerateError,
    IgnoredPathsError,
    ManifestDecodeError,
    ManifestError,
    ManifestStateError,
    TraversalError,
)
from treelinks.hashing import FileHasher, HasherProtocol
from treelinks.walker import Walker, WalkerProtocol

logger = logging.getLogger(__name__)


class ManifestRecord(BaseModel):
    """On-disk form of a manifest; digests are standard base64 text."""

    model_config = ConfigDict(populate_by_name=True)

    archive: dict[str, str]
    root_hash: str = Field(alias="rootHash")
    root: str
    ignore_paths: list[str] = Field(default_factory=list, alias="ignorePaths")
    auto_ignore: bool = Field(default=False, alias="autoIgnore")

    @field_validator("ignore_paths", mode="before")
    @classmethod
    def _null_ignore_paths(cls, value: Any) -> Any:
        return [] if value is None else value


@dataclass(frozen=True)
class GenerateResult:
    archive: CanonicalArchive
    root_digest: bytes
    warnings: tuple[str, ...] = ()

    @property
    def complete(self) -> bool:
        return not self.warnings

    def raise_for_warnings(self) -> None:
        if self.warnings:
            raise IgnoredPathsError(self.warnings)


def compute_root_digest(
    archive: CanonicalArchive | None, algorithm: str = DEFAULT_ALGORITHM
) -> bytes:
    if archive is None:
        raise ManifestStateError("root digest: archive is not initialized")
    return digest_bytes(archive.marshal_canonical(), algorithm)


def _unique(original: Iterable[str], additions: Iterable[str]) -> list[str]:
    out: list[str] = []
    seen: set[str] = set()
    for path in [*original, *additions]:
        if path not in seen:
            seen.add(path)
            out.append(path)
    return out


def _reject_duplicate_keys(pairs: list[tuple[str, Any]]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for key, value in pairs:
        if key in result:
            raise ValueError(f"duplicate key {key!r}")
        result[key] = value
    return result


class Manifest:
    def __init__(
        self,
        root: Path | str,
        *,
        name: str = "",
        config: ManifestConfig | None = None,
    ) -> None:
        self.config = config or default_config()
        self.root = str(root)
        self.name = name
        self.archive: CanonicalArchive | None = CanonicalArchive(
            digest_size=self.config.digest_size
        )
        self.root_hash: bytes | None = None
        self.ignore_paths: list[str] = []
        self.auto_ignore = False
        self._reserved_paths: set[str] = set()

    def __repr__(self) -> str:
        entries = len(self.archive) if self.archive is not None else 0
        hashed = self.root_hash is not None
        return f"Manifest(root={self.root!r}, entries={entries}, hashed={hashed})"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Manifest):
            return NotImplemented
        return manifests_equal(self, other)

    __hash__ = None  # type: ignore[assignment]

    def set_ignore_paths(self, paths: Iterable[str]) -> None:
        self.ignore_paths = _unique([], paths)

    def add_ignore_path(self, path: str) -> None:
        self.ignore_paths = _unique(self.ignore_paths, [path])

    def output_file_name(self, name: str | None = None) -> str:
        return self.config.file_name(self.name if name is None else name)

    def manifest_path(self, directory: Path | str, name: str | None = None) -> Path:
        return Path(directory) / self.output_file_name(name)

    def reserve_path(self, path: Path | str) -> None:
        """Exclude a manifest file from generation when it lies under root."""
        target = Path(path)
        base = Path(self.root)
        for root_dir, candidate in (
            (base.absolute(), target.absolute()),
            (base.resolve(), target.resolve()),
        ):
            try:
                rel_path = candidate.relative_to(root_dir).as_posix()
            except ValueError:
                continue
            self._reserved_paths.add(normalize_relpath(rel_path))
            return

    def _reserved(self) -> set[str]:
        return {self.config.output_name, self.output_file_name(), *self._reserved_paths}

    def _is_ignored(self, rel_path: str, abs_path: str) -> bool:
        return any(
            rel_path.startswith(prefix) or abs_path.startswith(prefix)
            for prefix in self.ignore_paths
        )

    def generate(
        self,
        *,
        walker: WalkerProtocol | None = None,
        hasher: HasherProtocol | None = None,
    ) -> GenerateResult:
        walker = walker or Walker(self.root)
        hasher = hasher or FileHasher(self.config.hash_algorithm, self.config.chunk_size)
        logger.info("generate start root=%s auto_ignore=%s", walker.root, self.auto_ignore)

        try:
            walker.walk()
        except (TraversalError, OSError) as exc:
            raise GenerateError(f"generate: failed to walk {walker.root}: {exc}") from exc

        # manifest state is only replaced once the whole pass succeeds
        archive = CanonicalArchive(digest_size=self.config.digest_size)
        reserved = self._reserved()
        skipped: list[str] = []
        for file_path in walker.files():
            path = Path(file_path)
            try:
                rel_path = normalize_relpath(path.relative_to(walker.root).as_posix())
            except ValueError as exc:
                raise GenerateError(
                    f"generate: failed to compute relative path of {path} under {walker.root}"
                ) from exc
            try:
                rel_path.encode("utf-8")
            except UnicodeEncodeError as exc:
                raise GenerateError(
                    f"generate: file name is not valid UTF-8: {os.fsencode(path)!r}"
                ) from exc

            if rel_path in reserved or self._is_ignored(rel_path, path.as_posix()):
                continue

            try:
                digest = hasher.hash(path)
            except FileHashError as exc:
                if exc.permission_denied and self.auto_ignore:
                    logger.warning("generate auto-ignore path=%s", rel_path)
                    skipped.append(rel_path)
                    continue
                raise GenerateError(f"generate: failed to hash {path}: {exc}") from exc
            archive[rel_path] = digest

        root_hash = compute_root_digest(archive, self.config.hash_algorithm)
        self.archive = archive
        self.root_hash = root_hash
        # auto-ignored entries are prefixes like any other: "data" also hides "data.bak"
        self.ignore_paths = _unique(self.ignore_paths, skipped)
        logger.info(
            "generate complete root=%s entries=%s ignored=%s",
            walker.root,
            len(archive),
            len(skipped),
        )
        return GenerateResult(archive=archive, root_digest=root_hash, warnings=tuple(skipped))

    def to_record(self) -> ManifestRecord:
        if self.root_hash is None or self.archive is None:
            raise ManifestStateError("save: manifest has no root hash")
        return ManifestRecord(
            archive=self.archive.to_json_obj(),
            root_hash=encode_digest(self.root_hash),
            root=self.root,
            ignore_paths=list(self.ignore_paths),
            auto_ignore=self.auto_ignore,
        )

    def save(self, directory: Path | str, name: str | None = None) -> Path:
        record = self.to_record()
        target = self.manifest_path(directory, name)
        payload = record.model_dump(mode="json", by_alias=True)
        try:
            target.write_bytes(canonical_json_bytes(payload))
        except OSError as exc:
            raise ManifestError(f"save: failed to write {target}: {exc}") from exc
        self.reserve_path(target)
        logger.info("manifest saved path=%s entries=%s", target, len(record.archive))
        return target

    def load(self, directory: Path | str, name: str | None = None) -> None:
        target = self.manifest_path(directory, name)
        try:
            raw = target.read_bytes()
        except OSError as exc:
            raise ManifestDecodeError(f"load: failed to read {target}: {exc}") from exc
        try:
            data = json.loads(raw.decode("utf-8"), object_pairs_hook=_reject_duplicate_keys)
            record = ManifestRecord.model_validate(data)
        except (UnicodeDecodeError, ValueError, ValidationError) as exc:
            raise ManifestDecodeError(f"load: malformed manifest {target}: {exc}") from exc

        digest_size = self.config.digest_size
        try:
            archive = CanonicalArchive.from_json_obj(record.archive, digest_size=digest_size)
        except ArchiveDecodeError as exc:
            raise ManifestDecodeError(f"load: bad archive in {target}: {exc}") from exc
        try:
            root_hash = decode_digest(record.root_hash)
        except ValueError as exc:
            raise ManifestDecodeError(f"load: bad root hash in {target}: {exc}") from exc
        if len(root_hash) != digest_size:
            raise ManifestDecodeError(
                f"load: root hash in {target} has {len(root_hash)} bytes, expected {digest_size}"
            )

        self.archive = archive
        self.root_hash = root_hash
        self.root = record.root
        self.ignore_paths = _unique([], record.ignore_paths)
        self.auto_ignore = record.auto_ignore
        self.reserve_path(target)
        logger.info("manifest loaded path=%s entries=%s", target, len(archive))

    @classmethod
    def from_file(
        cls,
        directory: Path | str,
        name: str = "",
        config: ManifestConfig | None = None,
    ) -> Manifest:
        manifest = cls(directory, name=name, config=config)
        manifest.load(directory)
        return manifest

    def describe(self) -> list[str]:
        lines = [f"Root: {self.root}"]
        if self.root_hash is None:
            lines.append("Hash: <unhashed>")
        else:
            lines.append(f"Hash: {self.root_hash.hex()}")
        if self.archive is not None:
            lines.extend(f"{key}: {value.hex()}" for key, value in self.archive.sorted_items())
        return lines


def _archive_bytes(manifest: Manifest) -> bytes | None:
    if manifest.archive is None:
        return None
    return manifest.archive.marshal_canonical()


def manifests_equal(a: Manifest, b: Manifest) -> bool:
    # root is descriptive metadata and does not take part in identity
    if a.root_hash != b.root_hash:
        return False
    return _archive_bytes(a) == _archive_bytes(b)


def verify_root_hash(manifest: Manifest) -> bool:
    if manifest.root_hash is None or manifest.archive is None:
        return False
    expected = compute_root_digest(manifest.archive, manifest.config.hash_algorithm)
    return expected == manifest.root_hash
