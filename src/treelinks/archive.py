from __future__ import annotations

import json
from collections.abc import Iterator, Mapping, MutableMapping
from typing import Any

from treelinks.canonical import canonical_json_bytes, decode_digest, encode_digest
from treelinks.errors import ArchiveDecodeError


def normalize_relpath(path: str) -> str:
    return path.replace("\\", "/")


class CanonicalArchive(MutableMapping[str, bytes]):
    """Relative path -> digest mapping with an order-independent byte form.

    Storage order is whatever insertion produced; ``marshal_canonical`` sorts
    keys so the serialized bytes depend only on the (path, digest) pairs.
    """

    def __init__(
        self,
        entries: Mapping[str, bytes] | None = None,
        *,
        digest_size: int | None = None,
    ) -> None:
        self.digest_size = digest_size
        self._entries: dict[str, bytes] = {}
        if entries:
            for key, value in entries.items():
                self[key] = value

    def __getitem__(self, key: str) -> bytes:
        return self._entries[normalize_relpath(key)]

    def __setitem__(self, key: str, value: bytes) -> None:
        if not isinstance(key, str) or not key:
            raise ValueError(f"archive key must be a non-empty string, got {key!r}")
        try:
            key.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise ValueError(f"archive key is not valid UTF-8: {key!r}") from exc
        if not isinstance(value, (bytes, bytearray)) or not value:
            raise ValueError(f"archive digest for {key} must be non-empty bytes")
        if self.digest_size is not None and len(value) != self.digest_size:
            raise ValueError(
                f"archive digest for {key} has {len(value)} bytes, expected {self.digest_size}"
            )
        self._entries[normalize_relpath(key)] = bytes(value)

    def __delitem__(self, key: str) -> None:
        del self._entries[normalize_relpath(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return isinstance(key, str) and normalize_relpath(key) in self._entries

    def __repr__(self) -> str:
        return f"CanonicalArchive({len(self)} entries)"

    def sorted_items(self) -> list[tuple[str, bytes]]:
        return sorted(self._entries.items())

    def to_json_obj(self) -> dict[str, str]:
        return {key: encode_digest(value) for key, value in self.sorted_items()}

    def marshal_canonical(self) -> bytes:
        return canonical_json_bytes(self.to_json_obj())

    @classmethod
    def from_json_obj(cls, obj: Any, *, digest_size: int | None = None) -> CanonicalArchive:
        if not isinstance(obj, Mapping):
            raise ArchiveDecodeError(f"archive must be a JSON object, got {type(obj).__name__}")
        return cls._from_pairs(list(obj.items()), digest_size=digest_size)

    @classmethod
    def unmarshal_canonical(
        cls, data: bytes | str, *, digest_size: int | None = None
    ) -> CanonicalArchive:
        pairs: list[tuple[str, Any]] | None = None

        def _keep_pairs(items: list[tuple[str, Any]]) -> dict[str, Any]:
            nonlocal pairs
            pairs = items
            return dict(items)

        try:
            text = data.decode("utf-8") if isinstance(data, (bytes, bytearray)) else data
            # only the outermost object reaches the hook last
            decoded = json.loads(text, object_pairs_hook=_keep_pairs)
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise ArchiveDecodeError(f"archive is not valid JSON: {exc}") from exc
        if not isinstance(decoded, dict) or pairs is None:
            raise ArchiveDecodeError(
                f"archive must be a JSON object, got {type(decoded).__name__}"
            )
        return cls._from_pairs(pairs, digest_size=digest_size)

    @classmethod
    def _from_pairs(
        cls, pairs: list[tuple[Any, Any]], *, digest_size: int | None
    ) -> CanonicalArchive:
        archive = cls(digest_size=digest_size)
        for key, value in pairs:
            if not isinstance(key, str) or not key:
                raise ArchiveDecodeError(f"archive key must be a non-empty string: {key!r}")
            if not isinstance(value, str):
                raise ArchiveDecodeError(f"archive digest for {key} must be a string")
            if key in archive:
                raise ArchiveDecodeError(f"duplicate archive key {normalize_relpath(key)}")
            try:
                digest = decode_digest(value)
            except ValueError as exc:
                raise ArchiveDecodeError(f"archive digest for {key}: {exc}") from exc
            if not digest:
                raise ArchiveDecodeError(f"archive digest for {key} is empty")
            if digest_size is not None and len(digest) != digest_size:
                raise ArchiveDecodeError(
                    f"archive digest for {key} has {len(digest)} bytes, expected {digest_size}"
                )
            try:
                archive[key] = digest
            except ValueError as exc:
                raise ArchiveDecodeError(str(exc)) from exc
        return archive
