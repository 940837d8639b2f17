from __future__ import annotations

import base64
import hashlib

import pytest

from treelinks.archive import CanonicalArchive
from treelinks.errors import ArchiveDecodeError

GOLDEN_ARCHIVE_JSON = '{"a1":"Ik5EZz0i","a2":"Ik5Eaz0i","a3":"Ik5UQT0i"}'


def test_unmarshal_golden_archive() -> None:
    archive = CanonicalArchive.unmarshal_canonical(GOLDEN_ARCHIVE_JSON.encode("utf-8"))
    assert archive["a1"] == base64.b64decode("Ik5EZz0i")
    assert archive["a2"] == base64.b64decode("Ik5Eaz0i")
    assert archive["a3"] == base64.b64decode("Ik5UQT0i")
    assert len(archive) == 3


def test_marshal_normalizes_separators_and_orders_keys() -> None:
    digest = base64.b64decode("Ik5EZz0i")
    for _ in range(10):
        archive = CanonicalArchive(
            {"C:\\User\\folder2": digest, "C:\\User\\folder1": digest}
        )
        assert archive.marshal_canonical() == (
            b'{"C:/User/folder1":"Ik5EZz0i","C:/User/folder2":"Ik5EZz0i"}'
        )


def test_marshal_is_independent_of_insertion_order() -> None:
    pairs = [(f"dir/{idx}.txt", hashlib.sha512(str(idx).encode()).digest()) for idx in range(50)]
    forward = CanonicalArchive()
    for key, value in pairs:
        forward[key] = value
    backward = CanonicalArchive()
    for key, value in reversed(pairs):
        backward[key] = value
    assert forward.marshal_canonical() == backward.marshal_canonical()
    assert forward == backward


def test_round_trip_preserves_pairs() -> None:
    archive = CanonicalArchive(
        {
            "a.txt": hashlib.sha512(b"hello").digest(),
            "b/b.txt": hashlib.sha512(b"world").digest(),
            "unicode/é.txt": hashlib.sha512(b"!").digest(),
        },
        digest_size=64,
    )
    decoded = CanonicalArchive.unmarshal_canonical(archive.marshal_canonical(), digest_size=64)
    assert decoded == archive
    assert decoded.marshal_canonical() == archive.marshal_canonical()


def test_empty_archive_round_trip() -> None:
    archive = CanonicalArchive()
    assert archive.marshal_canonical() == b"{}"
    decoded = CanonicalArchive.unmarshal_canonical(b"{}")
    assert len(decoded) == 0
    assert decoded == archive


def test_digest_size_enforced_on_insert() -> None:
    archive = CanonicalArchive(digest_size=64)
    with pytest.raises(ValueError):
        archive["short"] = b"\x01\x02"
    with pytest.raises(ValueError):
        archive["empty"] = b""


@pytest.mark.parametrize(
    "payload",
    [
        b"not json",
        b"\xff\xfe",
        b"[]",
        b'"text"',
        b'{"a":1}',
        b'{"a":{"b":"Ik5EZz0i"}}',
        b'{"a":"not base64!"}',
        b'{"a":"Ik5EZz0"}',
        b'{"a":""}',
        b'{"a":"Ik5EZz0i","a":"Ik5Eaz0i"}',
        b'{"d/a":"Ik5EZz0i","d\\\\a":"Ik5Eaz0i"}',
    ],
)
def test_unmarshal_rejects_malformed_input(payload: bytes) -> None:
    with pytest.raises(ArchiveDecodeError):
        CanonicalArchive.unmarshal_canonical(payload)


def test_unmarshal_rejects_truncated_digest() -> None:
    full = CanonicalArchive({"a": hashlib.sha512(b"a").digest()}).marshal_canonical()
    truncated = CanonicalArchive({"a": hashlib.sha512(b"a").digest()[:32]}).marshal_canonical()
    assert len(CanonicalArchive.unmarshal_canonical(full, digest_size=64)) == 1
    with pytest.raises(ArchiveDecodeError):
        CanonicalArchive.unmarshal_canonical(truncated, digest_size=64)


def test_lookup_accepts_either_separator() -> None:
    archive = CanonicalArchive({"b/b.txt": b"\x01"})
    assert "b\\b.txt" in archive
    assert archive["b\\b.txt"] == b"\x01"
    del archive["b\\b.txt"]
    assert len(archive) == 0
