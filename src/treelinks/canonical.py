from __future__ import annotations

import base64
import binascii
import hashlib
import json
from typing import Any

DEFAULT_ALGORITHM = "sha512"


def canonical_json_bytes(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode(
        "utf-8"
    )


def digest_bytes(data: bytes, algorithm: str = DEFAULT_ALGORITHM) -> bytes:
    return hashlib.new(algorithm, data).digest()


def digest_size(algorithm: str = DEFAULT_ALGORITHM) -> int:
    return hashlib.new(algorithm).digest_size


def encode_digest(digest: bytes) -> str:
    return base64.b64encode(digest).decode("ascii")


def decode_digest(text: str) -> bytes:
    # strict standard alphabet; re-encoding must reproduce the input
    try:
        raw = base64.b64decode(text.encode("ascii"), validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError(f"invalid base64 digest {text!r}") from exc
    if encode_digest(raw) != text:
        raise ValueError(f"non-canonical base64 digest {text!r}")
    return raw
