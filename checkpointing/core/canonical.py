"""
Canonical encoding of checkpoint payloads and records.

A checkpoint's identity is a digest over bytes, so two processes that build
the same checkpoint (one from CLI input, one decoded from storage) must emit
identical bytes. Everything that is hashed or persisted is encoded here.
"""

import hashlib
import json
from typing import Any

_SEPARATORS = (",", ":")


def canonicalize(obj: Any) -> Any:
    """
    Normalize a nested value into JSON-ready canonical form.

    Mappings come back with sorted keys, sequences (tuples included) as lists,
    and byte strings as lowercase hex.
    """
    if isinstance(obj, (bytes, bytearray)):
        return obj.hex()
    if isinstance(obj, dict):
        return {key: canonicalize(obj[key]) for key in sorted(obj)}
    if isinstance(obj, (list, tuple)):
        return list(map(canonicalize, obj))
    return obj


def canonical_json_str(obj: Any) -> str:
    # ensure_ascii=False: non-ASCII text is hashed as UTF-8, not \u escapes
    return json.dumps(
        canonicalize(obj), sort_keys=True, separators=_SEPARATORS, ensure_ascii=False
    )


def canonical_json_bytes(obj: Any) -> bytes:
    """UTF-8 bytes of canonical_json_str(obj); this is what gets stored and hashed."""
    return canonical_json_str(obj).encode("utf-8")


def canonical_digest(obj: Any) -> bytes:
    """SHA-256 over the canonical bytes of obj."""
    return hashlib.sha256(canonical_json_bytes(obj)).digest()
