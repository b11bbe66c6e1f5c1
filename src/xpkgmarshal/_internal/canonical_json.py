"""Canonical JSON serialization and digests.

Used wherever a byte-stable rendering of a JSON document is needed, such as
computing the content digest of an in-memory image manifest.
"""

import hashlib
import json
from typing import Any


def canonical_dumps(obj: Any) -> str:
    """Render obj as compact JSON with sorted keys, so equal documents give equal bytes."""
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def sha256_digest(data: bytes) -> str:
    """Return the "sha256:"-prefixed hex digest of raw bytes."""
    return f"sha256:{hashlib.sha256(data).hexdigest()}"


def canonical_sha256(obj: Any) -> str:
    """Return the "sha256:"-prefixed digest of an object's canonical JSON."""
    return sha256_digest(canonical_dumps(obj).encode("utf-8"))
