"""Content digests shared by the cache, the scanner and the sync checker."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Iterable
from pathlib import Path
from typing import Any

_CHUNK_SIZE = 64 * 1024


def sha256_file(path: Path) -> str:
    """Hex SHA-256 of a file's bytes. Raises OSError if unreadable."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        while chunk := fh.read(_CHUNK_SIZE):
            digest.update(chunk)
    return digest.hexdigest()


def combined_digest(entries: Iterable[tuple[str, str]]) -> str:
    """Order-independent digest over ``(relative_path, file_hash)`` pairs."""
    digest = hashlib.sha256()
    for rel, file_hash in sorted(entries):
        digest.update(f"{rel}\0{file_hash}\n".encode())
    return digest.hexdigest()


def compute_config_hash(policy: Any = None, rule_ids: Iterable[str] = ()) -> str:
    """Fingerprint of everything that changes rule behaviour.

    *policy* may be ``None`` or anything exposing ``fingerprint()``.
    """
    payload = {
        "policy": policy.fingerprint() if policy is not None else None,
        "rules": sorted(rule_ids),
    }
    blob = json.dumps(payload, sort_keys=True, separators=(",", ":"))
    return hashlib.sha256(blob.encode()).hexdigest()
