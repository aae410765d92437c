"""SHA-256 content checksums for migration scripts."""

from __future__ import annotations

import hashlib


def checksum(content: bytes | str) -> str:
    if isinstance(content, str):
        content = content.encode("utf-8")
    return hashlib.sha256(content).hexdigest()


__all__ = ["checksum"]
