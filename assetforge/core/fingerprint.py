"""
Content fingerprints for revisioned filenames.

Fingerprints are truncated xxh64 hex digests: deterministic for identical
bytes, and collisions between different contents are improbable at the
default length.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path, PurePosixPath

import xxhash

FINGERPRINT_LENGTH = 8


def compute_fingerprint(data: bytes | str, length: int = FINGERPRINT_LENGTH) -> str:
    """
    Compute the fingerprint of raw content.

    Args:
        data: Content bytes. Strings are hashed as UTF-8.
        length: Number of hex characters to keep.

    Returns:
        Hex fingerprint of ``length`` characters.

    Raises:
        TypeError: If data is neither bytes nor str.

    Example:
        >>> len(compute_fingerprint(b"body { color: red }"))
        8
    """
    if isinstance(data, str):
        data = data.encode("utf-8")
    if not isinstance(data, (bytes, bytearray, memoryview)):
        raise TypeError(f"Cannot fingerprint object of type {type(data).__name__}")
    return xxhash.xxh64(data).hexdigest()[:length]


def compute_file_fingerprint(path: Path, length: int = FINGERPRINT_LENGTH) -> str:
    """
    Compute the fingerprint of a file on disk without loading it whole.

    Produces the same value as ``compute_fingerprint(path.read_bytes())``.
    """
    hasher = xxhash.xxh64()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(65536), b""):
            hasher.update(chunk)
    return hasher.hexdigest()[:length]


def compute_startup_fingerprint(started_at: datetime, length: int = FINGERPRINT_LENGTH) -> str:
    """Fingerprint a process start timestamp (not any file content)."""
    return compute_fingerprint(started_at.isoformat(), length)


def revisioned_name(filename: str, fingerprint: str | None) -> str:
    """
    Insert a fingerprint between a filename's stem and extension.

    Only the last extension is split off, so ``app.min.js`` becomes
    ``app.min-<fp>.js``. A ``None`` fingerprint leaves the name unchanged.

    Examples:
        >>> revisioned_name("app.css", "a1b2c3d4")
        'app-a1b2c3d4.css'
        >>> revisioned_name("LICENSE", "a1b2c3d4")
        'LICENSE-a1b2c3d4'
    """
    if not fingerprint:
        return filename
    pure = PurePosixPath(filename)
    return f"{pure.stem}-{fingerprint}{pure.suffix}"
