"""
Manifest store.

Maps logical asset paths to their revisioned, prefixed output paths. The
rev stage writes it; the replace stage and the manifest writer read it.
"""

from __future__ import annotations

import itertools
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ManifestEntry:
    """One registered asset."""

    logical_path: str  # e.g. /assets/styles/app.css
    output_path: str  # e.g. /assets/styles/app-a1b2c3d4.css
    prefixed_path: str
    index: int  # global registration order, drives prefix rotation

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            "logical_path": self.logical_path,
            "output_path": self.output_path,
            "prefixed_path": self.prefixed_path,
            "index": self.index,
        }


def select_prefix(prefix_pool: Sequence[str], index: int) -> str:
    """
    Pick the prefix for a registration index.

    Examples:
        >>> select_prefix(["//a.cdn", "//b.cdn"], 3)
        '//b.cdn'
        >>> select_prefix([], 3)
        ''
    """
    if not prefix_pool:
        return ""
    return prefix_pool[index % len(prefix_pool)]


class ManifestStore:
    """
    Process-wide table of registered assets.

    Registration is an atomic single-key upsert: the entry is built in full
    before it becomes visible, and re-registering a key replaces the old
    entry with one carrying a new index.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ManifestEntry] = {}
        self._counter = itertools.count()
        self._lock = threading.Lock()

    def register(
        self,
        logical_path: str,
        output_path: str,
        prefix_pool: Sequence[str] = (),
    ) -> ManifestEntry:
        """
        Record the output path for a logical path.

        Args:
            logical_path: Stable asset identity.
            output_path: Revisioned path relative to the destination root.
            prefix_pool: Prefixes rotated by registration index.

        Returns:
            The new entry.
        """
        with self._lock:
            index = next(self._counter)
            entry = ManifestEntry(
                logical_path=logical_path,
                output_path=output_path,
                prefixed_path=select_prefix(prefix_pool, index) + output_path,
                index=index,
            )
            self._entries[logical_path] = entry
        return entry

    def lookup(self, logical_path: str) -> ManifestEntry | None:
        """
        Get the entry for a logical path.

        Returns:
            ManifestEntry if registered, None otherwise.
        """
        return self._entries.get(logical_path)

    def missing(self, logical_paths: Iterable[str]) -> set[str]:
        """Return the logical paths that are not registered yet."""
        return {p for p in logical_paths if p not in self._entries}

    def snapshot(self) -> dict[str, str]:
        """Map every logical path to its prefixed output path."""
        with self._lock:
            return {k: e.prefixed_path for k, e in self._entries.items()}

    def entries(self) -> list[ManifestEntry]:
        """All entries in registration order."""
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.index)

    def clear(self) -> None:
        """Forget every entry. Indices keep increasing."""
        with self._lock:
            self._entries.clear()

    def __contains__(self, logical_path: object) -> bool:
        return logical_path in self._entries

    def __len__(self) -> int:
        return len(self._entries)
