"""Manifest system: the shared store and its persisted form."""

from assetforge.manifest.persistence import ManifestWriter
from assetforge.manifest.store import ManifestEntry, ManifestStore, select_prefix

__all__ = [
    "ManifestEntry",
    "ManifestStore",
    "ManifestWriter",
    "select_prefix",
]
