"""Core utilities: configuration, file records, fingerprints, JSON, logging."""

from assetforge.core.asset_file import AssetFile
from assetforge.core.config import AssetConfig, BranchSpec, load_config
from assetforge.core.debounce import Debouncer
from assetforge.core.fingerprint import (
    compute_file_fingerprint,
    compute_fingerprint,
    compute_startup_fingerprint,
    revisioned_name,
)
from assetforge.core.json_canonical import canonical_json_dumps, canonical_json_loads

__all__ = [
    "AssetFile",
    "AssetConfig",
    "BranchSpec",
    "load_config",
    "Debouncer",
    "compute_fingerprint",
    "compute_file_fingerprint",
    "compute_startup_fingerprint",
    "revisioned_name",
    "canonical_json_dumps",
    "canonical_json_loads",
]
