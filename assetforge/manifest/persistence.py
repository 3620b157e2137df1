"""
Manifest persistence.

Writes the manifest store as a script assigning the logical -> prefixed
path map to a global binding, e.g.::

    window.assetManifest = {"/assets/app.css":"/assets/app-a1b2c3d4.css"};

Writes are debounced so a burst of renames produces a single write.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from assetforge.core.config import AssetConfig
from assetforge.core.debounce import Debouncer
from assetforge.core.fingerprint import compute_startup_fingerprint, revisioned_name
from assetforge.core.json_canonical import canonical_json_dumps
from assetforge.manifest.store import ManifestStore

logger = logging.getLogger(__name__)

# Every manifest name in the process derives from this one timestamp.
PROCESS_STARTED_AT = datetime.now(timezone.utc)
PROCESS_FINGERPRINT = compute_startup_fingerprint(PROCESS_STARTED_AT)


def manifest_output_name(config: AssetConfig, fingerprint: str = PROCESS_FINGERPRINT) -> str:
    """
    Public path of the manifest artifact, e.g. ``/assets/manifest-1f2e3d4c.js``.

    Args:
        config: Build configuration supplying the asset path and file name.
        fingerprint: Start-time fingerprint; the process fingerprint by default.
    """
    return config.asset_path + revisioned_name(config.manifest, fingerprint)


class ManifestWriter:
    """
    Debounced writer for the manifest artifact.

    The artifact's file name is fingerprinted from the process start time
    (or an explicit ``started_at``) and stays the same however often the
    manifest is rewritten during a build.
    """

    def __init__(
        self,
        store: ManifestStore,
        config: AssetConfig,
        cwd: Path | None = None,
        started_at: datetime | None = None,
    ):
        """
        Initialize manifest writer.

        Args:
            store: Store to snapshot on every write.
            config: Build configuration.
            cwd: Directory the destination root is relative to.
            started_at: Start timestamp the file name is derived from;
                defaults to the process start.
        """
        self.store = store
        self.config = config
        self.cwd = Path(cwd) if cwd is not None else Path.cwd()
        self.started_at = started_at or PROCESS_STARTED_AT
        self.fingerprint = compute_startup_fingerprint(self.started_at)

        self.write_count = 0
        self.failed_writes = 0
        self.last_written: Path | None = None

        self._debouncer = Debouncer(self.write, config.debounce_seconds)

    @property
    def output_name(self) -> str:
        """Public path of the artifact, e.g. ``/assets/manifest-1f2e3d4c.js``."""
        return manifest_output_name(self.config, self.fingerprint)

    @property
    def output_file(self) -> Path:
        """Where the artifact is written on disk."""
        return self.config.dest_root(self.cwd) / self.output_name.lstrip("/")

    @property
    def pending(self) -> bool:
        return self._debouncer.pending

    def render(self) -> str:
        """Render the current store contents as a global assignment."""
        mapping = canonical_json_dumps(self.store.snapshot())
        return f"{self.config.global_var} = {mapping};\n"

    def schedule_write(self) -> None:
        """Request a write; repeated calls within the quiet period coalesce."""
        self._debouncer.trigger()

    def flush(self) -> bool:
        """
        Perform a pending write immediately.

        Returns:
            True if a write was pending.
        """
        return self._debouncer.flush()

    def write(self) -> Path | None:
        """
        Write the artifact now.

        A failed write is logged and counted in ``failed_writes``.

        Returns:
            Written path, or None if the write failed.
        """
        path = self.output_file
        content = self.render()

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            self.failed_writes += 1
            logger.error("Unable to write asset manifest %s: %s", path, e)
            return None

        self.write_count += 1
        self.last_written = path
        logger.debug("Wrote asset manifest %s (%d entries)", path, len(self.store))
        return path
