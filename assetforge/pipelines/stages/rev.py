"""
Rev Stage.

Renames assets after a fingerprint of their contents and records the
mapping in the manifest store.
"""

from __future__ import annotations

import logging
from pathlib import Path

from assetforge.core.asset_file import AssetFile
from assetforge.core.config import AssetConfig
from assetforge.core.fingerprint import compute_fingerprint, revisioned_name
from assetforge.manifest.persistence import ManifestWriter
from assetforge.manifest.store import ManifestStore
from assetforge.pipelines.stage import Stage, StageContext, StageError, StageType

logger = logging.getLogger(__name__)


class RevStage(Stage):
    """
    Stage that gives each asset a content-revisioned file name.

    ``src/assets/app.css`` with contents fingerprinting to ``a1b2c3d4`` is
    emitted as ``src/assets/app-a1b2c3d4.css`` and registered as
    ``/assets/app.css -> /assets/app-a1b2c3d4.css``.

    With cleanup enabled, the output a previous registration produced is
    deleted from the destination root, as is the never-fingerprinted copy
    left by an earlier unhashed build.
    """

    stage_type = StageType.REV

    def __init__(
        self,
        config: AssetConfig,
        store: ManifestStore,
        writer: ManifestWriter | None = None,
        *,
        apply_prefix: bool = True,
    ):
        """
        Initialize rev stage.

        Args:
            config: Build configuration.
            store: Shared manifest store.
            writer: Manifest writer notified after each registration.
            apply_prefix: Register entries with the configured prefix pool.
                False registers them unprefixed.
        """
        super().__init__(config, store)
        self.writer = writer
        self.apply_prefix = apply_prefix

    async def process(self, file: AssetFile, context: StageContext) -> None:
        src_root = self.config.src_root(file.cwd)
        logical_path = file.relative_to(src_root)

        fingerprint = None
        if self.config.hash:
            try:
                fingerprint = compute_fingerprint(file.contents)
            except TypeError as e:
                context.error(
                    StageError(self.name, f"unable to fingerprint {file.path}: {e}", path=str(file.path))
                )
                return

        renamed = file.with_path(file.path.with_name(revisioned_name(file.path.name, fingerprint)))
        output_path = renamed.relative_to(src_root)

        # No await between the lookup in _remove_stale and register.
        if self.config.cleanup:
            self._remove_stale(file.cwd, logical_path, output_path)

        pool = self.config.prefix_pool if self.apply_prefix else []
        entry = self.store.register(logical_path, output_path, pool)
        logger.debug("rev %s -> %s", logical_path, entry.prefixed_path)

        if self.writer is not None:
            self.writer.schedule_write()

        context.push(renamed)

    def _remove_stale(self, cwd: Path, logical_path: str, output_path: str) -> None:
        """Best-effort deletion of the output this registration supersedes."""
        existing = self.store.lookup(logical_path)
        if existing is not None:
            stale = existing.output_path
        elif self.config.hash:
            stale = logical_path
        else:
            return

        if stale == output_path:
            return

        target = self.config.dest_root(cwd) / stale.lstrip("/")
        try:
            target.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.debug("Could not remove stale output %s: %s", target, e)
            return
        logger.debug("Removed stale output %s", target)


def create_rev_stage(
    config: AssetConfig,
    store: ManifestStore,
    writer: ManifestWriter | None = None,
    *,
    apply_prefix: bool = True,
    **overrides,
) -> RevStage:
    """
    Factory function to create a rev stage.

    Args:
        config: Base configuration.
        store: Shared manifest store.
        writer: Optional manifest writer.
        apply_prefix: Register entries with prefixes.
        **overrides: Options overriding ``config`` for this stage only.

    Returns:
        Configured RevStage.
    """
    return RevStage(
        config.with_overrides(**overrides),
        store,
        writer,
        apply_prefix=apply_prefix,
    )
