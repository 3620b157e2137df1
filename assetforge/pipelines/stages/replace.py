"""
Replace Stage.

Rewrites ``asset://`` references in text files to revisioned asset paths,
waiting on the manifest store for assets that have not been revved yet.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import PurePath
from typing import Any

from assetforge.core.asset_file import AssetFile
from assetforge.core.config import AssetConfig
from assetforge.manifest.persistence import ManifestWriter, manifest_output_name
from assetforge.manifest.store import ManifestStore
from assetforge.pipelines.retry import ResolutionState, ResolutionTracker, RetryPolicy
from assetforge.pipelines.stage import Stage, StageContext, StageError, StageType

logger = logging.getLogger(__name__)

# Scheme, then an optional path-like suffix. The suffix stops at whitespace,
# quotes, angle brackets and parentheses, and must end in a word character,
# ".", "+", "/" or a single parenthesised word group, so trailing
# punctuation such as "," or ";" is left out.
REFERENCE_PATTERN = re.compile(
    r"""\b(asset:/{1,2})((?:[^'"`\s()<>]*(?:\(\w+\)|[.\w+/]))?)""",
    re.IGNORECASE,
)


def find_references(text: str) -> list[str]:
    """
    List the asset references in a text, in order of appearance.

    Example:
        >>> find_references('a { background: url(asset://img/bg.png); }')
        ['asset://img/bg.png']
    """
    return [m.group(0) for m in REFERENCE_PATTERN.finditer(text)]


class UnresolvedReferenceError(StageError):
    """References still unknown to the manifest once the retry budget ran out."""

    def __init__(self, stage_name: str, path: str, references: list[str]):
        self.references = list(references)
        message = (
            f"{PurePath(path).name}: Stalled or unable to process asset url: "
            f"{', '.join(self.references)}. This can occur if the file doesn't exist "
            'or is very large and takes time to process. You can raise the "interval" '
            'or "repeat" option.'
        )
        super().__init__(stage_name, message, path=path)


@dataclass
class SubstitutionPass:
    """Outcome of one substitution pass over a text."""

    text: str
    references: dict[str, bool] = field(default_factory=dict)  # raw match -> resolved
    lookups: set[str] = field(default_factory=set)  # logical paths looked up

    @property
    def resolved(self) -> list[str]:
        return [ref for ref, ok in self.references.items() if ok]

    @property
    def unresolved(self) -> list[str]:
        return [ref for ref, ok in self.references.items() if not ok]


@dataclass
class ResolutionReport:
    """How a single file's references were resolved."""

    tracker: ResolutionTracker
    resolved: list[str]
    unresolved: list[str]

    @property
    def path(self) -> str:
        return self.tracker.path

    @property
    def state(self) -> ResolutionState:
        return self.tracker.state

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary."""
        return {
            **self.tracker.to_dict(),
            "resolved": self.resolved,
            "unresolved": self.unresolved,
        }


class ReplaceStage(Stage):
    """
    Stage that substitutes asset references with revisioned paths.

    References resolve as follows:
    - ``asset://`` alone becomes the configured asset path.
    - ``asset://<manifest>`` becomes the first prefix plus the manifest's
      fingerprinted name, without a store lookup. The name is the attached
      writer's, or the process-wide one when no writer is attached.
    - anything else becomes the prefixed output path registered for
      ``asset_path + suffix``.

    A file whose references are not all registered yet waits on the store
    one interval at a time. Once the retry budget is spent the file is
    emitted with whatever could be substituted, and an
    UnresolvedReferenceError is signalled.
    """

    stage_type = StageType.REPLACE

    def __init__(
        self,
        config: AssetConfig,
        store: ManifestStore,
        writer: ManifestWriter | None = None,
    ):
        """
        Initialize replace stage.

        Args:
            config: Build configuration.
            store: Shared manifest store.
            writer: Manifest writer whose artifact name answers
                references to the manifest itself. Without one the
                process-wide manifest name is used.

        Raises:
            ValueError: If ``config`` and the writer disagree on the
                manifest's logical path.
        """
        if writer is not None and writer.config.manifest_logical_path != config.manifest_logical_path:
            raise ValueError(
                f"replace: manifest path {config.manifest_logical_path} differs from the "
                f"writer's {writer.config.manifest_logical_path}"
            )

        super().__init__(config, store)
        self.writer = writer
        self.policy = RetryPolicy.from_config(config)
        self.reports: list[ResolutionReport] = []

    @property
    def manifest_name(self) -> str:
        """Public path of the manifest artifact references resolve to."""
        if self.writer is not None:
            return self.writer.output_name
        return manifest_output_name(self.config)

    def resolve(self, suffix: str, lookups: set[str]) -> str | None:
        """
        Resolve the part of a reference following the scheme.

        Args:
            suffix: Path after ``asset://``.
            lookups: Collects logical paths that needed a store lookup.

        Returns:
            Replacement text, or None if the asset is not registered yet.
        """
        suffix = suffix.lstrip("/")
        if not suffix:
            return self.config.asset_path

        logical_path = self.config.asset_path + suffix
        if logical_path == self.config.manifest_logical_path:
            return self.config.prefix_pool[0] + self.manifest_name

        lookups.add(logical_path)
        entry = self.store.lookup(logical_path)
        return entry.prefixed_path if entry is not None else None

    def substitute(self, text: str) -> SubstitutionPass:
        """Run one substitution pass; unresolved references are left as they are."""
        result = SubstitutionPass(text=text)

        def _replace(match: re.Match[str]) -> str:
            raw = match.group(0)
            replacement = self.resolve(match.group(2), result.lookups)
            result.references[raw] = replacement is not None
            return raw if replacement is None else replacement

        result.text = REFERENCE_PATTERN.sub(_replace, text)
        return result

    async def process(self, file: AssetFile, context: StageContext) -> None:
        text = file.text()
        tracker = ResolutionTracker(path=str(file.path), policy=self.policy)
        referenced: set[str] = set()

        while True:
            # Poll store membership only; rescanning the text is the expensive part.
            while referenced and self.store.missing(referenced) and not tracker.exhausted:
                await tracker.wait()

            tracker.begin_pass()
            result = self.substitute(text)
            referenced = result.lookups

            if not result.unresolved or tracker.exhausted:
                break
            await tracker.wait()

        tracker.finish(unresolved=bool(result.unresolved))
        self.reports.append(
            ResolutionReport(tracker=tracker, resolved=result.resolved, unresolved=result.unresolved)
        )

        if result.unresolved:
            context.error(UnresolvedReferenceError(self.name, str(file.path), result.unresolved))
        elif result.references:
            logger.debug(
                "replace %s: %d reference(s) after %d retries",
                file.path,
                len(result.references),
                tracker.retries,
            )

        context.push(file if result.text == text else file.with_text(result.text))


def create_replace_stage(
    config: AssetConfig,
    store: ManifestStore,
    writer: ManifestWriter | None = None,
    **overrides,
) -> ReplaceStage:
    """
    Factory function to create a replace stage.

    Args:
        config: Base configuration.
        store: Shared manifest store.
        writer: Optional manifest writer.
        **overrides: Options overriding ``config`` for this stage only,
            e.g. ``interval=50, repeat=40``.

    Returns:
        Configured ReplaceStage.
    """
    return ReplaceStage(config.with_overrides(**overrides), store, writer)
