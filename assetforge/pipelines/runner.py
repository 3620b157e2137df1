"""
Pipeline runner.

Runs independent branches of files concurrently over one shared manifest
store, then flushes the manifest.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from assetforge.core.asset_file import AssetFile
from assetforge.core.config import AssetConfig, BranchSpec
from assetforge.manifest.persistence import ManifestWriter
from assetforge.manifest.store import ManifestStore
from assetforge.pipelines.stage import Stage, StageContext, StageError
from assetforge.pipelines.stages.replace import ReplaceStage, ResolutionReport
from assetforge.pipelines.stages.rev import RevStage

logger = logging.getLogger(__name__)


@dataclass
class Branch:
    """Files and the ordered stages they flow through."""

    name: str
    stages: list[Stage]
    files: list[AssetFile] = field(default_factory=list)


@dataclass
class BranchResult:
    """Everything a branch emitted."""

    name: str
    outputs: list[AssetFile] = field(default_factory=list)
    errors: list[StageError] = field(default_factory=list)


@dataclass
class PipelineResult:
    """Result of a pipeline run."""

    branches: dict[str, BranchResult] = field(default_factory=dict)
    reports: list[ResolutionReport] = field(default_factory=list)
    manifest_path: Path | None = None

    @property
    def outputs(self) -> list[AssetFile]:
        return [f for b in self.branches.values() for f in b.outputs]

    @property
    def errors(self) -> list[StageError]:
        return [e for b in self.branches.values() for e in b.errors]

    @property
    def success(self) -> bool:
        return not self.errors


@dataclass
class AssetPipeline:
    """
    Owns the manifest store and writer and wires them into stages.

    Every stage built by one pipeline shares its store, so rev branches
    and replace branches coordinate without handing files to each other.
    """

    config: AssetConfig = field(default_factory=AssetConfig)
    cwd: Path = field(default_factory=Path.cwd)
    store: ManifestStore = field(default_factory=ManifestStore)
    writer: ManifestWriter | None = None

    def __post_init__(self) -> None:
        self.cwd = Path(self.cwd).resolve()
        if self.writer is None:
            self.writer = ManifestWriter(self.store, self.config, cwd=self.cwd)

    @property
    def src_root(self) -> Path:
        return self.config.src_root(self.cwd)

    @property
    def dest_root(self) -> Path:
        return self.config.dest_root(self.cwd)

    def rev(self, *, apply_prefix: bool = True, **overrides) -> RevStage:
        """Build a rev stage; keyword options override the pipeline config."""
        return RevStage(
            self.config.with_overrides(**overrides),
            self.store,
            self.writer,
            apply_prefix=apply_prefix,
        )

    def replace(self, **overrides) -> ReplaceStage:
        """
        Build a replace stage; keyword options override the pipeline config.

        Raises:
            ValueError: If an ``asset_path`` or ``manifest`` override would
                move the manifest away from the pipeline's writer.
        """
        return ReplaceStage(self.config.with_overrides(**overrides), self.store, self.writer)

    def stage(self, name: str) -> Stage:
        """
        Build a stage by name.

        Raises:
            ValueError: If the name is not a known stage.
        """
        if name == "rev":
            return self.rev()
        if name == "replace":
            return self.replace()
        raise ValueError(f"Unknown stage '{name}'")

    def discover(self, patterns: Iterable[str]) -> list[AssetFile]:
        """
        Read source files matching glob patterns below the source root.

        Args:
            patterns: Globs relative to the source root, e.g. ``**/*.css``.

        Returns:
            Files in sorted path order, each at most once.
        """
        seen: set[Path] = set()
        paths: list[Path] = []
        for pattern in patterns:
            for path in self.src_root.glob(pattern):
                if path.is_file() and path not in seen:
                    seen.add(path)
                    paths.append(path)
        return [AssetFile.from_path(p, cwd=self.cwd) for p in sorted(paths)]

    def branch(
        self,
        name: str,
        stages: Sequence[str | Stage],
        files: Iterable[AssetFile] = (),
        patterns: Iterable[str] = (),
    ) -> Branch:
        """
        Assemble a branch from stage names or instances and files or globs.
        """
        built = [self.stage(s) if isinstance(s, str) else s for s in stages]
        return Branch(name=name, stages=built, files=[*files, *self.discover(patterns)])

    async def _flow(self, file: AssetFile, stages: list[Stage], result: BranchResult) -> None:
        if not stages:
            result.outputs.append(file)
            return

        stage, rest = stages[0], stages[1:]
        context = StageContext(stage_name=stage.name, on_error=result.errors.append)
        await stage.handle(file, context)
        await asyncio.gather(*(self._flow(out, rest, result) for out in context.outputs))

    async def run(self, branches: Sequence[Branch]) -> PipelineResult:
        """
        Execute branches concurrently.

        No ordering holds between branches; replace stages wait on the
        store for assets a rev branch has not reached yet.

        Args:
            branches: Branches to run.

        Returns:
            PipelineResult with outputs, errors and resolution reports.
        """
        results = {b.name: BranchResult(name=b.name) for b in branches}

        await asyncio.gather(
            *(
                self._flow(file, branch.stages, results[branch.name])
                for branch in branches
                for file in branch.files
            )
        )

        self.writer.flush()

        reports: list[ResolutionReport] = []
        seen: set[int] = set()
        for branch in branches:
            for stage in branch.stages:
                if isinstance(stage, ReplaceStage) and id(stage) not in seen:
                    seen.add(id(stage))
                    reports.extend(stage.reports)

        return PipelineResult(
            branches=results,
            reports=reports,
            manifest_path=self.writer.last_written,
        )

    def run_sync(self, branches: Sequence[Branch]) -> PipelineResult:
        """Run branches on a fresh event loop."""
        return asyncio.run(self.run(branches))

    def write_outputs(self, files: Iterable[AssetFile]) -> list[Path]:
        """
        Write emitted files below the destination root.

        Each file keeps its path relative to the source root.

        Returns:
            Paths written.
        """
        src_root = self.src_root
        written = []
        for file in files:
            path = file.absolute_path
            if not path.is_relative_to(src_root):
                logger.warning("Skipping %s: outside source root %s", file.path, src_root)
                continue
            target = self.dest_root / path.relative_to(src_root)
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_bytes(file.contents)
            written.append(target)
        return written

    def build(self, specs: Sequence[BranchSpec]) -> PipelineResult:
        """
        Discover, process and write every configured branch.

        Args:
            specs: Branch specifications.

        Returns:
            PipelineResult of the run.
        """
        branches = [self.branch(s.name, s.stages, patterns=s.patterns) for s in specs]
        for branch in branches:
            logger.info("Branch %s: %d file(s)", branch.name, len(branch.files))

        result = self.run_sync(branches)
        written = self.write_outputs(result.outputs)
        logger.info("Wrote %d file(s) to %s", len(written), self.dest_root)
        return result


def create_pipeline(
    config: AssetConfig | None = None,
    cwd: Path | None = None,
) -> AssetPipeline:
    """
    Create an asset pipeline.

    Args:
        config: Optional build configuration.
        cwd: Directory source and destination roots are relative to.

    Returns:
        Configured AssetPipeline with a fresh store.
    """
    return AssetPipeline(
        config=config or AssetConfig(),
        cwd=cwd or Path.cwd(),
    )
