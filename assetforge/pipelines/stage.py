"""
Pipeline stage abstraction.

A stage consumes one file at a time and pushes zero or more files
downstream. Failures are signalled through the context rather than raised,
so one bad file never aborts the rest of the build.
"""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from assetforge.core.asset_file import AssetFile
from assetforge.core.config import AssetConfig
from assetforge.manifest.store import ManifestStore

logger = logging.getLogger(__name__)


class StageType(str, Enum):
    """Type of pipeline stage."""

    REV = "rev"
    REPLACE = "replace"


class StageError(Exception):
    """Error signalled by a stage for a single file."""

    def __init__(self, stage_name: str, message: str, path: str | None = None):
        super().__init__(f"{stage_name}: {message}")
        self.stage_name = stage_name
        self.message = message
        self.path = path


@dataclass
class StageResult:
    """Counters accumulated by a stage across files."""

    files_in: int = 0
    files_out: int = 0
    error_count: int = 0

    @property
    def success(self) -> bool:
        return self.error_count == 0


@dataclass
class StageContext:
    """
    Output channel for a stage invocation.

    Collects pushed files and signalled errors; ``on_error`` lets the
    caller observe errors as they happen.
    """

    stage_name: str
    outputs: list[AssetFile] = field(default_factory=list)
    errors: list[StageError] = field(default_factory=list)
    on_error: Callable[[StageError], None] | None = None

    def push(self, file: AssetFile) -> None:
        """Send a file downstream."""
        self.outputs.append(file)

    def error(self, error: StageError) -> None:
        """Signal an error without halting the pipeline."""
        logger.error("%s", error)
        self.collect(error)

    def collect(self, error: StageError) -> None:
        """Record an error that has already been reported."""
        self.errors.append(error)
        if self.on_error:
            self.on_error(error)


class Stage(ABC):
    """
    Abstract base class for pipeline stages.

    Stages share the manifest store they were built with; they hold no
    other cross-file state.
    """

    stage_type: StageType

    def __init__(self, config: AssetConfig, store: ManifestStore):
        """
        Initialize stage.

        Args:
            config: Build configuration.
            store: Shared manifest store.
        """
        self.config = config
        self.store = store
        self.stats = StageResult()

    @property
    def name(self) -> str:
        """Stage name."""
        return self.stage_type.value

    @abstractmethod
    async def process(self, file: AssetFile, context: StageContext) -> None:
        """
        Process one file.

        Args:
            file: Input file.
            context: Channel for output files and errors.
        """
        ...

    async def handle(self, file: AssetFile, context: StageContext) -> None:
        """
        Process one file, converting unexpected exceptions into signalled errors.
        """
        # Per-file channel so counters stay exact while files interleave.
        local = StageContext(stage_name=context.stage_name, on_error=context.collect)
        self.stats.files_in += 1

        try:
            await self.process(file, local)
        except Exception as e:
            logger.debug("Unhandled error in %s for %s", self.name, file.path, exc_info=True)
            local.error(StageError(self.name, f"{file.path}: {e}", path=str(file.path)))

        context.outputs.extend(local.outputs)
        self.stats.files_out += len(local.outputs)
        self.stats.error_count += len(local.errors)

    async def run(self, files: Iterable[AssetFile]) -> StageContext:
        """
        Process files concurrently and collect everything they produce.

        Args:
            files: Input files.

        Returns:
            Context holding outputs and errors.
        """
        context = StageContext(stage_name=self.name)
        await asyncio.gather(*(self.handle(f, context) for f in files))
        return context
