"""Pipeline stages, retry state and the runner that wires them together."""

from assetforge.pipelines.retry import ResolutionState, ResolutionTracker, RetryPolicy
from assetforge.pipelines.runner import (
    AssetPipeline,
    Branch,
    BranchResult,
    PipelineResult,
    create_pipeline,
)
from assetforge.pipelines.stage import Stage, StageContext, StageError, StageResult, StageType

__all__ = [
    "Stage",
    "StageContext",
    "StageError",
    "StageResult",
    "StageType",
    "RetryPolicy",
    "ResolutionState",
    "ResolutionTracker",
    "AssetPipeline",
    "Branch",
    "BranchResult",
    "PipelineResult",
    "create_pipeline",
]
