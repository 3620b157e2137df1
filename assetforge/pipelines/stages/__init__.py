"""Pipeline stages implementations."""

from assetforge.pipelines.stages.replace import (
    REFERENCE_PATTERN,
    ReplaceStage,
    UnresolvedReferenceError,
    create_replace_stage,
    find_references,
)
from assetforge.pipelines.stages.rev import (
    RevStage,
    create_rev_stage,
)

__all__ = [
    # Renaming
    "RevStage",
    "create_rev_stage",
    # Reference rewriting
    "ReplaceStage",
    "create_replace_stage",
    "UnresolvedReferenceError",
    "REFERENCE_PATTERN",
    "find_references",
]
