"""
Bounded retry for reference resolution.

Each text file waiting on unrevisioned assets runs a small state machine:
SCANNING -> (WAITING -> SCANNING)* -> RESOLVED | EXHAUSTED. Waiting suspends
the coroutine, never a thread, and every wait spends one retry.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from assetforge.core.config import AssetConfig

logger = logging.getLogger(__name__)


class ResolutionState(str, Enum):
    """State of a file's reference resolution."""

    SCANNING = "scanning"
    WAITING = "waiting"
    RESOLVED = "resolved"
    EXHAUSTED = "exhausted"


@dataclass(frozen=True)
class RetryPolicy:
    """Fixed-interval retry budget."""

    max_retries: int = 10
    interval_seconds: float = 0.1

    @property
    def max_stall_seconds(self) -> float:
        """Worst-case time a file spends waiting."""
        return self.max_retries * self.interval_seconds

    def should_retry(self, retries: int) -> bool:
        """
        Determine if another wait is allowed.

        Args:
            retries: Retries spent so far.

        Returns:
            True if the budget has room for one more.
        """
        return retries < self.max_retries

    @classmethod
    def from_config(cls, config: AssetConfig) -> RetryPolicy:
        return cls(max_retries=config.repeat, interval_seconds=config.interval_seconds)


@dataclass
class ResolutionTracker:
    """Retry state for one file."""

    path: str
    policy: RetryPolicy = field(default_factory=RetryPolicy)
    state: ResolutionState = ResolutionState.SCANNING
    retries: int = 0
    passes: int = 0
    started_at: float = field(default_factory=time.monotonic)
    finished_at: float | None = None

    @property
    def deadline(self) -> float:
        """Monotonic time by which the file is resolved or given up on."""
        return self.started_at + self.policy.max_stall_seconds

    @property
    def exhausted(self) -> bool:
        return not self.policy.should_retry(self.retries)

    @property
    def done(self) -> bool:
        return self.state in (ResolutionState.RESOLVED, ResolutionState.EXHAUSTED)

    @property
    def elapsed_seconds(self) -> float:
        end = self.finished_at if self.finished_at is not None else time.monotonic()
        return end - self.started_at

    def transition(self, state: ResolutionState) -> None:
        """Move to a new state."""
        if self.done:
            raise RuntimeError(f"{self.path}: resolution already {self.state.value}")
        self.state = state

    def begin_pass(self) -> None:
        """Enter SCANNING for a substitution pass."""
        self.transition(ResolutionState.SCANNING)
        self.passes += 1

    async def wait(self) -> None:
        """
        Spend one retry and suspend for one interval.

        Raises:
            RuntimeError: If the budget is already exhausted.
        """
        if self.exhausted:
            raise RuntimeError(f"{self.path}: retry budget exhausted")
        self.retries += 1
        self.transition(ResolutionState.WAITING)
        logger.debug(
            "%s: waiting for assets (retry %d/%d)",
            self.path,
            self.retries,
            self.policy.max_retries,
        )
        await asyncio.sleep(self.policy.interval_seconds)

    def finish(self, unresolved: bool) -> ResolutionState:
        """Settle in RESOLVED or EXHAUSTED."""
        self.transition(ResolutionState.EXHAUSTED if unresolved else ResolutionState.RESOLVED)
        self.finished_at = time.monotonic()
        return self.state

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for reporting."""
        return {
            "path": self.path,
            "state": self.state.value,
            "retries": self.retries,
            "passes": self.passes,
            "max_retries": self.policy.max_retries,
            "elapsed_ms": self.elapsed_seconds * 1000,
        }
