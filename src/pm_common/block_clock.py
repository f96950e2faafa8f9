"""Logical clock — monotonic block height used to gate market timing.

The height is derived from wall-clock time since a fixed genesis instant:

    height = floor((now - GENESIS_AT) / BLOCK_TIME_SECONDS)

Heights before genesis clamp to 0. Services depend on the BlockClock
Protocol so tests can pin the height.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Protocol

from config.settings import settings


def utc_now() -> datetime:
    return datetime.now(UTC)


class BlockClock(Protocol):
    def current_height(self) -> int: ...


class WallClockBlockHeight:
    def __init__(
        self,
        genesis_at: datetime | None = None,
        block_time_seconds: int | None = None,
        now: Callable[[], datetime] = utc_now,
    ) -> None:
        self._genesis_at = genesis_at or settings.GENESIS_AT
        self._block_time = block_time_seconds or settings.BLOCK_TIME_SECONDS
        if self._block_time <= 0:
            raise ValueError(f"block_time_seconds must be positive, got {self._block_time}")
        if self._genesis_at.tzinfo is None:
            raise ValueError("genesis_at must be timezone-aware")
        self._now = now

    def current_height(self) -> int:
        elapsed = (self._now() - self._genesis_at).total_seconds()
        if elapsed <= 0:
            return 0
        return int(elapsed) // self._block_time


class FixedBlockHeight:
    """Pinned clock for tests and replay tooling."""

    def __init__(self, height: int = 0) -> None:
        self.height = height

    def current_height(self) -> int:
        return self.height

    def advance(self, blocks: int = 1) -> int:
        self.height += blocks
        return self.height


def get_block_clock() -> BlockClock:
    """Default clock wired into application services."""
    return WallClockBlockHeight()
