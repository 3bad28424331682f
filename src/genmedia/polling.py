"""Polling policies and the backoff curve shared by the pollers.

Two shapes are used:
- adaptive (asset processing): start at ``initial_interval_s``, multiply by
  ``backoff_multiplier`` after every non-terminal poll, cap at
  ``max_interval_s``;
- fixed (long-running operations): ``fixed_interval_s`` between every poll.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from genmedia.constants import (
    RATE_LIMIT_COOLDOWN_S,
    VEO_POLL_INTERVAL_S,
    VEO_POLL_MAX_ATTEMPTS,
    VIDEO_POLL_INTERVAL_MAX_S,
    VIDEO_POLL_INTERVAL_START_S,
    VIDEO_POLL_MAX_ATTEMPTS,
)

if TYPE_CHECKING:
    from collections.abc import Iterator


@dataclass(frozen=True)
class PollPolicy:
    """Immutable polling configuration for one wait."""

    initial_interval_s: float = 10.0
    backoff_multiplier: float = 1.5
    max_interval_s: float = 30.0
    max_attempts: int = 120
    #: When set, every wait uses this interval and the curve is ignored.
    fixed_interval_s: float | None = None
    #: Pause after a rate-limit response instead of the normal curve.
    rate_limit_cooldown_s: float = 60.0

    def __post_init__(self) -> None:
        """Validate invariants to keep polling behavior predictable."""
        if self.max_attempts < 1:
            raise ValueError("PollPolicy.max_attempts must be >= 1")
        if self.initial_interval_s < 0:
            raise ValueError("PollPolicy.initial_interval_s must be >= 0")
        if self.backoff_multiplier < 1:
            raise ValueError("PollPolicy.backoff_multiplier must be >= 1")
        if self.max_interval_s < self.initial_interval_s:
            raise ValueError("PollPolicy.max_interval_s must be >= initial_interval_s")
        if self.fixed_interval_s is not None and self.fixed_interval_s < 0:
            raise ValueError("PollPolicy.fixed_interval_s must be >= 0 or None")
        if self.rate_limit_cooldown_s < 0:
            raise ValueError("PollPolicy.rate_limit_cooldown_s must be >= 0")

    @classmethod
    def fixed(cls, interval_s: float, *, max_attempts: int) -> PollPolicy:
        """A non-adaptive policy: the same interval before every poll."""
        return cls(
            initial_interval_s=interval_s,
            backoff_multiplier=1.0,
            max_interval_s=interval_s,
            max_attempts=max_attempts,
            fixed_interval_s=interval_s,
        )

    def next_interval(self, current_s: float) -> float:
        """Interval to use after a non-terminal poll that waited *current_s*."""
        if self.fixed_interval_s is not None:
            return self.fixed_interval_s
        return min(current_s * self.backoff_multiplier, self.max_interval_s)

    def intervals(self) -> Iterator[float]:
        """Yield the wait before each successive poll, forever."""
        interval = (
            self.fixed_interval_s
            if self.fixed_interval_s is not None
            else self.initial_interval_s
        )
        while True:
            yield interval
            interval = self.next_interval(interval)


# Asset processing: 10s, 15s, 22.5s, ... capped at 30s; up to 120 polls.
ASSET_POLL_POLICY = PollPolicy(
    initial_interval_s=VIDEO_POLL_INTERVAL_START_S,
    backoff_multiplier=1.5,
    max_interval_s=VIDEO_POLL_INTERVAL_MAX_S,
    max_attempts=VIDEO_POLL_MAX_ATTEMPTS,
    rate_limit_cooldown_s=RATE_LIMIT_COOLDOWN_S,
)

# Video operations: every 10s, up to 60 polls (about ten minutes).
OPERATION_POLL_POLICY = PollPolicy.fixed(
    VEO_POLL_INTERVAL_S, max_attempts=VEO_POLL_MAX_ATTEMPTS
)
