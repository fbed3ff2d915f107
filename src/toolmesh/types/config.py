"""Shared configuration types for toolmesh."""

from dataclasses import dataclass

from .enums import BackoffType


@dataclass
class RetryConfig:
    """Retry configuration for tool calls and catalog fetches."""

    max_attempts: int = 3
    backoff: BackoffType = BackoffType.FIXED
    delay_seconds: float = 1.0
    max_delay_seconds: float = 60.0

    def delay_for(self, attempt: int) -> float:
        """Delay before the given retry attempt (1 = first retry)."""
        if self.backoff == BackoffType.EXPONENTIAL:
            delay = self.delay_seconds * (2 ** max(attempt - 1, 0))
        else:
            delay = self.delay_seconds
        return min(delay, self.max_delay_seconds)
