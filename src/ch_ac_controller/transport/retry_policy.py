"""Retry policy for socket-bind and transport-failure recovery."""

from __future__ import annotations

import random

from ch_ac_controller.const import CHAC_BIND_RETRY_DELAY


class RetryPolicy:
    """Backoff retry policy with optional jitter.

    The defaults give the fixed restart delay the appliances have always been
    driven with (no growth, no jitter). Raising ``backoff_factor`` turns it
    into exponential backoff capped at ``max_delay_seconds``.
    """

    def __init__(
        self,
        base_delay_seconds: float = CHAC_BIND_RETRY_DELAY,
        max_delay_seconds: float | None = None,
        backoff_factor: float = 1.0,
        jitter_factor: float = 0.0,
    ):
        """Initialize retry policy.

        Args:
            base_delay_seconds: Delay before the first retry (default: 5.0s)
            max_delay_seconds: Maximum delay cap (default: base delay)
            backoff_factor: Growth per attempt (default: 1.0 = fixed delay)
            jitter_factor: Jitter as fraction of delay (default: 0.0)
        """
        if base_delay_seconds <= 0:
            msg = f"base_delay_seconds must be positive, got {base_delay_seconds}"
            raise ValueError(msg)
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max(max_delay_seconds or base_delay_seconds, base_delay_seconds)
        self.backoff_factor = backoff_factor
        self.jitter_factor = jitter_factor

    def get_delay(self, attempt: int) -> float:
        """Calculate delay for retry attempt.

        Formula: base_delay * (backoff_factor ** attempt) + jitter

        Args:
            attempt: Retry attempt number (0-indexed, so attempt=0 is first retry)

        Returns:
            Delay in seconds (capped at max_delay_seconds before jitter)
        """
        delay = self.base_delay_seconds * (self.backoff_factor ** max(attempt, 0))
        delay = min(delay, self.max_delay_seconds)

        if self.jitter_factor:
            delay += random.uniform(0, delay * self.jitter_factor)
        return delay

    def __repr__(self) -> str:
        return (
            f"RetryPolicy(base_delay={self.base_delay_seconds}s, "
            f"max_delay={self.max_delay_seconds}s, "
            f"backoff_factor={self.backoff_factor}, "
            f"jitter_factor={self.jitter_factor})"
        )
