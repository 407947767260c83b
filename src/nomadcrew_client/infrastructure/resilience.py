"""Retry policy for the request pipeline.

Usage example:
    from nomadcrew_client.infrastructure.resilience import RetryPolicy

    policy = RetryPolicy(max_retries=3, base_delay_seconds=1.0, max_delay_seconds=10.0)
    decision = policy.should_retry(error, attempt=0)
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from typing_extensions import override

from ..exceptions import ApiError
from ..protocols import RetryPolicy as RetryPolicyProtocol
from ..types import NO_RETRY, RetryDecision


@dataclass(frozen=True)
class RetryPolicy(RetryPolicyProtocol):
    """Retry server errors (5xx) with capped exponential backoff.

    Client errors (400, 401, 403, 404, 409), rate limiting (429) and network
    failures are never retried here; callers decide what to do with them.
    """

    max_retries: int = 3
    base_delay_seconds: float = 1.0
    backoff_factor: float = 2.0
    max_delay_seconds: float = 10.0
    jitter_seconds: float = 0.0

    def compute_backoff(self, attempt: int) -> float:
        """Delay before retry number `attempt + 1`: 1s, 2s, 4s... capped."""
        base = min(self.max_delay_seconds, self.base_delay_seconds * (self.backoff_factor**attempt))
        if self.jitter_seconds > 0:
            base += random.uniform(0.0, self.jitter_seconds)
        return float(base)

    @override
    def should_retry(self, error: ApiError, attempt: int) -> RetryDecision:
        if not error.is_server_error:
            return NO_RETRY
        if attempt >= self.max_retries:
            return NO_RETRY
        return RetryDecision(retry=True, delay_seconds=self.compute_backoff(attempt))
