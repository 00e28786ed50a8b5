"""Retry logic with exponential backoff.

This module provides:
- RetryPolicy: explicit retry configuration handed to HTTP client construction
- RetryTransport: httpx transport that retries idempotent requests

Retries are separate from the direct -> proxy upload fallback: a failed
direct upload is not retried through the proxy, it switches path.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field

import httpx

logger = logging.getLogger(__name__)

# Default retry configuration
DEFAULT_MAX_RETRIES = 5
DEFAULT_INITIAL_BACKOFF = 1.0  # seconds
DEFAULT_MAX_BACKOFF = 60.0  # seconds
DEFAULT_BACKOFF_MULTIPLIER = 2.0

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE", "OPTIONS"})
RETRYABLE_STATUS_CODES = frozenset({429, 502, 503, 504})

# Transport-level exceptions that indicate connectivity issues
NETWORK_EXCEPTIONS: tuple[type[Exception], ...] = (
    httpx.TransportError,
    ConnectionError,
    TimeoutError,
)


@dataclass(frozen=True)
class RetryPolicy:
    """How failed idempotent requests are retried.

    Attributes:
        max_retries: Retries after the first attempt (0 disables retrying).
        initial_backoff: Delay before the first retry, in seconds.
        max_backoff: Upper bound on the delay between retries.
        backoff_multiplier: Factor applied to the delay after each retry.
        retry_statuses: Response statuses treated as transient.
        methods: HTTP methods that are safe to replay.
    """

    max_retries: int = DEFAULT_MAX_RETRIES
    initial_backoff: float = DEFAULT_INITIAL_BACKOFF
    max_backoff: float = DEFAULT_MAX_BACKOFF
    backoff_multiplier: float = DEFAULT_BACKOFF_MULTIPLIER
    retry_statuses: frozenset[int] = field(default=RETRYABLE_STATUS_CODES)
    methods: frozenset[str] = field(default=IDEMPOTENT_METHODS)

    @classmethod
    def disabled(cls) -> RetryPolicy:
        """A policy that never retries."""
        return cls(max_retries=0)

    def backoff(self, attempt: int) -> float:
        """Delay before retry number ``attempt`` (0-based)."""
        delay = self.initial_backoff * (self.backoff_multiplier**attempt)
        return min(delay, self.max_backoff)

    def should_retry(self, method: str) -> bool:
        """Whether requests with this method may be retried at all."""
        return self.max_retries > 0 and method.upper() in self.methods


class RetryTransport(httpx.AsyncBaseTransport):
    """Wrap another transport and replay idempotent requests on failure.

    Request bodies must be replayable: either in-memory content or an
    async iterable that returns a fresh iterator on every ``__aiter__``.
    """

    def __init__(
        self,
        policy: RetryPolicy,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._policy = policy
        self._transport = transport or httpx.AsyncHTTPTransport()

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        if not self._policy.should_retry(request.method):
            return await self._transport.handle_async_request(request)

        attempt = 0
        while True:
            try:
                response = await self._transport.handle_async_request(request)
            except NETWORK_EXCEPTIONS as e:
                if attempt >= self._policy.max_retries:
                    logger.error(f"All {self._policy.max_retries} retries failed: {e}")
                    raise
                reason = str(e) or type(e).__name__
            else:
                if (
                    response.status_code not in self._policy.retry_statuses
                    or attempt >= self._policy.max_retries
                ):
                    return response
                await response.aclose()
                reason = f"HTTP {response.status_code}"

            delay = self._policy.backoff(attempt)
            logger.warning(
                f"{request.method} {request.url.host} attempt "
                f"{attempt + 1}/{self._policy.max_retries + 1} failed: {reason}. "
                f"Retrying in {delay:.1f}s..."
            )
            await asyncio.sleep(delay)
            attempt += 1

    async def aclose(self) -> None:
        await self._transport.aclose()
