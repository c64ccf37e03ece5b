"""Store Retry — bounded retry with backoff for transient store failures.

Invariants:
    - Only StoreUnavailableError is retried; every other error propagates on first sight
    - Exponential backoff with ±25% jitter, capped at max_delay_ms
    - On exhaustion the re-raised error carries retry_after_ms = max_delay_ms (Retry-After)
    - with_store_retry is for reads, create-if-absent writes and idempotent follow-up writes
    - A decisive conditional write goes through retry_conditional_write: after a transient
      failure the write may or may not have landed, so state is re-read before deciding

Design Decisions:
    - Jitter on backoff: concurrent requests hitting the same flaky store don't retry in lockstep
    - `landed` callback over returning the record: the caller knows what "my write"
      looks like (used_by_sub + used_at, or owner_sub), the helper does not
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable, TypeVar

from artledger.config import Settings
from artledger.core.errors import (
    PreconditionFailedError, RecordAlreadyExistsError, StoreUnavailableError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay_ms: int = 50
    max_delay_ms: int = 2_000

    @classmethod
    def from_settings(cls, settings: Settings) -> "RetryPolicy":
        return cls(
            max_retries=settings.store_max_retries,
            base_delay_ms=settings.store_base_delay_ms,
            max_delay_ms=settings.store_max_delay_ms,
        )

    def delay_seconds(self, attempt: int) -> float:
        """Backoff before retry number `attempt` (0-based)."""
        delay = min(self.base_delay_ms * (2 ** attempt), self.max_delay_ms)
        jitter = delay * 0.25 * (2 * random.random() - 1)
        return max(delay + jitter, 0) / 1000


async def with_store_retry(
    operation: Callable[[], Awaitable[T]],
    policy: RetryPolicy,
    description: str,
    artwork_id: str | None = None,
) -> T:
    """Run `operation`, retrying StoreUnavailableError up to policy.max_retries times."""
    for attempt in range(policy.max_retries + 1):
        try:
            return await operation()
        except StoreUnavailableError as exc:
            if attempt >= policy.max_retries:
                logger.error(
                    f"Store {description} failed after {attempt + 1} attempts",
                    extra={"operation": description, "attempt": attempt + 1,
                           "artwork_id": artwork_id},
                )
                exc.context.retry_after_ms = policy.max_delay_ms
                raise
            logger.warning(
                f"Store {description} unavailable, retrying",
                extra={"operation": description, "attempt": attempt + 1,
                       "artwork_id": artwork_id},
            )
            await asyncio.sleep(policy.delay_seconds(attempt))
    raise AssertionError("unreachable")


async def retry_conditional_write(
    write: Callable[[], Awaitable[T]],
    landed: Callable[[], Awaitable[bool]],
    policy: RetryPolicy,
    description: str,
    artwork_id: str | None = None,
) -> T | None:
    """Conditional write that survives an ambiguous transient failure.

    Returns the written record, or None when a previous attempt turned out to
    have landed (the caller re-reads if it needs the record). A precondition /
    duplicate-key failure is re-raised unless an earlier ambiguous attempt
    already applied this very write.
    """
    ambiguous = False
    for attempt in range(policy.max_retries + 1):
        try:
            return await write()
        except (PreconditionFailedError, RecordAlreadyExistsError):
            if ambiguous and await landed():
                return None
            raise
        except StoreUnavailableError as exc:
            ambiguous = True
            if await landed():
                logger.info(
                    f"Store {description} landed despite transient failure",
                    extra={"operation": description, "attempt": attempt + 1,
                           "artwork_id": artwork_id},
                )
                return None
            if attempt >= policy.max_retries:
                logger.error(
                    f"Store {description} failed after {attempt + 1} attempts",
                    extra={"operation": description, "attempt": attempt + 1,
                           "artwork_id": artwork_id},
                )
                exc.context.retry_after_ms = policy.max_delay_ms
                raise
            await asyncio.sleep(policy.delay_seconds(attempt))
    raise AssertionError("unreachable")
