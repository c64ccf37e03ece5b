"""Service Context — collaborators handed to every operation.

Invariants:
    - Built once per process (FastAPI lifespan) or per test; immutable afterwards
    - clock returns timezone-aware UTC datetimes
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from artledger.config import Settings
from artledger.core.repository_protocols import OwnershipStore
from artledger.services.store_retry import RetryPolicy


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class ServiceContext:
    """Store, settings and clock shared by the ownership services."""
    store: OwnershipStore
    settings: Settings
    clock: Callable[[], datetime] = field(default=utc_now)

    @property
    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy.from_settings(self.settings)
