"""Transfer Rules — pure validation for issuing, redeeming and claiming.

Invariants:
    - Every function is PURE: inputs are records and an explicit `now`, never the clock
    - Every check raises a specific ArtLedgerError subclass; returning means "allowed"
    - Redeemability order is fixed: used -> expired (code), then stale (ownership)
    - Expiry is inclusive: now >= expires_at is expired

Design Decisions:
    - Rules separated from services: services own IO ordering and conditional writes,
      rules own the decision (tests exercise every branch without a store)
    - Invalid ttl (non-integer, <= 0, above the configured maximum) falls back to
      the default instead of failing the request
"""

from datetime import datetime, timedelta, timezone

from artledger.core.domain_types import (
    ArtworkId, Subject, OwnershipRecord, TransferCodeRecord, OwnershipStatus,
)
from artledger.core.errors import (
    AlreadyClaimedError,
    CodeAlreadyUsedError,
    CodeExpiredError,
    CodeStaleError,
    ErrorContext,
    InvalidArgumentError,
    NotOwnerError,
    UnauthorizedError,
)

DEFAULT_TTL_MINUTES: int = 10
MAX_TTL_MINUTES: int = 7 * 24 * 60


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


# ─── Argument validation ─────────────────────────────────────────

def require_subject(sub: str | None, operation: str | None = None) -> Subject:
    """Verified caller identity or Unauthorized."""
    if not isinstance(sub, str) or not sub.strip():
        raise UnauthorizedError(ErrorContext(operation=operation))
    return Subject(sub.strip())


def require_argument(value: object, name: str) -> str:
    """Non-empty string argument or InvalidArgument."""
    if not isinstance(value, str) or not value.strip():
        raise InvalidArgumentError(f"Missing {name}", name)
    return value.strip()


def normalize_ttl_minutes(
    value: object,
    default: int = DEFAULT_TTL_MINUTES,
    maximum: int = MAX_TTL_MINUTES,
) -> int:
    """Positive integer ttl up to `maximum`, otherwise the default."""
    if isinstance(value, bool):
        return default
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or not 0 < value <= maximum:
        return default
    return value


def compute_expiry(now: datetime, ttl_minutes: int) -> datetime:
    return as_utc(now) + timedelta(minutes=ttl_minutes)


# ─── Ownership rules ─────────────────────────────────────────────

def check_issuer_is_owner(
    ownership: OwnershipRecord | None, owner_sub: Subject, artwork_id: ArtworkId,
) -> None:
    """Only the current owner may mint a transfer code."""
    if ownership is None or not ownership.owner_sub:
        raise NotOwnerError(artwork_id)
    if ownership.owner_sub != owner_sub:
        raise NotOwnerError(artwork_id)


def check_claimable(
    ownership: OwnershipRecord | None, artwork_id: ArtworkId,
) -> None:
    """claimUnclaimed is only allowed while nobody owns the artwork."""
    if ownership is not None and ownership.status == OwnershipStatus.OWNED:
        raise AlreadyClaimedError(artwork_id)


# ─── Code rules ──────────────────────────────────────────────────

def check_code_redeemable(record: TransferCodeRecord, now: datetime) -> None:
    """Code-local checks: not used, not expired."""
    ctx = ErrorContext(artwork_id=record.artwork_id, operation="claimTransfer")
    if record.is_used:
        raise CodeAlreadyUsedError(ctx)
    if as_utc(now) >= as_utc(record.expires_at):
        raise CodeExpiredError(ctx)


def check_code_not_stale(
    record: TransferCodeRecord, ownership: OwnershipRecord | None,
) -> None:
    """Ownership must not have changed since issuance.

    Compares the owner and, when the code recorded it, the ownership version:
    a round trip back to the issuer still voids the code.
    """
    if ownership is None or not ownership.owner_sub:
        return
    moved = (
        record.ownership_version is not None
        and ownership.version != record.ownership_version
    )
    if moved or ownership.owner_sub != record.created_by_sub:
        raise CodeStaleError(
            ErrorContext(artwork_id=record.artwork_id, operation="claimTransfer"),
        )
