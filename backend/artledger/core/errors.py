"""Error Hierarchy — typed, categorized exceptions for every ownership-transfer failure mode.

Invariants:
    - Every error has a code (str), category (ErrorCategory), severity (ErrorSeverity)
    - Domain errors (400-level) are terminal for the request and leave no partial writes
    - Infrastructure errors (500-level) are transient; retry policy lives in services
    - to_response() produces the REST envelope
    - No internal details (and never a transfer code) leaked in user-facing messages

Design Decisions:
    - Single hierarchy with ArtLedgerError base: FastAPI global handler catches all
    - Store outcomes (RecordAlreadyExists, PreconditionFailed, RecordNotFound) are part of
      the hierarchy so the store never raises backend-specific exceptions to services
    - ErrorContext as dataclass: rich observability without coupling to logging framework
"""

from dataclasses import dataclass, field
from enum import Enum
from datetime import datetime, timezone


class ErrorSeverity(str, Enum):
    """Error severity for observability and client handling."""
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """High-level error categories for routing and handling."""
    AUTHENTICATION = "authentication"
    AUTHORIZATION = "authorization"
    VALIDATION = "validation"
    BUSINESS_RULE = "business_rule"
    RESOURCE_NOT_FOUND = "resource_not_found"
    CONFLICT = "conflict"
    STORE = "store"
    INTERNAL = "internal"


@dataclass
class ErrorContext:
    """Rich context for error observability and debugging."""
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    artwork_id: str | None = None
    operation: str | None = None
    retry_after_ms: int | None = None


class ArtLedgerError(Exception):
    """Base exception for all ArtLedger errors."""

    def __init__(
        self,
        message: str,
        code: str,
        category: ErrorCategory,
        severity: ErrorSeverity = ErrorSeverity.ERROR,
        context: ErrorContext | None = None,
        http_status: int = 500,
    ):
        super().__init__(message)
        self.message = message
        self.code = code
        self.category = category
        self.severity = severity
        self.context = context or ErrorContext()
        self.http_status = http_status

    def to_response(self) -> dict:
        """Convert to standardized REST error response."""
        return {
            "error": {
                "code": self.code,
                "message": self.message,
                "category": self.category.value,
                "severity": self.severity.value,
                "timestamp": self.context.timestamp.isoformat(),
                "context": {
                    "artwork_id": self.context.artwork_id,
                    "operation": self.context.operation,
                    "retry_after_ms": self.context.retry_after_ms,
                },
            }
        }


# ─── Caller Errors (400-level) ──────────────────────────────────

class UnauthorizedError(ArtLedgerError):
    """No verified caller identity on the request."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Unauthorized", "UNAUTHORIZED", ErrorCategory.AUTHENTICATION,
            ErrorSeverity.WARNING, context, 401,
        )


class InvalidArgumentError(ArtLedgerError):
    """Required argument missing or malformed."""
    def __init__(self, message: str, field: str, context: ErrorContext | None = None):
        super().__init__(
            message, "INVALID_ARGUMENT", ErrorCategory.VALIDATION,
            ErrorSeverity.WARNING, context, 400,
        )
        self.field = field


class NotOwnerError(ArtLedgerError):
    """Caller is not the current owner of the artwork."""
    def __init__(
        self,
        artwork_id: str,
        context: ErrorContext | None = None,
        message: str = "Only the current owner can transfer this artwork",
    ):
        ctx = context or ErrorContext()
        ctx.artwork_id = artwork_id
        super().__init__(
            message,
            "NOT_OWNER", ErrorCategory.AUTHORIZATION,
            ErrorSeverity.WARNING, ctx, 403,
        )


class InvalidCodeError(ArtLedgerError):
    """Transfer code does not exist."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Invalid transfer code", "INVALID_CODE",
            ErrorCategory.RESOURCE_NOT_FOUND, ErrorSeverity.WARNING, context, 404,
        )


class CodeAlreadyUsedError(ArtLedgerError):
    """Transfer code was already redeemed (possibly by a concurrent request)."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Transfer code already used", "CODE_ALREADY_USED",
            ErrorCategory.CONFLICT, ErrorSeverity.WARNING, context, 409,
        )


class CodeExpiredError(ArtLedgerError):
    """Transfer code reached its expiry."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Transfer code expired", "CODE_EXPIRED",
            ErrorCategory.BUSINESS_RULE, ErrorSeverity.WARNING, context, 410,
        )


class CodeStaleError(ArtLedgerError):
    """Ownership changed since the code was issued; the code is void."""
    def __init__(self, context: ErrorContext | None = None):
        super().__init__(
            "Transfer code no longer valid", "CODE_STALE",
            ErrorCategory.CONFLICT, ErrorSeverity.WARNING, context, 409,
        )


class ArtworkNotFoundError(ArtLedgerError):
    """Artwork does not exist."""
    def __init__(self, artwork_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.artwork_id = artwork_id
        super().__init__(
            "Artwork not found", "ARTWORK_NOT_FOUND",
            ErrorCategory.RESOURCE_NOT_FOUND, ErrorSeverity.WARNING, ctx, 404,
        )


class AlreadyClaimedError(ArtLedgerError):
    """Artwork already has an owner."""
    def __init__(self, artwork_id: str, context: ErrorContext | None = None):
        ctx = context or ErrorContext()
        ctx.artwork_id = artwork_id
        super().__init__(
            "Artwork already claimed", "ALREADY_CLAIMED",
            ErrorCategory.CONFLICT, ErrorSeverity.WARNING, ctx, 409,
        )


class ConcurrentUpdateConflictError(ArtLedgerError):
    """Lost a race that cannot be mapped to a more specific outcome."""
    def __init__(self, message: str, context: ErrorContext | None = None):
        super().__init__(
            message, "CONCURRENT_UPDATE_CONFLICT", ErrorCategory.CONFLICT,
            ErrorSeverity.ERROR, context, 409,
        )


# ─── Store Outcomes (mapped by services) ────────────────────────

class RecordAlreadyExistsError(ArtLedgerError):
    """Create-if-absent found an existing record under the same key."""
    def __init__(self, entity: str, key: str, context: ErrorContext | None = None):
        super().__init__(
            f"{entity} already exists", "RECORD_ALREADY_EXISTS",
            ErrorCategory.CONFLICT, ErrorSeverity.INFO, context, 409,
        )
        self.entity = entity
        self.key = key


class PreconditionFailedError(ArtLedgerError):
    """Conditional update found the record no longer matching the expected snapshot."""
    def __init__(self, entity: str, key: str, context: ErrorContext | None = None):
        super().__init__(
            f"{entity} changed concurrently", "PRECONDITION_FAILED",
            ErrorCategory.CONFLICT, ErrorSeverity.INFO, context, 409,
        )
        self.entity = entity
        self.key = key


class RecordNotFoundError(ArtLedgerError):
    """Update targeted a key with no record."""
    def __init__(self, entity: str, key: str, context: ErrorContext | None = None):
        super().__init__(
            f"{entity} not found", "RECORD_NOT_FOUND",
            ErrorCategory.RESOURCE_NOT_FOUND, ErrorSeverity.ERROR, context, 404,
        )
        self.entity = entity
        self.key = key


# ─── Infrastructure Errors (500-level) ──────────────────────────

class StoreUnavailableError(ArtLedgerError):
    """Transient datastore failure. Safe to retry reads and create-if-absent writes."""
    def __init__(self, message: str, operation: str, context: ErrorContext | None = None):
        super().__init__(
            f"Store {operation} failed: {message}",
            "STORE_UNAVAILABLE", ErrorCategory.STORE,
            ErrorSeverity.CRITICAL, context, 503,
        )
        self.operation = operation


class TransferIncompleteError(ArtLedgerError):
    """Decisive write succeeded but follow-up writes kept failing after retries."""
    def __init__(
        self, message: str, artwork_id: str, context: ErrorContext | None = None,
    ):
        ctx = context or ErrorContext()
        ctx.artwork_id = artwork_id
        super().__init__(
            message,
            "TRANSFER_INCOMPLETE", ErrorCategory.STORE,
            ErrorSeverity.CRITICAL, ctx, 503,
        )


class IntegrityViolationError(ArtLedgerError):
    """Write rejected by a data constraint other than the primary key. Not retried."""
    def __init__(self, entity: str, key: str, context: ErrorContext | None = None):
        super().__init__(
            f"{entity} write rejected by a data constraint",
            "INTEGRITY_VIOLATION", ErrorCategory.INTERNAL,
            ErrorSeverity.CRITICAL, context, 500,
        )
        self.entity = entity
        self.key = key
