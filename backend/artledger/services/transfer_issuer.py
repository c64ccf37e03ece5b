"""Transfer Issuer — createTransfer: current owner mints a single-use transfer code.

Invariants:
    - Unauthorized / InvalidArgument raised before any store access
    - Only the current owner (Ownership.owner_sub) may issue; no owner means NotOwner
    - TransferCode is persisted with create-if-absent: a code collision never overwrites,
      it is retried with a fresh code up to transfer_code_max_attempts times
    - The code plaintext is returned here and nowhere else; logs carry a redacted prefix
    - No effect on Ownership or Artwork
"""

import logging

from artledger.core.domain_types import (
    ArtworkId, TransferCodeRecord, TransferCreated,
)
from artledger.core.errors import (
    ConcurrentUpdateConflictError, ErrorContext, RecordAlreadyExistsError,
)
from artledger.core.transfer_codes import generate_code, redact_code
from artledger.core.transfer_rules import (
    check_issuer_is_owner,
    compute_expiry,
    normalize_ttl_minutes,
    require_argument,
    require_subject,
)
from artledger.services.context import ServiceContext
from artledger.services.store_retry import with_store_retry

logger = logging.getLogger(__name__)

OPERATION = "createTransfer"


class TransferIssuer:
    """Issues transfer codes for artworks the caller currently owns."""

    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx

    async def create_transfer(
        self,
        owner_sub: str | None,
        artwork_id: str | None,
        ttl_minutes: object = None,
    ) -> TransferCreated:
        sub = require_subject(owner_sub, OPERATION)
        artwork_id = ArtworkId(require_argument(artwork_id, "artworkId"))
        settings = self.ctx.settings
        ttl = normalize_ttl_minutes(
            ttl_minutes, settings.transfer_default_ttl_minutes,
            settings.transfer_max_ttl_minutes,
        )
        store = self.ctx.store
        policy = self.ctx.retry_policy

        ownership = await with_store_retry(
            lambda: store.get_ownership(artwork_id), policy,
            "get_ownership", artwork_id,
        )
        check_issuer_is_owner(ownership, sub, artwork_id)

        expires_at = compute_expiry(self.ctx.clock(), ttl)
        for attempt in range(1, settings.transfer_code_max_attempts + 1):
            record = TransferCodeRecord(
                code=generate_code(settings.transfer_code_bytes),
                artwork_id=artwork_id,
                created_by_sub=sub,
                expires_at=expires_at,
                ownership_version=ownership.version,
            )
            try:
                await with_store_retry(
                    lambda: store.create_transfer_code(record), policy,
                    "create_transfer_code", artwork_id,
                )
            except RecordAlreadyExistsError:
                logger.warning(
                    "Transfer code collision, generating a new code",
                    extra={"artwork_id": artwork_id, "operation": OPERATION,
                           "attempt": attempt},
                )
                continue

            logger.info(
                f"Transfer code {redact_code(record.code)} issued, "
                f"expires {expires_at.isoformat()}",
                extra={"artwork_id": artwork_id, "operation": OPERATION},
            )
            return TransferCreated(
                code=record.code, artwork_id=artwork_id, expires_at=expires_at,
            )

        raise ConcurrentUpdateConflictError(
            "Could not allocate a unique transfer code",
            ErrorContext(artwork_id=artwork_id, operation=OPERATION),
        )
