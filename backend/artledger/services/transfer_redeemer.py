"""Transfer Redeemer — claimTransfer: consume a code exactly once and move ownership.

Invariants:
    - Validation order: identity, argument, code exists, unused, unexpired, not stale,
      artwork exists. Every validation failure happens before any write.
    - The decisive write is the conditional consumption of the code
      (used_at absent -> used_at = now, used_by_sub = claimant). It alone decides
      who wins; a request that loses it fails with CodeAlreadyUsed even though its
      earlier read saw the code unused.
    - Ownership and Artwork writes happen only after the decisive write succeeded.
      They are retried on transient failure; if they still fail the request raises
      TransferIncomplete (never an error that implies the code is still usable).
    - The Ownership write is conditioned on the version read during validation; losing
      it means ownership moved after validation, so the consumed code is CodeStale.
    - A code that turns out to be consumed always reports CodeAlreadyUsed, also when the
      consumption is first noticed as an ownership change (stale check re-reads the code).

Design Decisions:
    - Code first, ownership second: consuming the code is the only write contested by
      every redeemer of the same code, so it has to be the arbiter
    - used_by_sub + used_at identify "my" consumption when a transient failure leaves
      the decisive write's outcome unknown
"""

import logging
from datetime import datetime

from artledger.core.domain_types import (
    ArtworkId, ArtworkRecord, ClaimResult, OwnershipRecord, OwnershipStatus,
    Subject, TransferCodeRecord, TransferCodeValue,
)
from artledger.core.errors import (
    ArtworkNotFoundError,
    CodeAlreadyUsedError,
    CodeStaleError,
    ErrorContext,
    InvalidCodeError,
    PreconditionFailedError,
    RecordAlreadyExistsError,
    StoreUnavailableError,
    TransferIncompleteError,
)
from artledger.core.preconditions import Precondition
from artledger.core.transfer_codes import redact_code
from artledger.core.transfer_rules import (
    as_utc,
    check_code_not_stale,
    check_code_redeemable,
    require_argument,
    require_subject,
)
from artledger.services.context import ServiceContext
from artledger.services.store_retry import retry_conditional_write, with_store_retry

logger = logging.getLogger(__name__)

OPERATION = "claimTransfer"


class TransferRedeemer:
    """Redeems transfer codes."""

    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx
        self.store = ctx.store
        self.policy = ctx.retry_policy

    async def claim_transfer(
        self, claimant_sub: str | None, code: str | None,
    ) -> ClaimResult:
        sub = require_subject(claimant_sub, OPERATION)
        code = TransferCodeValue(require_argument(code, "code"))

        record = await with_store_retry(
            lambda: self.store.get_transfer_code(code), self.policy,
            "get_transfer_code",
        )
        if record is None:
            raise InvalidCodeError(ErrorContext(operation=OPERATION))

        now = self.ctx.clock()
        check_code_redeemable(record, now)

        artwork_id = record.artwork_id
        ownership = await with_store_retry(
            lambda: self.store.get_ownership(artwork_id), self.policy,
            "get_ownership", artwork_id,
        )
        try:
            check_code_not_stale(record, ownership)
        except CodeStaleError:
            await self._raise_if_consumed_meanwhile(record)
            raise

        artwork = await with_store_retry(
            lambda: self.store.get_artwork(artwork_id), self.policy,
            "get_artwork", artwork_id,
        )
        if artwork is None:
            raise ArtworkNotFoundError(artwork_id, ErrorContext(operation=OPERATION))

        await self._consume_code(record, sub, now)
        await self._assign_owner(artwork_id, ownership, sub)
        artwork = await self._mark_artwork_owned(artwork)

        logger.info(
            f"Transfer code {redact_code(code)} redeemed, ownership moved",
            extra={"artwork_id": artwork_id, "operation": OPERATION},
        )
        return ClaimResult(
            artwork_id=artwork.artwork_id,
            scene_path=artwork.scene_path,
            status=OwnershipStatus.OWNED,
        )

    async def _raise_if_consumed_meanwhile(self, record: TransferCodeRecord) -> None:
        """Ownership moved after the code was read: if the code itself was redeemed
        in between, that redemption is what moved it, so report CodeAlreadyUsed."""
        current = await with_store_retry(
            lambda: self.store.get_transfer_code(record.code), self.policy,
            "get_transfer_code", record.artwork_id,
        )
        if current is not None and current.is_used:
            raise CodeAlreadyUsedError(
                ErrorContext(artwork_id=record.artwork_id, operation=OPERATION),
            )

    # ─── Decisive write ──────────────────────────────────────────

    async def _consume_code(
        self, record: TransferCodeRecord, sub: Subject, now: datetime,
    ) -> None:
        """Conditionally mark the code used. Sole arbiter of concurrent redemptions."""
        code = record.code

        async def landed() -> bool:
            current = await with_store_retry(
                lambda: self.store.get_transfer_code(code), self.policy,
                "get_transfer_code", record.artwork_id,
            )
            return (
                current is not None
                and current.used_by_sub == sub
                and current.used_at is not None
                and as_utc(current.used_at) == as_utc(now)
            )

        try:
            await retry_conditional_write(
                lambda: self.store.update_transfer_code(
                    code,
                    {"used_at": now, "used_by_sub": sub},
                    Precondition.field_absent("used_at"),
                ),
                landed, self.policy, "consume_transfer_code", record.artwork_id,
            )
        except PreconditionFailedError:
            logger.warning(
                f"Transfer code {redact_code(code)} consumed by a concurrent request",
                extra={"artwork_id": record.artwork_id, "operation": OPERATION},
            )
            raise CodeAlreadyUsedError(
                ErrorContext(artwork_id=record.artwork_id, operation=OPERATION),
            )

    # ─── Follow-up writes (after the code is consumed) ───────────

    async def _assign_owner(
        self,
        artwork_id: ArtworkId,
        ownership: OwnershipRecord | None,
        sub: Subject,
    ) -> None:
        async def landed() -> bool:
            current = await with_store_retry(
                lambda: self.store.get_ownership(artwork_id), self.policy,
                "get_ownership", artwork_id,
            )
            return current is not None and current.is_owned and current.owner_sub == sub

        if ownership is None:
            def write():
                return self.store.create_ownership(OwnershipRecord(
                    artwork_id=artwork_id, owner_sub=sub,
                    status=OwnershipStatus.OWNED,
                ))
        else:
            def write():
                return self.store.update_ownership(
                    artwork_id,
                    {"owner_sub": sub, "status": OwnershipStatus.OWNED},
                    Precondition.version(ownership.version),
                )

        try:
            await retry_conditional_write(
                write, landed, self.policy, "assign_owner", artwork_id,
            )
        except (PreconditionFailedError, RecordAlreadyExistsError):
            logger.warning(
                "Ownership moved after the transfer code was validated; code is void",
                extra={"artwork_id": artwork_id, "operation": OPERATION},
            )
            raise CodeStaleError(
                ErrorContext(artwork_id=artwork_id, operation=OPERATION),
            )
        except StoreUnavailableError:
            logger.error(
                "Transfer code consumed but ownership write failed",
                extra={"artwork_id": artwork_id, "operation": OPERATION,
                       "error_code": "TRANSFER_INCOMPLETE"},
            )
            raise TransferIncompleteError(
                "Transfer code was consumed but the ownership update is still pending",
                artwork_id,
                ErrorContext(operation=OPERATION, retry_after_ms=self.policy.max_delay_ms),
            )

    async def _mark_artwork_owned(self, artwork: ArtworkRecord) -> ArtworkRecord:
        artwork_id = artwork.artwork_id
        try:
            return await with_store_retry(
                lambda: self.store.update_artwork(
                    artwork_id, {"status": OwnershipStatus.OWNED},
                ),
                self.policy, "mark_artwork_owned", artwork_id,
            )
        except StoreUnavailableError:
            logger.error(
                "Ownership moved but artwork status write failed",
                extra={"artwork_id": artwork_id, "operation": OPERATION,
                       "error_code": "TRANSFER_INCOMPLETE"},
            )
            raise TransferIncompleteError(
                "Ownership was transferred but the artwork status update is still pending",
                artwork_id,
                ErrorContext(operation=OPERATION, retry_after_ms=self.policy.max_delay_ms),
            )
