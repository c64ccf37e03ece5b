"""Unclaimed Acquirer — claimUnclaimed: first caller to claim an ownerless artwork wins.

Invariants:
    - Unauthorized / InvalidArgument raised before any store access
    - Artwork must exist; Ownership must be absent or not OWNED
    - The decisive write is on Ownership: create-if-absent when no record exists,
      otherwise an update conditioned on the version and UNCLAIMED status that were read.
      Exactly one concurrent claimant can pass it; every loser gets AlreadyClaimed.
    - Artwork.status is set to OWNED only after the decisive write succeeded
    - A claim rejected as AlreadyClaimed while Artwork.status still reads UNCLAIMED
      rewrites the status to OWNED first (an earlier winner's status write failed)
"""

import logging

from artledger.core.domain_types import (
    ArtworkId, ClaimResult, OwnershipRecord, OwnershipStatus, Subject,
)
from artledger.core.errors import (
    AlreadyClaimedError,
    ArtworkNotFoundError,
    ConcurrentUpdateConflictError,
    ErrorContext,
    PreconditionFailedError,
    RecordAlreadyExistsError,
    StoreUnavailableError,
    TransferIncompleteError,
)
from artledger.core.preconditions import Precondition
from artledger.core.transfer_rules import (
    check_claimable,
    require_argument,
    require_subject,
)
from artledger.services.context import ServiceContext
from artledger.services.store_retry import retry_conditional_write, with_store_retry

logger = logging.getLogger(__name__)

OPERATION = "claimUnclaimed"


class UnclaimedAcquirer:
    """Assigns ownership of artworks that nobody owns yet."""

    def __init__(self, ctx: ServiceContext):
        self.ctx = ctx
        self.store = ctx.store
        self.policy = ctx.retry_policy

    async def claim_unclaimed(
        self, claimant_sub: str | None, artwork_id: str | None,
    ) -> ClaimResult:
        sub = require_subject(claimant_sub, OPERATION)
        artwork_id = ArtworkId(require_argument(artwork_id, "artworkId"))

        artwork = await with_store_retry(
            lambda: self.store.get_artwork(artwork_id), self.policy,
            "get_artwork", artwork_id,
        )
        if artwork is None:
            raise ArtworkNotFoundError(artwork_id, ErrorContext(operation=OPERATION))

        ownership = await self._read_ownership(artwork_id)
        try:
            check_claimable(ownership, artwork_id)
        except AlreadyClaimedError:
            if artwork.status != OwnershipStatus.OWNED:
                await self._repair_artwork_status(artwork_id)
            raise

        await self._take_ownership(artwork_id, ownership, sub)

        try:
            artwork = await with_store_retry(
                lambda: self.store.update_artwork(
                    artwork_id, {"status": OwnershipStatus.OWNED},
                ),
                self.policy, "mark_artwork_owned", artwork_id,
            )
        except StoreUnavailableError:
            logger.error(
                "Ownership claimed but artwork status write failed",
                extra={"artwork_id": artwork_id, "operation": OPERATION,
                       "error_code": "TRANSFER_INCOMPLETE"},
            )
            raise TransferIncompleteError(
                "Artwork was claimed but the artwork status update is still pending",
                artwork_id,
                ErrorContext(operation=OPERATION, retry_after_ms=self.policy.max_delay_ms),
            )

        logger.info(
            "Unclaimed artwork claimed",
            extra={"artwork_id": artwork_id, "operation": OPERATION},
        )
        return ClaimResult(
            artwork_id=artwork.artwork_id,
            scene_path=artwork.scene_path,
            status=OwnershipStatus.OWNED,
        )

    async def _repair_artwork_status(self, artwork_id: ArtworkId) -> None:
        """Finish a claim whose artwork status write never landed."""
        try:
            await with_store_retry(
                lambda: self.store.update_artwork(
                    artwork_id, {"status": OwnershipStatus.OWNED},
                ),
                self.policy, "repair_artwork_status", artwork_id,
            )
        except StoreUnavailableError:
            logger.warning(
                "Artwork status still UNCLAIMED behind an owned record",
                extra={"artwork_id": artwork_id, "operation": OPERATION,
                       "error_code": "TRANSFER_INCOMPLETE"},
            )
            return
        logger.info(
            "Artwork status repaired to OWNED",
            extra={"artwork_id": artwork_id, "operation": OPERATION},
        )

    async def _read_ownership(self, artwork_id: ArtworkId) -> OwnershipRecord | None:
        return await with_store_retry(
            lambda: self.store.get_ownership(artwork_id), self.policy,
            "get_ownership", artwork_id,
        )

    async def _take_ownership(
        self,
        artwork_id: ArtworkId,
        ownership: OwnershipRecord | None,
        sub: Subject,
    ) -> None:
        """Decisive conditional write on Ownership."""
        async def landed() -> bool:
            current = await self._read_ownership(artwork_id)
            return current is not None and current.is_owned and current.owner_sub == sub

        if ownership is None:
            def write():
                return self.store.create_ownership(OwnershipRecord(
                    artwork_id=artwork_id, owner_sub=sub,
                    status=OwnershipStatus.OWNED,
                ))
        else:
            expected = Precondition({
                "version": ownership.version,
                "status": OwnershipStatus.UNCLAIMED,
            })

            def write():
                return self.store.update_ownership(
                    artwork_id,
                    {"owner_sub": sub, "status": OwnershipStatus.OWNED},
                    expected,
                )

        try:
            await retry_conditional_write(
                write, landed, self.policy, "take_ownership", artwork_id,
            )
        except (PreconditionFailedError, RecordAlreadyExistsError):
            current = await self._read_ownership(artwork_id)
            if current is not None and current.status == OwnershipStatus.OWNED:
                logger.warning(
                    "Lost claim race for unclaimed artwork",
                    extra={"artwork_id": artwork_id, "operation": OPERATION},
                )
                raise AlreadyClaimedError(artwork_id, ErrorContext(operation=OPERATION))
            raise ConcurrentUpdateConflictError(
                "Ownership changed while claiming; try again",
                ErrorContext(artwork_id=artwork_id, operation=OPERATION),
            )
