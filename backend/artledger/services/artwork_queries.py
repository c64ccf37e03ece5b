"""Artwork Queries — read paths for the rendering layer and for owners.

Invariants:
    - get_artwork is public: no identity required, returns only scene_path and status
    - get_ownership is owner-only: the caller must be the current owner (NotOwner otherwise)
    - No read path ever returns a transfer code
"""

from artledger.core.domain_types import ArtworkId, ArtworkRecord, OwnershipRecord
from artledger.core.errors import ArtworkNotFoundError, ErrorContext, NotOwnerError
from artledger.core.transfer_rules import require_argument, require_subject
from artledger.services.context import ServiceContext
from artledger.services.store_retry import with_store_retry


class ArtworkQueries:
    """Read-only artwork and ownership lookups."""

    def __init__(self, ctx: ServiceContext):
        self.store = ctx.store
        self.policy = ctx.retry_policy

    async def get_artwork(self, artwork_id: str | None) -> ArtworkRecord:
        artwork_id = ArtworkId(require_argument(artwork_id, "artworkId"))
        artwork = await with_store_retry(
            lambda: self.store.get_artwork(artwork_id), self.policy,
            "get_artwork", artwork_id,
        )
        if artwork is None:
            raise ArtworkNotFoundError(artwork_id, ErrorContext(operation="getArtwork"))
        return artwork

    async def get_ownership(
        self, caller_sub: str | None, artwork_id: str | None,
    ) -> OwnershipRecord:
        sub = require_subject(caller_sub, "getOwnership")
        artwork_id = ArtworkId(require_argument(artwork_id, "artworkId"))
        ownership = await with_store_retry(
            lambda: self.store.get_ownership(artwork_id), self.policy,
            "get_ownership", artwork_id,
        )
        if ownership is None or ownership.owner_sub != sub:
            raise NotOwnerError(
                artwork_id, ErrorContext(operation="getOwnership"),
                message="Only the current owner can view this ownership record",
            )
        return ownership
