"""Artwork Routes — public artwork read, owner-only ownership read, claimUnclaimed.

Invariants:
    - GET /artworks/{id} needs no identity and exposes only scenePath and status
    - GET /artworks/{id}/ownership is restricted to the current owner
"""

from fastapi import APIRouter, Depends

from artledger.api.dependencies import get_caller_sub, get_service_context
from artledger.schemas.transfer import ArtworkResponse, OwnershipResponse
from artledger.services.artwork_queries import ArtworkQueries
from artledger.services.context import ServiceContext
from artledger.services.unclaimed_acquirer import UnclaimedAcquirer

router = APIRouter(prefix="/api/v1/artworks", tags=["artworks"])


@router.get("/{artwork_id}", response_model=ArtworkResponse)
async def get_artwork(
    artwork_id: str, ctx: ServiceContext = Depends(get_service_context),
):
    """Public artwork record for the rendering layer."""
    record = await ArtworkQueries(ctx).get_artwork(artwork_id)
    return ArtworkResponse.from_record(record)


@router.get("/{artwork_id}/ownership", response_model=OwnershipResponse)
async def get_ownership(
    artwork_id: str,
    caller_sub: str | None = Depends(get_caller_sub),
    ctx: ServiceContext = Depends(get_service_context),
):
    """Ownership record, visible to the current owner only."""
    record = await ArtworkQueries(ctx).get_ownership(caller_sub, artwork_id)
    return OwnershipResponse.from_record(record)


@router.post("/{artwork_id}/claim", response_model=ArtworkResponse)
async def claim_unclaimed(
    artwork_id: str,
    caller_sub: str | None = Depends(get_caller_sub),
    ctx: ServiceContext = Depends(get_service_context),
):
    """Claim an artwork that has no owner yet."""
    result = await UnclaimedAcquirer(ctx).claim_unclaimed(caller_sub, artwork_id)
    return ArtworkResponse.from_claim(result)
