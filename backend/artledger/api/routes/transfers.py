"""Transfer Routes — createTransfer and claimTransfer.

Invariants:
    - Caller identity comes from get_caller_sub; anonymous calls fail in the service
      with 401 before any store access
    - POST /transfers is the only endpoint that ever returns a transfer code
"""

from fastapi import APIRouter, Depends, status

from artledger.api.dependencies import get_caller_sub, get_service_context
from artledger.schemas.transfer import (
    ArtworkResponse,
    ClaimTransferRequest,
    CreateTransferRequest,
    TransferCreatedResponse,
)
from artledger.services.context import ServiceContext
from artledger.services.transfer_issuer import TransferIssuer
from artledger.services.transfer_redeemer import TransferRedeemer

router = APIRouter(prefix="/api/v1/transfers", tags=["transfers"])


@router.post(
    "", response_model=TransferCreatedResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_transfer(
    body: CreateTransferRequest,
    caller_sub: str | None = Depends(get_caller_sub),
    ctx: ServiceContext = Depends(get_service_context),
):
    """Issue a transfer code for an artwork the caller owns."""
    result = await TransferIssuer(ctx).create_transfer(
        caller_sub, body.artwork_id, body.ttl_minutes,
    )
    return TransferCreatedResponse.from_result(result)


@router.post("/claim", response_model=ArtworkResponse)
async def claim_transfer(
    body: ClaimTransferRequest,
    caller_sub: str | None = Depends(get_caller_sub),
    ctx: ServiceContext = Depends(get_service_context),
):
    """Redeem a transfer code; the caller becomes the owner."""
    result = await TransferRedeemer(ctx).claim_transfer(caller_sub, body.code)
    return ArtworkResponse.from_claim(result)
