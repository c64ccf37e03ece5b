"""Operation Routes — by-name entry point for the three ownership operations.

Invariants:
    - POST /operations/{name} with {"arguments": {...}} behaves exactly like the
      dedicated route for that operation (same services, same errors)
    - Unknown names return 400 INVALID_ARGUMENT
"""

from fastapi import APIRouter, Depends

from artledger.api.dependencies import get_caller_sub, get_service_context
from artledger.core.domain_types import TransferCreated
from artledger.schemas.transfer import (
    ArtworkResponse, OperationRequest, TransferCreatedResponse,
)
from artledger.services.context import ServiceContext
from artledger.services.operation_dispatch import OperationDispatch

router = APIRouter(prefix="/api/v1/operations", tags=["operations"])


@router.post(
    "/{operation_name}",
    response_model=TransferCreatedResponse | ArtworkResponse,
)
async def execute_operation(
    operation_name: str,
    body: OperationRequest,
    caller_sub: str | None = Depends(get_caller_sub),
    ctx: ServiceContext = Depends(get_service_context),
):
    """Dispatch an ownership operation by its public name."""
    result = await OperationDispatch(ctx).execute(
        operation_name, caller_sub, body.arguments,
    )
    if isinstance(result, TransferCreated):
        return TransferCreatedResponse.from_result(result)
    return ArtworkResponse.from_claim(result)
