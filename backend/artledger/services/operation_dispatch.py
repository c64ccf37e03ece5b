"""Operation Dispatch — explicit routing from operation name to service call.

Invariants:
    - Every name->handler mapping is visible — no getattr magic, no auto-discovery
    - Unknown operation names raise InvalidArgumentError("Unsupported operation")
    - Services are instantiated per dispatcher with the shared ServiceContext

Design Decisions:
    - Explicit dict over getattr: adding an operation requires editing this dict
    - Names are the public operation names (createTransfer, ...), arguments use the
      public camelCase argument names
"""

from typing import Any, Awaitable, Callable

from artledger.core.domain_types import ClaimResult, TransferCreated
from artledger.core.errors import InvalidArgumentError
from artledger.services.context import ServiceContext
from artledger.services.transfer_issuer import TransferIssuer
from artledger.services.transfer_redeemer import TransferRedeemer
from artledger.services.unclaimed_acquirer import UnclaimedAcquirer

OperationResult = TransferCreated | ClaimResult
Handler = Callable[[str | None, dict[str, Any]], Awaitable[OperationResult]]


class OperationDispatch:
    """Routes operation name -> service method."""

    def __init__(self, ctx: ServiceContext):
        issuer = TransferIssuer(ctx)
        redeemer = TransferRedeemer(ctx)
        acquirer = UnclaimedAcquirer(ctx)

        self._handlers: dict[str, Handler] = {
            "createTransfer": lambda sub, args: issuer.create_transfer(
                sub, args.get("artworkId"), args.get("ttlMinutes"),
            ),
            "claimTransfer": lambda sub, args: redeemer.claim_transfer(
                sub, args.get("code"),
            ),
            "claimUnclaimed": lambda sub, args: acquirer.claim_unclaimed(
                sub, args.get("artworkId"),
            ),
        }

    @property
    def operations(self) -> frozenset[str]:
        return frozenset(self._handlers)

    async def execute(
        self, operation: str, caller_sub: str | None, arguments: dict[str, Any],
    ) -> OperationResult:
        handler = self._handlers.get(operation)
        if handler is None:
            raise InvalidArgumentError("Unsupported operation", "operation")
        return await handler(caller_sub, arguments)
