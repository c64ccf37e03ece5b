"""Transfer Schemas — request/response models for the ownership operations.

Invariants:
    - Wire names are camelCase (artworkId, scenePath, expiresAt, ttlMinutes, ownerSub)
    - Request fields are optional at the schema level: missing/blank values reach the
      services, which raise InvalidArgument with the public field name
    - ttlMinutes is passed through untyped; the transfer rules fall back to the default

Design Decisions:
    - alias_generator=to_camel + populate_by_name: snake_case in Python, camelCase in JSON
    - from_* constructors keep the domain -> wire mapping in one place
"""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from artledger.core.domain_types import (
    ArtworkRecord, ClaimResult, OwnershipRecord, OwnershipStatus, TransferCreated,
)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# --- Requests -----------------------------------------------------------------

class CreateTransferRequest(CamelModel):
    """createTransfer arguments."""
    artwork_id: str | None = None
    ttl_minutes: Any = None


class ClaimTransferRequest(CamelModel):
    """claimTransfer arguments."""
    code: str | None = None


class OperationRequest(CamelModel):
    """By-name operation call: arguments as the operation defines them."""
    arguments: dict[str, Any] = Field(default_factory=dict)


# --- Responses ----------------------------------------------------------------

class TransferCreatedResponse(CamelModel):
    code: str
    artwork_id: str
    expires_at: datetime

    @classmethod
    def from_result(cls, result: TransferCreated) -> "TransferCreatedResponse":
        return cls(
            code=result.code, artwork_id=result.artwork_id,
            expires_at=result.expires_at,
        )


class ArtworkResponse(CamelModel):
    """Claim result and public artwork view share this shape."""
    artwork_id: str
    scene_path: str
    status: OwnershipStatus

    @classmethod
    def from_claim(cls, result: ClaimResult) -> "ArtworkResponse":
        return cls(
            artwork_id=result.artwork_id, scene_path=result.scene_path,
            status=result.status,
        )

    @classmethod
    def from_record(cls, record: ArtworkRecord) -> "ArtworkResponse":
        return cls(
            artwork_id=record.artwork_id, scene_path=record.scene_path,
            status=record.status,
        )


class OwnershipResponse(CamelModel):
    artwork_id: str
    owner_sub: str | None
    status: OwnershipStatus

    @classmethod
    def from_record(cls, record: OwnershipRecord) -> "OwnershipResponse":
        return cls(
            artwork_id=record.artwork_id, owner_sub=record.owner_sub,
            status=record.status,
        )
