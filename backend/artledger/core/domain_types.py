"""Domain Types — identity types, status enum and immutable record snapshots.

Invariants:
    - ArtworkId, Subject, TransferCodeValue wrap str — never pass bare str in domain logic
    - Records are frozen snapshots of what the store returned; mutation happens
      only through store writes, never by editing a record in place
    - Every record carries `version`, bumped by the store on each update
    - All datetimes are timezone-aware UTC

Design Decisions:
    - NewType over wrapper classes: zero runtime cost, full type-checker support
    - str Enum for OwnershipStatus: serializes to JSON without custom encoders
"""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import NewType


# ─── Identity Types ──────────────────────────────────────────────

ArtworkId = NewType("ArtworkId", str)
Subject = NewType("Subject", str)
TransferCodeValue = NewType("TransferCodeValue", str)


# ─── Enums ───────────────────────────────────────────────────────

class OwnershipStatus(str, Enum):
    """Per-artwork ownership state. The only transition is UNCLAIMED -> OWNED."""
    UNCLAIMED = "UNCLAIMED"
    OWNED = "OWNED"


# ─── Records ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class ArtworkRecord:
    """Public artwork record — what the rendering layer reads."""
    artwork_id: ArtworkId
    scene_path: str
    status: OwnershipStatus = OwnershipStatus.UNCLAIMED
    version: int = 0


@dataclass(frozen=True)
class OwnershipRecord:
    """Ownership of one artwork. Created on first owner, never deleted."""
    artwork_id: ArtworkId
    owner_sub: Subject | None = None
    status: OwnershipStatus = OwnershipStatus.UNCLAIMED
    version: int = 0

    @property
    def is_owned(self) -> bool:
        return self.status == OwnershipStatus.OWNED and bool(self.owner_sub)


@dataclass(frozen=True)
class TransferCodeRecord:
    """Single-use, time-boxed transfer code. Never deleted (audit trail)."""
    code: TransferCodeValue
    artwork_id: ArtworkId
    created_by_sub: Subject
    expires_at: datetime
    used_at: datetime | None = None
    used_by_sub: Subject | None = None
    version: int = 0
    ownership_version: int | None = None

    @property
    def is_used(self) -> bool:
        return self.used_at is not None


# ─── Operation Results ───────────────────────────────────────────

@dataclass(frozen=True)
class TransferCreated:
    """Result of createTransfer — the only place the code plaintext is returned."""
    code: TransferCodeValue
    artwork_id: ArtworkId
    expires_at: datetime


@dataclass(frozen=True)
class ClaimResult:
    """Result of claimTransfer / claimUnclaimed."""
    artwork_id: ArtworkId
    scene_path: str
    status: OwnershipStatus
