"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - The store is authoritative; callers never cache records across operations
    - create_* is create-if-absent: an existing key raises RecordAlreadyExistsError
    - update_* applies `changes` only if `precondition` holds at write time,
      else raises PreconditionFailedError (RecordNotFoundError if the key is missing)
    - Every successful update bumps the record's version
    - Transient backend failures raise StoreUnavailableError, never backend exceptions

Design Decisions:
    - Protocol over ABC: structural subtyping, no inheritance hierarchy
    - Narrow typed operations per entity instead of a generic model client:
      callers can only express get / create-if-absent / conditional update
    - Async in Protocol: implementations do IO; the rules that decide are sync and pure
"""

from typing import Any, Mapping, Protocol

from artledger.core.domain_types import (
    ArtworkId, TransferCodeValue,
    ArtworkRecord, OwnershipRecord, TransferCodeRecord,
)
from artledger.core.preconditions import Precondition


class OwnershipStore(Protocol):
    """Contract for artwork / ownership / transfer code persistence."""

    async def get_artwork(self, artwork_id: ArtworkId) -> ArtworkRecord | None: ...
    async def get_ownership(self, artwork_id: ArtworkId) -> OwnershipRecord | None: ...
    async def get_transfer_code(
        self, code: TransferCodeValue,
    ) -> TransferCodeRecord | None: ...

    async def create_artwork(self, record: ArtworkRecord) -> ArtworkRecord: ...
    async def create_ownership(self, record: OwnershipRecord) -> OwnershipRecord: ...
    async def create_transfer_code(
        self, record: TransferCodeRecord,
    ) -> TransferCodeRecord: ...

    async def update_artwork(
        self, artwork_id: ArtworkId, changes: Mapping[str, Any],
        precondition: Precondition | None = None,
    ) -> ArtworkRecord: ...
    async def update_ownership(
        self, artwork_id: ArtworkId, changes: Mapping[str, Any],
        precondition: Precondition | None = None,
    ) -> OwnershipRecord: ...
    async def update_transfer_code(
        self, code: TransferCodeValue, changes: Mapping[str, Any],
        precondition: Precondition | None = None,
    ) -> TransferCodeRecord: ...

    async def health_check(self) -> bool: ...


class IdentityVerifier(Protocol):
    """Contract for the authentication collaborator — yields a verified subject or None."""
    def verify(self, headers: Mapping[str, str]) -> str | None: ...
