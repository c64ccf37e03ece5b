"""SQL Ownership Store — OwnershipStore over SQLAlchemy with genuine conditional writes.

Invariants:
    - Every operation runs in its own short session: one statement, one commit
      (per-item writes only, there is no multi-item transaction to lean on)
    - create_* is a plain INSERT; a key collision is RecordAlreadyExistsError,
      never an overwrite. Any other IntegrityError (CHECK, foreign key) is
      IntegrityViolationError, which is not transient and never retried
    - update_* is a single UPDATE ... WHERE key AND precondition RETURNING *;
      no returned row means the key is missing (RecordNotFoundError) or the
      precondition no longer holds (PreconditionFailedError)
    - Every update bumps version and only touches fields listed in _MUTABLE_FIELDS
    - Returned datetimes are timezone-aware UTC

Design Decisions:
    - Core table statements over ORM unit-of-work: the WHERE clause is the
      compare-and-swap, so it must be visible and must reach the database as one statement
    - RETURNING over update-then-read: the returned record is exactly the one this
      write produced, not whatever a later writer left behind
"""

import logging
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping

from sqlalchemy import Table, select, update, insert
from sqlalchemy.exc import IntegrityError

from artledger.core.domain_types import (
    ArtworkId, Subject, TransferCodeValue, OwnershipStatus,
    ArtworkRecord, OwnershipRecord, TransferCodeRecord,
)
from artledger.core.errors import (
    IntegrityViolationError, PreconditionFailedError, RecordAlreadyExistsError,
    RecordNotFoundError,
)
from artledger.core.preconditions import Precondition
from artledger.core.transfer_rules import as_utc
from artledger.infrastructure.database import DatabaseSessionManager
from artledger.models.artwork import Artwork
from artledger.models.ownership import Ownership
from artledger.models.transfer_code import TransferCode

logger = logging.getLogger(__name__)

_ARTWORKS: Table = Artwork.__table__
_OWNERSHIPS: Table = Ownership.__table__
_TRANSFER_CODES: Table = TransferCode.__table__

_MUTABLE_FIELDS: dict[str, frozenset[str]] = {
    "artworks": frozenset({"status"}),
    "ownerships": frozenset({"owner_sub", "status"}),
    "transfer_codes": frozenset({"used_at", "used_by_sub"}),
}


def _db_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _maybe_utc(value: datetime | None) -> datetime | None:
    return as_utc(value) if value is not None else None


# ─── Row -> record ───────────────────────────────────────────────

def _artwork_record(row: Mapping[str, Any]) -> ArtworkRecord:
    return ArtworkRecord(
        artwork_id=ArtworkId(row["artwork_id"]),
        scene_path=row["scene_path"],
        status=OwnershipStatus(row["status"]),
        version=row["version"],
    )


def _ownership_record(row: Mapping[str, Any]) -> OwnershipRecord:
    owner = row["owner_sub"]
    return OwnershipRecord(
        artwork_id=ArtworkId(row["artwork_id"]),
        owner_sub=Subject(owner) if owner else None,
        status=OwnershipStatus(row["status"]),
        version=row["version"],
    )


def _transfer_code_record(row: Mapping[str, Any]) -> TransferCodeRecord:
    used_by = row["used_by_sub"]
    return TransferCodeRecord(
        code=TransferCodeValue(row["code"]),
        artwork_id=ArtworkId(row["artwork_id"]),
        created_by_sub=Subject(row["created_by_sub"]),
        expires_at=as_utc(row["expires_at"]),
        used_at=_maybe_utc(row["used_at"]),
        used_by_sub=Subject(used_by) if used_by else None,
        version=row["version"],
        ownership_version=row["ownership_version"],
    )


class SqlOwnershipStore:
    """OwnershipStore implementation backed by PostgreSQL (asyncpg) or SQLite (aiosqlite)."""

    def __init__(self, db: DatabaseSessionManager):
        self._db = db

    # ─── Reads ───────────────────────────────────────────────────

    async def get_artwork(self, artwork_id: ArtworkId) -> ArtworkRecord | None:
        row = await self._get(_ARTWORKS, "artwork_id", artwork_id)
        return _artwork_record(row) if row else None

    async def get_ownership(self, artwork_id: ArtworkId) -> OwnershipRecord | None:
        row = await self._get(_OWNERSHIPS, "artwork_id", artwork_id)
        return _ownership_record(row) if row else None

    async def get_transfer_code(
        self, code: TransferCodeValue,
    ) -> TransferCodeRecord | None:
        row = await self._get(_TRANSFER_CODES, "code", code)
        return _transfer_code_record(row) if row else None

    # ─── Create-if-absent ────────────────────────────────────────

    async def create_artwork(self, record: ArtworkRecord) -> ArtworkRecord:
        row = await self._create(_ARTWORKS, "Artwork", record.artwork_id, {
            "artwork_id": record.artwork_id,
            "scene_path": record.scene_path,
            "status": record.status.value,
            "version": 0,
            "created_at": datetime.now(timezone.utc),
        })
        return _artwork_record(row)

    async def create_ownership(self, record: OwnershipRecord) -> OwnershipRecord:
        row = await self._create(_OWNERSHIPS, "Ownership", record.artwork_id, {
            "artwork_id": record.artwork_id,
            "owner_sub": record.owner_sub,
            "status": record.status.value,
            "version": 0,
            "created_at": datetime.now(timezone.utc),
        })
        return _ownership_record(row)

    async def create_transfer_code(
        self, record: TransferCodeRecord,
    ) -> TransferCodeRecord:
        row = await self._create(_TRANSFER_CODES, "TransferCode", record.code, {
            "code": record.code,
            "artwork_id": record.artwork_id,
            "created_by_sub": record.created_by_sub,
            "expires_at": record.expires_at,
            "used_at": record.used_at,
            "used_by_sub": record.used_by_sub,
            "ownership_version": record.ownership_version,
            "version": 0,
            "created_at": datetime.now(timezone.utc),
        })
        return _transfer_code_record(row)

    # ─── Conditional updates ─────────────────────────────────────

    async def update_artwork(
        self, artwork_id: ArtworkId, changes: Mapping[str, Any],
        precondition: Precondition | None = None,
    ) -> ArtworkRecord:
        row = await self._update(
            _ARTWORKS, "Artwork", "artwork_id", artwork_id, changes, precondition,
        )
        return _artwork_record(row)

    async def update_ownership(
        self, artwork_id: ArtworkId, changes: Mapping[str, Any],
        precondition: Precondition | None = None,
    ) -> OwnershipRecord:
        row = await self._update(
            _OWNERSHIPS, "Ownership", "artwork_id", artwork_id, changes, precondition,
        )
        return _ownership_record(row)

    async def update_transfer_code(
        self, code: TransferCodeValue, changes: Mapping[str, Any],
        precondition: Precondition | None = None,
    ) -> TransferCodeRecord:
        row = await self._update(
            _TRANSFER_CODES, "TransferCode", "code", code, changes, precondition,
        )
        return _transfer_code_record(row)

    async def health_check(self) -> bool:
        return await self._db.health_check()

    # ─── Statement helpers ───────────────────────────────────────

    async def _get(
        self, table: Table, key_name: str, key: str,
    ) -> Mapping[str, Any] | None:
        async with self._db.session() as session:
            result = await session.execute(
                select(table).where(table.c[key_name] == key),
            )
            return result.mappings().one_or_none()

    async def _create(
        self, table: Table, entity: str, key: str, values: dict[str, Any],
    ) -> Mapping[str, Any]:
        key_name = table.primary_key.columns.keys()[0]
        async with self._db.session() as session:
            try:
                result = await session.execute(
                    insert(table).values(**values).returning(*table.c),
                )
                row = result.mappings().one()
                await session.commit()
                return row
            except IntegrityError as exc:
                await session.rollback()
                violation = exc

        # Records are never deleted: an existing key means the primary key collided
        if await self._get(table, key_name, key) is not None:
            raise RecordAlreadyExistsError(entity, key)
        logger.error(
            f"{entity} insert violated a constraint: {violation.orig}",
            extra={"operation": f"create_{table.name}"},
        )
        raise IntegrityViolationError(entity, key)

    async def _update(
        self,
        table: Table,
        entity: str,
        key_name: str,
        key: str,
        changes: Mapping[str, Any],
        precondition: Precondition | None,
    ) -> Mapping[str, Any]:
        illegal = set(changes) - _MUTABLE_FIELDS[table.name]
        if illegal:
            raise ValueError(
                f"{entity} fields are immutable: {', '.join(sorted(illegal))}",
            )

        conditions = [table.c[key_name] == key]
        if precondition is not None:
            for name, expected in precondition.expected.items():
                if name not in table.c:
                    raise ValueError(f"{entity} has no field '{name}'")
                column = table.c[name]
                if expected is None:
                    conditions.append(column.is_(None))
                else:
                    conditions.append(column == _db_value(expected))

        values = {name: _db_value(value) for name, value in changes.items()}
        values["version"] = table.c.version + 1
        if "updated_at" in table.c:
            values["updated_at"] = datetime.now(timezone.utc)

        async with self._db.session() as session:
            result = await session.execute(
                update(table).where(*conditions).values(**values)
                .returning(*table.c),
            )
            row = result.mappings().one_or_none()
            await session.commit()

        if row is not None:
            return row

        if await self._get(table, key_name, key) is None:
            raise RecordNotFoundError(entity, key)
        logger.info(
            f"{entity} conditional update lost ({precondition.describe() if precondition else 'always'})",
            extra={"operation": f"update_{table.name}"},
        )
        raise PreconditionFailedError(entity, key)
