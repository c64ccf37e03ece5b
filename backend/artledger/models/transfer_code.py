"""TransferCode ORM — single-use, time-boxed ownership transfer token.

Invariants:
    - code (24 hex chars by default) is the natural primary key
    - used_at is set exactly once, by the conditional consumption write
    - used_by_sub is written in the same statement as used_at
    - ownership_version is the Ownership.version the issuer held; any later
      ownership write bumps it and voids the code
    - Rows are never deleted (audit trail, replay reports CODE_ALREADY_USED)
"""

from datetime import datetime, timezone

from sqlalchemy import String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from artledger.db.base import Base


class TransferCode(Base):
    """Transfer code keyed by the code itself."""
    __tablename__ = "transfer_codes"

    code: Mapped[str] = mapped_column(String(64), primary_key=True)
    artwork_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("artworks.artwork_id"),
        nullable=False, index=True,
    )
    created_by_sub: Mapped[str] = mapped_column(String(255), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    used_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    ownership_version: Mapped[int | None] = mapped_column(Integer, nullable=True)
    used_by_sub: Mapped[str | None] = mapped_column(String(255), nullable=True)
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
