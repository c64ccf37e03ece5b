"""Ownership ORM — current owner of one artwork (1:1 with Artwork).

Invariants:
    - Created the first time an owner is assigned; never deleted
    - status == OWNED iff owner_sub is non-empty
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, String, Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column

from artledger.db.base import Base


class Ownership(Base):
    """Ownership record keyed by artwork_id."""
    __tablename__ = "ownerships"
    __table_args__ = (
        CheckConstraint(
            "status IN ('UNCLAIMED', 'OWNED')", name="ck_ownerships_status",
        ),
        CheckConstraint(
            "(status = 'OWNED') = (owner_sub IS NOT NULL AND owner_sub <> '')",
            name="ck_ownerships_owner_matches_status",
        ),
    )

    artwork_id: Mapped[str] = mapped_column(
        String(128), ForeignKey("artworks.artwork_id"), primary_key=True,
    )
    owner_sub: Mapped[str | None] = mapped_column(String(255), nullable=True)
    status: Mapped[str] = mapped_column(
        String(10), nullable=False, default="UNCLAIMED",
    )
    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
