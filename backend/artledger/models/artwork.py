"""Artwork ORM — the public artwork record read by the rendering layer.

Invariants:
    - artwork_id is the natural primary key
    - scene_path is immutable once created
    - status is UNCLAIMED | OWNED and always equals the Ownership status after a write

Design Decisions:
    - status stored as short string (not native enum): identical on SQLite and PostgreSQL
"""

from datetime import datetime, timezone

from sqlalchemy import CheckConstraint, String, Text, Integer, DateTime
from sqlalchemy.orm import Mapped, mapped_column

from artledger.db.base import Base


class Artwork(Base):
    """Publicly readable artwork record."""
    __tablename__ = "artworks"
    __table_args__ = (
        CheckConstraint(
            "status IN ('UNCLAIMED', 'OWNED')", name="ck_artworks_status",
        ),
    )

    artwork_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    scene_path: Mapped[str] = mapped_column(Text, nullable=False)
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
