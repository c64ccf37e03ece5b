"""Initial schema — artworks, ownerships, transfer_codes.

Revision ID: 001_initial
Revises: None
Create Date: 2026-10-19

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "artworks",
        sa.Column("artwork_id", sa.String(128), primary_key=True),
        sa.Column("scene_path", sa.Text, nullable=False),
        sa.Column("status", sa.String(10), nullable=False, server_default="UNCLAIMED"),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('UNCLAIMED', 'OWNED')", name="ck_artworks_status"),
    )

    op.create_table(
        "ownerships",
        sa.Column("artwork_id", sa.String(128), sa.ForeignKey("artworks.artwork_id"), primary_key=True),
        sa.Column("owner_sub", sa.String(255), nullable=True),
        sa.Column("status", sa.String(10), nullable=False, server_default="UNCLAIMED"),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("status IN ('UNCLAIMED', 'OWNED')", name="ck_ownerships_status"),
        sa.CheckConstraint(
            "(status = 'OWNED') = (owner_sub IS NOT NULL AND owner_sub <> '')",
            name="ck_ownerships_owner_matches_status",
        ),
    )

    op.create_table(
        "transfer_codes",
        sa.Column("code", sa.String(64), primary_key=True),
        sa.Column("artwork_id", sa.String(128), sa.ForeignKey("artworks.artwork_id"), nullable=False),
        sa.Column("created_by_sub", sa.String(255), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ownership_version", sa.Integer, nullable=True),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("used_by_sub", sa.String(255), nullable=True),
        sa.Column("version", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_transfer_codes_artwork_id", "transfer_codes", ["artwork_id"])


def downgrade() -> None:
    op.drop_index("ix_transfer_codes_artwork_id", table_name="transfer_codes")
    op.drop_table("transfer_codes")
    op.drop_table("ownerships")
    op.drop_table("artworks")
