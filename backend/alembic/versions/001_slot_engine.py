"""sites, ad_slots, reservations (slot engine schema)

Revision ID: 001
Revises:
Create Date: (run alembic upgrade head)

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "sites",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("owner_id", sa.String(64), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("url", sa.String(512), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("url"),
    )
    op.create_index("ix_sites_owner_id", "sites", ["owner_id"])

    op.create_table(
        "ad_slots",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("site_id", sa.Integer(), sa.ForeignKey("sites.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.String(16), nullable=False),
        sa.Column("price_usd_cents_per_day_full_share", sa.Integer(), nullable=False),
        sa.Column("max_sponsors", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("allow_custom_share", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("capacity_version", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("price_usd_cents_per_day_full_share > 0", name="ck_ad_slots_price_positive"),
        sa.CheckConstraint("max_sponsors >= 0", name="ck_ad_slots_max_sponsors_non_negative"),
        sa.CheckConstraint("position IN ('BANNER', 'SIDEPANEL', 'INLINE')", name="ck_ad_slots_position"),
    )
    op.create_index("ix_ad_slots_site_id", "ad_slots", ["site_id"])

    op.create_table(
        "reservations",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("slot_id", sa.Integer(), sa.ForeignKey("ad_slots.id", ondelete="CASCADE"), nullable=False),
        sa.Column("sponsor_id", sa.String(64), nullable=False),
        sa.Column("sponsor_name", sa.String(255), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("starts_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ends_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("share_pct", sa.Integer(), nullable=False),
        sa.Column("creative", sa.Text(), nullable=False),
        sa.Column("price_usd_cents", sa.Integer(), nullable=False),
        sa.Column("checkout_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.CheckConstraint("share_pct BETWEEN 1 AND 100", name="ck_reservations_share_pct"),
        sa.CheckConstraint("starts_at < ends_at", name="ck_reservations_window"),
        sa.CheckConstraint("price_usd_cents >= 0", name="ck_reservations_price"),
        sa.CheckConstraint(
            "status IN ('PENDING', 'ACTIVE', 'CANCELLED', 'EXPIRED')", name="ck_reservations_status"
        ),
    )
    op.create_index("ix_reservations_sponsor_id", "reservations", ["sponsor_id"])
    # Capacity and live-sponsor lookups: slot + status + time range
    op.create_index(
        "ix_reservations_slot_status_window",
        "reservations",
        ["slot_id", "status", "starts_at", "ends_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_reservations_slot_status_window", table_name="reservations")
    op.drop_index("ix_reservations_sponsor_id", table_name="reservations")
    op.drop_table("reservations")
    op.drop_index("ix_ad_slots_site_id", table_name="ad_slots")
    op.drop_table("ad_slots")
    op.drop_index("ix_sites_owner_id", table_name="sites")
    op.drop_table("sites")
