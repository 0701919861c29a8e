"""
Sellable ad position on a site.

price_usd_cents_per_day_full_share: price of 100% share for one day.
max_sponsors: 0 = unlimited (impression-rotated, every reservation is full share, no capacity check).
capacity_version: bumped by every admission; an admission only commits if the version it read is
still current, so two concurrent bookings on one slot cannot both pass the capacity check.
"""
from sqlalchemy import Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from kindling.db.base import Base
from kindling.models.enums import SlotPosition

_POSITIONS = ", ".join(f"'{p.value}'" for p in SlotPosition)


class AdSlot(Base):
    __tablename__ = "ad_slots"

    id = Column(Integer, primary_key=True, autoincrement=True)
    site_id = Column(Integer, ForeignKey("sites.id", ondelete="CASCADE"), nullable=False, index=True)
    position = Column(String(16), nullable=False)  # BANNER | SIDEPANEL | INLINE
    price_usd_cents_per_day_full_share = Column(Integer, nullable=False)
    max_sponsors = Column(Integer, nullable=False, default=1)
    allow_custom_share = Column(Boolean, nullable=False, default=False)
    active = Column(Boolean, nullable=False, default=True)
    capacity_version = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    site = relationship("Site", back_populates="slots")
    reservations = relationship(
        "Reservation",
        back_populates="slot",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    __table_args__ = (
        CheckConstraint("price_usd_cents_per_day_full_share > 0", name="ck_ad_slots_price_positive"),
        CheckConstraint("max_sponsors >= 0", name="ck_ad_slots_max_sponsors_non_negative"),
        CheckConstraint(f"position IN ({_POSITIONS})", name="ck_ad_slots_position"),
    )

    @property
    def unlimited(self) -> bool:
        return self.max_sponsors == 0
