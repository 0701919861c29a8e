"""
Sponsorship reservation: a sponsor's claim on [starts_at, ends_at) of a slot at share_pct.

status moves PENDING -> ACTIVE (payment confirmed) or CANCELLED; EXPIRED is only set by the sweep.
Live = ACTIVE and starts_at <= now < ends_at. Readers always time-filter and never trust EXPIRED being current.
sponsor_name is a display snapshot; sponsor_id is a weak reference to the Identity Provider.
"""
from sqlalchemy import BigInteger, CheckConstraint, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from kindling.db.base import Base
from kindling.models.enums import ReservationStatus

_STATUSES = ", ".join(f"'{s.value}'" for s in ReservationStatus)


class Reservation(Base):
    __tablename__ = "reservations"

    id = Column(Integer, primary_key=True, autoincrement=True)
    slot_id = Column(Integer, ForeignKey("ad_slots.id", ondelete="CASCADE"), nullable=False)
    sponsor_id = Column(String(64), nullable=False, index=True)
    sponsor_name = Column(String(255), nullable=True)
    status = Column(String(16), nullable=False, default=ReservationStatus.PENDING.value)
    starts_at = Column(DateTime(timezone=True), nullable=False)
    ends_at = Column(DateTime(timezone=True), nullable=False)
    share_pct = Column(Integer, nullable=False)
    creative = Column(Text, nullable=False)  # URL or markup
    price_usd_cents = Column(BigInteger, nullable=False)
    checkout_id = Column(String(64), nullable=True)  # payment processor reference
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    slot = relationship("AdSlot", back_populates="reservations")

    __table_args__ = (
        CheckConstraint("share_pct BETWEEN 1 AND 100", name="ck_reservations_share_pct"),
        CheckConstraint("starts_at < ends_at", name="ck_reservations_window"),
        CheckConstraint("price_usd_cents >= 0", name="ck_reservations_price"),
        CheckConstraint(f"status IN ({_STATUSES})", name="ck_reservations_status"),
        Index("ix_reservations_slot_status_window", "slot_id", "status", "starts_at", "ends_at"),
    )
