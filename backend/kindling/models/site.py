"""Publisher site. Owner is an opaque Identity Provider id; deleting a site cascades to its slots."""
from sqlalchemy import Column, DateTime, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from kindling.db.base import Base


class Site(Base):
    __tablename__ = "sites"

    id = Column(Integer, primary_key=True, autoincrement=True)
    owner_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)
    url = Column(String(512), nullable=False, unique=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)

    slots = relationship(
        "AdSlot",
        back_populates="site",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="AdSlot.id",
    )
