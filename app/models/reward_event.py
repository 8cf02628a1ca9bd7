import uuid
from sqlalchemy import Column, ForeignKey, Index, Integer, String, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from app.db import Base


class RewardEvent(Base):
    __tablename__ = "reward_events"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    customer_id = Column(String(128), ForeignKey("customers.id"), nullable=False)

    kind = Column(String(20), nullable=False)
    # EARNED | REDEEMED | CLAIMED

    method = Column(String(20), nullable=False)
    # scan | qr | app

    staff_id = Column(String(128), nullable=True)
    stamps_before = Column(Integer, nullable=True)

    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())

    __table_args__ = (Index("ix_reward_events_customer_id_created_at", "customer_id", "created_at"),)
