import uuid
from sqlalchemy import Column, ForeignKey, Integer, String, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from app.db import Base


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    title = Column(String(200), nullable=False)
    body = Column(String(1000), nullable=False)

    target = Column(String(30), nullable=False)
    # all | customers | birthday_today | specific_user
    target_user_id = Column(String(128), nullable=True)

    type = Column(String(50), nullable=False, default="general")
    click_action = Column(String(200), nullable=False, default="/profile")

    status = Column(String(20), nullable=False, default="pending")
    # pending | completed | delivered | failed
    success_count = Column(Integer, nullable=False, default=0)
    failure_count = Column(Integer, nullable=False, default=0)
    actual_target_count = Column(Integer, nullable=True)
    error = Column(String, nullable=True)

    rule_id = Column(UUID(as_uuid=True), ForeignKey("automated_notifications.id", ondelete="SET NULL"), nullable=True)

    created_at = Column(TIMESTAMP, server_default=func.now())
    processed_at = Column(TIMESTAMP, nullable=True)
