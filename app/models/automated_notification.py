import uuid
from sqlalchemy import Boolean, Column, JSON, String, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.sql import func
from app.db import Base


class AutomatedNotificationRule(Base):
    __tablename__ = "automated_notifications"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)

    type = Column(String(30), nullable=False)  # birthday / stamp_milestone
    enabled = Column(Boolean, nullable=False, default=True)

    title = Column(String(200), nullable=True)
    body = Column(String(1000), nullable=True)

    # {"type": "cron", "cron": "0 9 * * *", "timezone": "Europe/Rome"}
    schedule = Column(JSON, nullable=True)
    params = Column(JSON, nullable=True)

    last_run_at = Column(TIMESTAMP, nullable=True)
    next_run_at = Column(TIMESTAMP, nullable=True)
    last_status = Column(String(20), nullable=True)
    last_error = Column(String, nullable=True)

    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())
