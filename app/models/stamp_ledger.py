from sqlalchemy import Boolean, Column, ForeignKey, Integer, JSON, String, TIMESTAMP
from sqlalchemy.sql import func
from app.db import Base


class StampLedger(Base):
    __tablename__ = "stamp_ledgers"

    customer_id = Column(String(128), ForeignKey("customers.id"), primary_key=True)

    # current card, oldest first: [{"date": "2024-05-01T10:00:00"}, ...]
    stamps = Column(JSON, nullable=False, default=list)

    lifetime_stamps = Column(Integer, nullable=False, default=0)
    rewards_earned = Column(Integer, nullable=False, default=0)
    available_rewards = Column(Integer, nullable=False, default=0)

    birthday_bonus_year = Column(Integer, nullable=True)
    received_free_stamps = Column(Boolean, nullable=False, default=False)

    reward_claimed = Column(Boolean, nullable=False, default=False)
    last_redemption_date = Column(TIMESTAMP, nullable=True)
    last_reward_claimed = Column(TIMESTAMP, nullable=True)
    last_stamp_date = Column(TIMESTAMP, nullable=True)

    version = Column(Integer, nullable=False)

    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    __mapper_args__ = {"version_id_col": version}
