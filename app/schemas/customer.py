from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel


class CustomerRegister(BaseModel):
    firstName: Optional[str] = None
    lastName: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    dob: Optional[str] = None          # DD/MM
    fcmToken: Optional[str] = None


class CustomerOut(BaseModel):
    id: str

    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    dob: Optional[str] = None

    role: str

    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class ClientSummaryOut(BaseModel):
    id: str
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    dob: Optional[str] = None

    currentStamps: int
    lifetimeStamps: int
    rewardsEarned: int
    availableRewards: int


class StampOut(BaseModel):
    date: str


class LedgerOut(BaseModel):
    customer_id: str

    stamps: List[StampOut] = []

    lifetime_stamps: int
    rewards_earned: int
    available_rewards: int

    birthday_bonus_year: Optional[int] = None
    received_free_stamps: bool

    reward_claimed: bool
    last_redemption_date: Optional[datetime] = None
    last_reward_claimed: Optional[datetime] = None
    last_stamp_date: Optional[datetime] = None

    class Config:
        from_attributes = True
