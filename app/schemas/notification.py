from datetime import datetime
from typing import Any, Dict, Literal, Optional

from uuid import UUID

from pydantic import BaseModel


class NotificationCreate(BaseModel):
    title: str
    body: str
    target: Literal["all", "customers", "birthday_today", "specific_user"]
    targetUserId: Optional[str] = None
    type: Optional[str] = "general"
    clickAction: Optional[str] = "/profile"


class NotificationOut(BaseModel):
    id: UUID

    title: str
    body: str
    target: str
    target_user_id: Optional[str] = None

    type: str
    click_action: str

    status: str
    success_count: int
    failure_count: int
    actual_target_count: Optional[int] = None
    error: Optional[str] = None

    rule_id: Optional[UUID] = None

    created_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class NotificationScheduleCron(BaseModel):
    type: Literal["cron"] = "cron"
    cron: str
    timezone: str = "Europe/Rome"


class AutomatedNotificationCreate(BaseModel):
    type: Literal["birthday", "stamp_milestone"]
    enabled: bool = True
    title: Optional[str] = None
    body: Optional[str] = None
    schedule: Optional[NotificationScheduleCron] = None
    params: Optional[Dict[str, Any]] = None


class AutomatedNotificationUpdate(BaseModel):
    enabled: Optional[bool] = None
    title: Optional[str] = None
    body: Optional[str] = None
    schedule: Optional[NotificationScheduleCron] = None
    params: Optional[Dict[str, Any]] = None


class AutomatedNotificationOut(BaseModel):
    id: UUID
    type: str
    enabled: bool

    title: Optional[str] = None
    body: Optional[str] = None

    schedule: Optional[Dict[str, Any]] = None
    params: Optional[Dict[str, Any]] = None

    last_run_at: Optional[datetime] = None
    next_run_at: Optional[datetime] = None
    last_status: Optional[str] = None
    last_error: Optional[str] = None

    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
