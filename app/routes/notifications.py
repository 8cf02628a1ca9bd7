from datetime import datetime, timezone
from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps.auth import require_staff
from app.deps.clock import get_now
from app.deps.push import get_push_sender
from app.errors import InvalidArgument, NotFound, atomic
from app.models.automated_notification import AutomatedNotificationRule
from app.models.customer import Customer
from app.models.notification import Notification
from app.schemas.notification import (
    AutomatedNotificationCreate,
    AutomatedNotificationOut,
    AutomatedNotificationUpdate,
    NotificationCreate,
    NotificationOut,
)
from app.services.notification_scheduler import compute_next_run_at
from app.services.notification_service import Sender, create_notification, dispatch_pending


router = APIRouter(prefix="/admin", tags=["admin-notifications"])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _next_run_at(schedule: dict | None) -> datetime:
    try:
        return compute_next_run_at(base_utc=_utcnow(), schedule=schedule)
    except (ValueError, KeyError) as e:
        raise InvalidArgument(f"Invalid schedule: {e}")


@router.post("/notifications", response_model=NotificationOut)
def queue_notification(
    payload: NotificationCreate,
    staff: Customer = Depends(require_staff),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    with atomic(db):
        notification = create_notification(db, payload.model_dump(), now=now)

    db.refresh(notification)
    return notification


@router.get("/notifications", response_model=list[NotificationOut])
def list_notifications(
    status: str | None = None,
    limit: int = 50,
    offset: int = 0,
    staff: Customer = Depends(require_staff),
    db: Session = Depends(get_db),
):
    q = db.query(Notification)
    if status:
        q = q.filter(Notification.status == status)

    limit = max(1, min(limit, 200))
    offset = max(0, offset)

    return (
        q.order_by(Notification.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )


@router.post("/notifications/dispatch", response_model=list[NotificationOut])
def dispatch_queued_notifications(
    limit: int = 100,
    staff: Customer = Depends(require_staff),
    send: Sender = Depends(get_push_sender),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    limit = max(1, min(limit, 500))
    dispatched = dispatch_pending(db, send, now=now, limit=limit)

    for notification in dispatched:
        db.refresh(notification)
    return dispatched


@router.post("/automated-notifications", response_model=AutomatedNotificationOut)
def create_automated_rule(
    payload: AutomatedNotificationCreate,
    staff: Customer = Depends(require_staff),
    db: Session = Depends(get_db),
):
    schedule = payload.schedule.model_dump() if payload.schedule else None

    rule = AutomatedNotificationRule(
        type=payload.type,
        enabled=payload.enabled,
        title=payload.title,
        body=payload.body,
        schedule=schedule,
        params=payload.params,
        next_run_at=_next_run_at(schedule),
    )
    with atomic(db):
        db.add(rule)

    db.refresh(rule)
    return rule


@router.get("/automated-notifications", response_model=list[AutomatedNotificationOut])
def list_automated_rules(
    enabled: bool | None = None,
    staff: Customer = Depends(require_staff),
    db: Session = Depends(get_db),
):
    q = db.query(AutomatedNotificationRule)
    if enabled is not None:
        q = q.filter(AutomatedNotificationRule.enabled.is_(enabled))
    return q.order_by(AutomatedNotificationRule.created_at.asc()).all()


@router.patch("/automated-notifications/{rule_id}", response_model=AutomatedNotificationOut)
def update_automated_rule(
    rule_id: UUID,
    payload: AutomatedNotificationUpdate,
    staff: Customer = Depends(require_staff),
    db: Session = Depends(get_db),
):
    rule = db.query(AutomatedNotificationRule).filter(AutomatedNotificationRule.id == rule_id).first()
    if not rule:
        raise NotFound("Automated notification rule not found")

    data = payload.model_dump(exclude_unset=True)
    with atomic(db):
        for k, v in data.items():
            setattr(rule, k, v)
        if "schedule" in data:
            rule.next_run_at = _next_run_at(rule.schedule)

    db.refresh(rule)
    return rule
