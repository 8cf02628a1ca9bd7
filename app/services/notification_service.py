import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from app.errors import InvalidArgument
from app.models.customer import Customer
from app.models.notification import Notification
from app.services.stamp_engine import is_birthday


logger = logging.getLogger(__name__)

TARGETS = {"all", "customers", "birthday_today", "specific_user"}


class UnregisteredToken(Exception):
    """Raised by a sender when the push provider no longer knows the token."""


@dataclass
class PushMessage:
    title: str
    body: str
    data: dict


Sender = Callable[[str, PushMessage], None]


def create_notification(db: Session, data: dict, *, now: datetime, rule_id=None) -> Notification:
    target = (data.get("target") or "").strip()
    if target not in TARGETS:
        raise InvalidArgument(f"target must be one of {sorted(TARGETS)}")

    target_user_id = data.get("targetUserId")
    if target == "specific_user" and not target_user_id:
        raise InvalidArgument("targetUserId is required for specific_user")

    title = (data.get("title") or "").strip()
    body = (data.get("body") or "").strip()
    if not title or not body:
        raise InvalidArgument("title and body are required")

    notification = Notification(
        title=title,
        body=body,
        target=target,
        target_user_id=target_user_id if target == "specific_user" else None,
        type=data.get("type") or "general",
        click_action=data.get("clickAction") or "/profile",
        status="pending",
        rule_id=rule_id,
        created_at=now,
    )
    db.add(notification)
    db.flush()

    logger.info(
        "notification queued",
        extra={"notification_id": str(notification.id), "target": target, "rule_id": str(rule_id) if rule_id else None},
    )
    return notification


def resolve_targets(db: Session, notification: Notification, *, now: datetime) -> list[Customer]:
    target = notification.target

    if target == "specific_user":
        customer = db.query(Customer).filter(Customer.id == notification.target_user_id).first()
        return [customer] if customer and customer.fcm_tokens else []

    q = db.query(Customer)
    if target == "customers":
        q = q.filter(Customer.role == "customer")
    else:
        q = q.filter(Customer.role != "superuser")

    users = [u for u in q.order_by(Customer.id.asc()).all() if u.fcm_tokens]

    if target == "birthday_today":
        users = [u for u in users if is_birthday(u.dob, now)]

    return users


def _prune_tokens(users: list[Customer], invalid_tokens: set[str]):
    for user in users:
        tokens = list(user.fcm_tokens or [])
        valid = [t for t in tokens if t not in invalid_tokens]
        if len(valid) < len(tokens):
            user.fcm_tokens = valid
            logger.info("removed unregistered push tokens", extra={"customer_id": user.id, "removed": len(tokens) - len(valid)})


def dispatch_notification(db: Session, notification: Notification, send: Sender, *, now: datetime) -> Notification:
    """
    Deliver a queued notification to every push token of its audience.

    Per-token failures are counted, never raised; tokens the provider
    reports as unregistered are removed from their owners.
    """
    users = resolve_targets(db, notification, now=now)
    tokens = [t for u in users for t in (u.fcm_tokens or [])]

    if not tokens:
        logger.info("no target tokens for notification", extra={"notification_id": str(notification.id), "target": notification.target})
        notification.status = "completed"
        notification.success_count = 0
        notification.failure_count = 0
        notification.actual_target_count = 0
        notification.processed_at = now
        db.flush()
        return notification

    message = PushMessage(
        title=notification.title,
        body=notification.body,
        data={
            "click_action": notification.click_action or "/profile",
            "type": notification.type or "general",
            "notificationId": str(notification.id),
        },
    )

    success = 0
    failure = 0
    unregistered: set[str] = set()
    last_error = None

    for token in tokens:
        try:
            send(token, message)
            success += 1
        except UnregisteredToken:
            failure += 1
            unregistered.add(token)
            last_error = "unregistered token"
        except Exception as e:
            failure += 1
            last_error = str(e) or type(e).__name__
            logger.warning(
                "push send failed",
                exc_info=True,
                extra={"notification_id": str(notification.id), "token_prefix": token[:20]},
            )

    if unregistered:
        _prune_tokens(users, unregistered)

    notification.status = "delivered" if success > 0 else "failed"
    notification.error = None if success > 0 else f"all {failure} deliveries failed: {last_error}"
    notification.success_count = success
    notification.failure_count = failure
    notification.actual_target_count = len(tokens)
    notification.processed_at = now
    db.flush()

    logger.info(
        "notification dispatched",
        extra={"notification_id": str(notification.id), "delivered": success, "failed": failure},
    )
    return notification


def dispatch_pending(db: Session, send: Sender, *, now: datetime, limit: int = 100) -> list[Notification]:
    """
    Drain the queue: dispatch pending notifications oldest first, one commit
    each. A notification whose dispatch raises is marked failed with the
    error and the drain moves on.
    """
    pending = (
        db.query(Notification)
        .filter(Notification.status == "pending")
        .order_by(Notification.created_at.asc())
        .limit(limit)
        .all()
    )

    for notification in pending:
        try:
            dispatch_notification(db, notification, send, now=now)
            db.commit()
        except Exception as e:
            db.rollback()
            notification.status = "failed"
            notification.error = str(e) or type(e).__name__
            notification.processed_at = now
            db.commit()
            logger.exception("notification dispatch failed", extra={"notification_id": str(notification.id)})

    return pending
