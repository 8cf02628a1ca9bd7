from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from zoneinfo import ZoneInfo

from croniter import croniter
from sqlalchemy import or_
from sqlalchemy.orm import Session

from app.db import SessionLocal
from app.deps.clock import get_now
from app.models.automated_notification import AutomatedNotificationRule
from app.models.customer import Customer
from app.models.stamp_ledger import StampLedger
from app.services.notification_service import Sender, create_notification, dispatch_pending
from app.services.push_sender import sender_from_env
from app.services.stamp_engine import STAMPS_PER_CARD


logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE = {"type": "cron", "cron": "0 9 * * *", "timezone": "Europe/Rome"}

BIRTHDAY_TITLE = "Happy Birthday!"
BIRTHDAY_BODY = "Come and celebrate with us, a surprise is waiting for you!"

MILESTONE_TITLE = "Almost there!"
MILESTONE_BODY = "Just one more stamp and your next reward is free."


@dataclass
class RuleRunStats:
    processed: int
    queued: int
    failed: int


def _utcnow() -> datetime:
    # naive UTC, same convention as the TIMESTAMP columns
    return datetime.now(timezone.utc).replace(tzinfo=None)


def _as_utc_aware(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        return dt.replace(tzinfo=ZoneInfo("UTC"))
    return dt.astimezone(ZoneInfo("UTC"))


def _local_now(now_utc: datetime, schedule: dict | None) -> datetime:
    tz = ZoneInfo((schedule or DEFAULT_SCHEDULE).get("timezone") or "UTC")
    return _as_utc_aware(now_utc).astimezone(tz).replace(tzinfo=None)


def compute_next_run_at(*, base_utc: datetime, schedule: dict | None) -> datetime:
    schedule = schedule or DEFAULT_SCHEDULE
    if schedule.get("type") != "cron":
        raise ValueError("Unsupported schedule.type (expected 'cron')")

    cron_expr = schedule.get("cron")
    if not cron_expr:
        raise ValueError("schedule.cron is required")

    tz = ZoneInfo(schedule.get("timezone") or "UTC")

    base_local = _as_utc_aware(base_utc).astimezone(tz)
    next_local: datetime = croniter(cron_expr, base_local).get_next(datetime)
    return _as_utc_aware(next_local).replace(tzinfo=None)


# ============================================================
# RULE HANDLERS
# ============================================================

def _run_birthday_rule(db: Session, rule: AutomatedNotificationRule, *, now_local: datetime) -> int:
    create_notification(
        db,
        {
            "title": rule.title or BIRTHDAY_TITLE,
            "body": rule.body or BIRTHDAY_BODY,
            "target": "birthday_today",
            "type": "birthday",
        },
        now=now_local,
        rule_id=rule.id,
    )
    return 1


def _run_stamp_milestone_rule(db: Session, rule: AutomatedNotificationRule, *, now_local: datetime) -> int:
    params = rule.params or {}
    threshold = int(params.get("threshold") or STAMPS_PER_CARD - 1)

    rows = (
        db.query(Customer.id, StampLedger.stamps)
        .join(StampLedger, StampLedger.customer_id == Customer.id)
        .filter(Customer.role != "superuser")
        .order_by(Customer.id.asc())
        .all()
    )

    queued = 0
    for customer_id, stamps in rows:
        if len(stamps or []) != threshold:
            continue
        create_notification(
            db,
            {
                "title": rule.title or MILESTONE_TITLE,
                "body": rule.body or MILESTONE_BODY,
                "target": "specific_user",
                "targetUserId": customer_id,
                "type": "stamp_milestone",
            },
            now=now_local,
            rule_id=rule.id,
        )
        queued += 1

    return queued


RULE_HANDLERS = {
    "birthday": _run_birthday_rule,
    "stamp_milestone": _run_stamp_milestone_rule,
}


def run_due_rules(db: Session, *, now_utc: datetime | None = None) -> RuleRunStats:
    """
    Run every enabled rule whose next_run_at is due (or was never set).
    A failing rule is recorded on the rule itself and does not stop the
    others.
    """
    if now_utc is None:
        now_utc = _utcnow()

    rules = (
        db.query(AutomatedNotificationRule)
        .filter(AutomatedNotificationRule.enabled.is_(True))
        .filter(
            or_(
                AutomatedNotificationRule.next_run_at.is_(None),
                AutomatedNotificationRule.next_run_at <= now_utc,
            )
        )
        .order_by(AutomatedNotificationRule.created_at.asc())
        .all()
    )

    if not rules:
        logger.info("no enabled automated rules due", extra={"now": now_utc.isoformat()})
        return RuleRunStats(processed=0, queued=0, failed=0)

    processed = 0
    queued = 0
    failed = 0

    for rule in rules:
        processed += 1
        handler = RULE_HANDLERS.get(rule.type)

        if handler is None:
            logger.warning("unknown automated rule type", extra={"rule_id": str(rule.id), "rule_type": rule.type})
            rule.last_status = "SKIPPED"
            rule.last_error = f"Unknown rule type: {rule.type}"
            rule.last_run_at = now_utc
            rule.next_run_at = compute_next_run_at(base_utc=now_utc, schedule=rule.schedule)
            db.commit()
            continue

        try:
            count = handler(db, rule, now_local=_local_now(now_utc, rule.schedule))
            queued += count
            rule.last_status = "SUCCESS"
            rule.last_error = None
            logger.info("automated rule ran", extra={"rule_id": str(rule.id), "rule_type": rule.type, "queued": count})
        except Exception as e:
            # drop whatever the handler queued; earlier rules are already committed
            db.rollback()
            failed += 1
            rule.last_status = "FAILED"
            rule.last_error = str(e)
            logger.exception("automated rule failed", extra={"rule_id": str(rule.id), "rule_type": rule.type})

        rule.last_run_at = now_utc
        # keep moving forward on failure to avoid a tight retry loop
        rule.next_run_at = compute_next_run_at(base_utc=now_utc, schedule=rule.schedule)
        db.commit()

    return RuleRunStats(processed=processed, queued=queued, failed=failed)


def main(send: Sender | None = None):
    """
    One pass: queue notifications for due rules, then deliver everything
    still pending through ``send`` (the env-configured push gateway when
    not given).
    """
    db = SessionLocal()
    try:
        stats = run_due_rules(db)
        logger.info(
            "automated notifications pass finished",
            extra={"processed": stats.processed, "queued": stats.queued, "failed": stats.failed},
        )

        send = send or sender_from_env()
        if send is None:
            return

        dispatched = dispatch_pending(db, send, now=get_now())
        logger.info(
            "pending notifications drained",
            extra={"dispatched": len(dispatched), "failed": sum(1 for n in dispatched if n.status == "failed")},
        )
    finally:
        db.close()


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    main()
