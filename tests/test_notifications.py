from datetime import datetime, timedelta

import pytest

from app.errors import InvalidArgument
from app.models.automated_notification import AutomatedNotificationRule
from app.models.customer import Customer
from app.models.notification import Notification
from app.services import notification_scheduler, notification_service
from app.services.notification_scheduler import compute_next_run_at, run_due_rules
from app.services.notification_service import (
    UnregisteredToken,
    create_notification,
    dispatch_notification,
    dispatch_pending,
    resolve_targets,
)
from tests.conftest import NOW, TestingSessionLocal, make_customer


@pytest.fixture
def audience(db):
    make_customer(db, "birthday-1", dob="14/03", fcm_tokens=["tok-b1"])
    make_customer(db, "regular-1", dob="01/01", fcm_tokens=["tok-r1", "tok-r2"])
    make_customer(db, "silent-1", dob="14/03")
    make_customer(db, "staff-1", role="superuser", fcm_tokens=["tok-s1"])


def _queue(db, **data):
    data.setdefault("title", "Hello")
    data.setdefault("body", "News from the café")
    return create_notification(db, data, now=NOW)


@pytest.mark.parametrize(
    "target,expected",
    [
        ("all", ["birthday-1", "regular-1"]),
        ("customers", ["birthday-1", "regular-1"]),
        ("birthday_today", ["birthday-1"]),
    ],
)
def test_resolve_targets(db, audience, target, expected):
    notification = _queue(db, target=target)

    assert [c.id for c in resolve_targets(db, notification, now=NOW)] == expected


def test_specific_user_without_tokens_has_no_audience(db, audience):
    notification = _queue(db, target="specific_user", targetUserId="silent-1")

    assert resolve_targets(db, notification, now=NOW) == []


def test_create_notification_validates_input(db):
    with pytest.raises(InvalidArgument):
        _queue(db, target="everyone")
    with pytest.raises(InvalidArgument):
        _queue(db, target="specific_user")
    with pytest.raises(InvalidArgument):
        _queue(db, target="all", title="  ")


def test_dispatch_counts_and_prunes_unregistered_tokens(db, audience):
    notification = _queue(db, target="customers")
    sent = []

    def send(token, message):
        if token == "tok-r2":
            raise UnregisteredToken(token)
        sent.append((token, message.title, message.data["notificationId"]))

    dispatch_notification(db, notification, send, now=NOW)
    db.commit()

    assert [s[0] for s in sent] == ["tok-b1", "tok-r1"]
    assert sent[0][2] == str(notification.id)
    assert notification.status == "delivered"
    assert notification.error is None
    assert notification.success_count == 2
    assert notification.failure_count == 1
    assert notification.actual_target_count == 3

    db.expire_all()
    assert db.query(Customer).filter(Customer.id == "regular-1").one().fcm_tokens == ["tok-r1"]


def test_dispatch_all_failures_marks_failed(db, audience):
    notification = _queue(db, target="birthday_today")

    def send(token, message):
        raise RuntimeError("provider down")

    dispatch_notification(db, notification, send, now=NOW)

    assert notification.status == "failed"
    assert notification.failure_count == 1
    assert notification.error == "all 1 deliveries failed: provider down"


def test_dispatch_without_audience_completes(db):
    notification = _queue(db, target="all")

    dispatch_notification(db, notification, lambda token, message: None, now=NOW)

    assert notification.status == "completed"
    assert notification.actual_target_count == 0
    assert notification.processed_at == NOW


def test_next_run_follows_schedule_timezone():
    schedule = {"type": "cron", "cron": "0 9 * * *", "timezone": "Europe/Rome"}

    # 06:00 UTC is 07:00 in Rome (CET) on 14 March
    next_run = compute_next_run_at(base_utc=datetime(2026, 3, 14, 6, 0), schedule=schedule)

    assert next_run == datetime(2026, 3, 14, 8, 0)


def test_next_run_rejects_non_cron_schedule():
    with pytest.raises(ValueError):
        compute_next_run_at(base_utc=NOW, schedule={"type": "interval"})


def _rule(db, rule_type, **kwargs):
    rule = AutomatedNotificationRule(type=rule_type, **kwargs)
    db.add(rule)
    db.commit()
    return rule


def test_birthday_rule_queues_notification(db):
    rule = _rule(db, "birthday")

    stats = run_due_rules(db, now_utc=datetime(2026, 3, 14, 8, 0))

    notification = db.query(Notification).one()
    assert stats.processed == 1
    assert stats.queued == 1
    assert notification.target == "birthday_today"
    assert notification.type == "birthday"
    assert notification.title == "Happy Birthday!"
    assert notification.rule_id == rule.id

    db.refresh(rule)
    assert rule.last_status == "SUCCESS"
    assert rule.next_run_at == datetime(2026, 3, 15, 8, 0)


def test_stamp_milestone_rule_targets_customers_one_stamp_away(db):
    make_customer(db, "close-1", stamps=8)
    make_customer(db, "far-1", stamps=3)
    make_customer(db, "done-1", stamps=9)
    _rule(db, "stamp_milestone", title="One to go")

    stats = run_due_rules(db, now_utc=datetime(2026, 3, 14, 8, 0))

    notifications = db.query(Notification).all()
    assert stats.queued == 1
    assert [n.target_user_id for n in notifications] == ["close-1"]
    assert notifications[0].title == "One to go"


def test_stamp_milestone_threshold_param(db):
    make_customer(db, "close-1", stamps=8)
    make_customer(db, "done-1", stamps=9)
    _rule(db, "stamp_milestone", params={"threshold": 9})

    run_due_rules(db, now_utc=datetime(2026, 3, 14, 8, 0))

    assert [n.target_user_id for n in db.query(Notification).all()] == ["done-1"]


def test_rules_not_due_or_disabled_are_skipped(db):
    _rule(db, "birthday", enabled=False)
    _rule(db, "birthday", next_run_at=datetime(2026, 3, 15, 8, 0))

    stats = run_due_rules(db, now_utc=datetime(2026, 3, 14, 8, 0))

    assert stats.processed == 0
    assert db.query(Notification).count() == 0


def test_unknown_rule_type_is_skipped(db):
    rule = _rule(db, "anniversary")
    _rule(db, "birthday")

    stats = run_due_rules(db, now_utc=datetime(2026, 3, 14, 8, 0))

    db.refresh(rule)
    assert stats.processed == 2
    assert stats.queued == 1
    assert rule.last_status == "SKIPPED"


def test_unregistered_only_failures_record_error(db):
    make_customer(db, "gone-1", fcm_tokens=["tok-gone"])
    notification = _queue(db, target="specific_user", targetUserId="gone-1")

    def send(token, message):
        raise UnregisteredToken(token)

    dispatch_notification(db, notification, send, now=NOW)

    assert notification.status == "failed"
    assert notification.error == "all 1 deliveries failed: unregistered token"


def test_dispatch_pending_delivers_queue_oldest_first(db, audience):
    first = _queue(db, target="birthday_today", title="First")
    second = _queue(db, target="specific_user", targetUserId="silent-1", title="Second")
    first.created_at = NOW - timedelta(hours=1)
    db.commit()
    sent = []

    dispatched = dispatch_pending(db, lambda token, message: sent.append((token, message.title)), now=NOW)

    assert [n.id for n in dispatched] == [first.id, second.id]
    assert sent == [("tok-b1", "First")]

    db.expire_all()
    assert db.query(Notification).filter(Notification.id == first.id).one().status == "delivered"
    assert db.query(Notification).filter(Notification.id == second.id).one().status == "completed"
    assert dispatch_pending(db, lambda token, message: None, now=NOW) == []


def test_dispatch_pending_records_errors_and_continues(db, audience, monkeypatch):
    broken = _queue(db, target="all", title="Broken")
    ok = _queue(db, target="birthday_today", title="Fine")
    db.commit()

    real_resolve = notification_service.resolve_targets

    def resolve(db, notification, *, now):
        if notification.title == "Broken":
            raise RuntimeError("audience lookup failed")
        return real_resolve(db, notification, now=now)

    monkeypatch.setattr(notification_service, "resolve_targets", resolve)

    dispatch_pending(db, lambda token, message: None, now=NOW)

    db.expire_all()
    broken = db.query(Notification).filter(Notification.id == broken.id).one()
    assert broken.status == "failed"
    assert broken.error == "audience lookup failed"
    assert broken.processed_at == NOW
    assert db.query(Notification).filter(Notification.id == ok.id).one().status == "delivered"


def test_scheduler_main_queues_and_delivers(db, audience, monkeypatch):
    _rule(db, "birthday")
    monkeypatch.setattr(notification_scheduler, "SessionLocal", TestingSessionLocal)
    monkeypatch.setattr(notification_scheduler, "get_now", lambda: NOW)
    sent = []

    notification_scheduler.main(send=lambda token, message: sent.append(token))

    db.expire_all()
    notification = db.query(Notification).one()
    assert notification.status == "delivered"
    assert notification.success_count == 1
    assert sent == ["tok-b1"]


def test_scheduler_main_without_gateway_leaves_queue_pending(db, audience, monkeypatch):
    _rule(db, "birthday")
    monkeypatch.setattr(notification_scheduler, "SessionLocal", TestingSessionLocal)
    monkeypatch.delenv("PUSH_GATEWAY_URL", raising=False)

    notification_scheduler.main()

    db.expire_all()
    assert db.query(Notification).one().status == "pending"
