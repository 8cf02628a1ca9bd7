import logging
from dataclasses import fields
from datetime import datetime

from sqlalchemy.orm import Session

from app.errors import NotFound
from app.models.customer import Customer
from app.models.reward_event import RewardEvent
from app.models.stamp_ledger import StampLedger
from app.services.stamp_engine import (
    LedgerState,
    RedemptionOutcome,
    ScanOutcome,
    apply_claim,
    apply_redemption,
    apply_scan,
    open_ledger,
)


logger = logging.getLogger(__name__)

_STATE_FIELDS = tuple(f.name for f in fields(LedgerState))


def state_from_ledger(ledger: StampLedger) -> LedgerState:
    return LedgerState(
        stamps=list(ledger.stamps or []),
        lifetime_stamps=int(ledger.lifetime_stamps or 0),
        rewards_earned=int(ledger.rewards_earned or 0),
        available_rewards=int(ledger.available_rewards or 0),
        birthday_bonus_year=ledger.birthday_bonus_year,
        received_free_stamps=bool(ledger.received_free_stamps),
        reward_claimed=bool(ledger.reward_claimed),
        last_redemption_date=ledger.last_redemption_date,
        last_reward_claimed=ledger.last_reward_claimed,
        last_stamp_date=ledger.last_stamp_date,
    )


def write_state(ledger: StampLedger, state: LedgerState):
    # every field goes out in the same UPDATE, guarded by the version column
    for name in _STATE_FIELDS:
        setattr(ledger, name, getattr(state, name))


def _get_customer(db: Session, customer_id: str) -> Customer:
    customer = db.query(Customer).filter(Customer.id == customer_id).first()
    if not customer:
        raise NotFound("User not found")
    return customer


def _lock_ledger(db: Session, customer_id: str) -> StampLedger | None:
    return (
        db.query(StampLedger)
        .filter(StampLedger.customer_id == customer_id)
        .with_for_update()
        .first()
    )


def get_ledger(db: Session, customer_id: str) -> StampLedger:
    _get_customer(db, customer_id)
    ledger = db.query(StampLedger).filter(StampLedger.customer_id == customer_id).first()
    if not ledger:
        raise NotFound("User stamps data not found")
    return ledger


def create_ledger(db: Session, customer_id: str, *, welcome_stamps: int, now: datetime) -> StampLedger:
    ledger = StampLedger(customer_id=customer_id)
    write_state(ledger, open_ledger(welcome_stamps=welcome_stamps, now=now))
    db.add(ledger)
    db.flush()
    return ledger


# ============================================================
# PROCESS SCAN
# ============================================================
def process_scan(db: Session, customer_id: str, *, now: datetime, staff_id: str | None = None) -> ScanOutcome:
    customer = _get_customer(db, customer_id)

    ledger = _lock_ledger(db, customer_id)
    if ledger is None:
        ledger = StampLedger(customer_id=customer_id)
        write_state(ledger, LedgerState())
        db.add(ledger)

    stamps_before = len(ledger.stamps or [])

    outcome = apply_scan(state_from_ledger(ledger), dob=customer.dob, now=now)
    write_state(ledger, outcome.state)

    if outcome.reward_earned:
        db.add(
            RewardEvent(
                customer_id=customer_id,
                kind="EARNED",
                method="scan",
                staff_id=staff_id,
                stamps_before=stamps_before,
                created_at=now,
            )
        )

    db.flush()

    logger.info(
        "stamp scan processed",
        extra={
            "customer_id": customer_id,
            "staff_id": staff_id,
            "stamps_before": stamps_before,
            "stamps_added": outcome.stamps_added,
            "current_stamps": outcome.current_stamps,
            "reward_earned": outcome.reward_earned,
            "birthday_bonus": outcome.birthday_bonus,
        },
    )

    return outcome


# ============================================================
# REDEEM REWARD (staff QR)
# ============================================================
def redeem_reward(db: Session, customer_id: str, *, now: datetime, staff_id: str | None = None) -> RedemptionOutcome:
    _get_customer(db, customer_id)

    ledger = _lock_ledger(db, customer_id)
    if ledger is None:
        raise NotFound("User stamps data not found")

    stamps_before = len(ledger.stamps or [])

    outcome = apply_redemption(state_from_ledger(ledger), now=now)
    write_state(ledger, outcome.state)

    db.add(
        RewardEvent(
            customer_id=customer_id,
            kind="REDEEMED",
            method="qr",
            staff_id=staff_id,
            stamps_before=stamps_before,
            created_at=now,
        )
    )
    db.flush()

    logger.info(
        "reward redeemed",
        extra={
            "customer_id": customer_id,
            "staff_id": staff_id,
            "rewards_earned": outcome.rewards_earned,
            "lifetime_stamps": outcome.lifetime_stamps,
        },
    )

    return outcome


# ============================================================
# CLAIM REWARD (customer)
# ============================================================
def claim_reward(db: Session, customer_id: str, *, now: datetime) -> StampLedger:
    _get_customer(db, customer_id)

    ledger = _lock_ledger(db, customer_id)
    if ledger is None:
        raise NotFound("User stamps data not found")

    write_state(ledger, apply_claim(state_from_ledger(ledger), now=now))

    db.add(
        RewardEvent(
            customer_id=customer_id,
            kind="CLAIMED",
            method="app",
            stamps_before=len(ledger.stamps or []),
            created_at=now,
        )
    )
    db.flush()

    logger.info(
        "reward claimed",
        extra={"customer_id": customer_id, "remaining_rewards": ledger.available_rewards},
    )

    return ledger
