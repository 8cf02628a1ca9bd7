"""
Stamp card rules.

Pure functions over a LedgerState snapshot: no database access and no
clock reads, `now` is always passed in by the caller.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from app.errors import InvalidState


STAMPS_PER_CARD = 9
BIRTHDAY_BONUS_STAMPS = 1


@dataclass(frozen=True)
class LedgerState:
    stamps: list = field(default_factory=list)
    lifetime_stamps: int = 0
    rewards_earned: int = 0
    available_rewards: int = 0
    birthday_bonus_year: int | None = None
    received_free_stamps: bool = False
    reward_claimed: bool = False
    last_redemption_date: datetime | None = None
    last_reward_claimed: datetime | None = None
    last_stamp_date: datetime | None = None


@dataclass
class ScanOutcome:
    state: LedgerState
    stamps_added: int
    reward_earned: bool
    birthday_bonus: bool
    current_stamps: int
    overflow_stamps: int | None
    message: str


@dataclass
class RedemptionOutcome:
    state: LedgerState
    rewards_earned: int
    lifetime_stamps: int


# ============================================================
# HELPERS
# ============================================================

def _parse_dob(dob: str | None) -> tuple[int, int] | None:
    if not dob or not isinstance(dob, str):
        return None
    parts = dob.strip().split("/")
    if len(parts) < 2:
        return None
    try:
        day = int(parts[0])
        month = int(parts[1])
    except ValueError:
        return None
    if not (1 <= day <= 31 and 1 <= month <= 12):
        return None
    return day, month


def is_birthday(dob: str | None, now: datetime) -> bool:
    parsed = _parse_dob(dob)
    if parsed is None:
        return False
    day, month = parsed
    return day == now.day and month == now.month


def new_stamps(count: int, now: datetime) -> list[dict]:
    # one second apart so that no two stamps share a sort key
    return [{"date": (now + timedelta(seconds=i)).isoformat()} for i in range(count)]


def minimum_lifetime(state: LedgerState) -> int:
    return state.rewards_earned * STAMPS_PER_CARD + len(state.stamps)


def repair_lifetime(state: LedgerState) -> LedgerState:
    floor = minimum_lifetime(state)
    if state.lifetime_stamps < floor:
        return replace(state, lifetime_stamps=floor)
    return state


def scan_message(*, birthday_bonus: bool, reward_earned: bool, overflow: int) -> str:
    if reward_earned:
        noun = "stamp" if overflow == 1 else "stamps"
        text = f"Congratulations! Card complete, a new card starts with {overflow} {noun}."
        if birthday_bonus:
            text = "Happy birthday! " + text
        return text
    if birthday_bonus:
        return "Happy birthday! You received an extra stamp!"
    return "Stamp added successfully!"


# ============================================================
# SCAN (accrual)
# ============================================================

def apply_scan(state: LedgerState, *, dob: str | None, now: datetime) -> ScanOutcome:
    birthday_hit = is_birthday(dob, now) and state.birthday_bonus_year != now.year

    stamps_to_add = 1 + (BIRTHDAY_BONUS_STAMPS if birthday_hit else 0)

    state = repair_lifetime(state)

    stamps = list(state.stamps or [])
    projected = len(stamps) + stamps_to_add

    changes = {
        "lifetime_stamps": state.lifetime_stamps + stamps_to_add,
        "last_stamp_date": now,
    }

    if projected <= STAMPS_PER_CARD:
        changes["stamps"] = stamps + new_stamps(stamps_to_add, now)
        reward_earned = False
        overflow = None
    else:
        overflow = projected - STAMPS_PER_CARD
        changes.update(
            stamps=new_stamps(overflow, now),
            rewards_earned=state.rewards_earned + 1,
            available_rewards=state.available_rewards + 1,
            reward_claimed=True,
            last_redemption_date=now,
        )
        reward_earned = True

    if birthday_hit:
        changes["birthday_bonus_year"] = now.year

    new_state = replace(state, **changes)

    return ScanOutcome(
        state=new_state,
        stamps_added=stamps_to_add,
        reward_earned=reward_earned,
        birthday_bonus=birthday_hit,
        current_stamps=len(new_state.stamps),
        overflow_stamps=overflow,
        message=scan_message(
            birthday_bonus=birthday_hit,
            reward_earned=reward_earned,
            overflow=overflow or 0,
        ),
    )


# ============================================================
# REDEEM (staff QR, full card)
# ============================================================

def apply_redemption(state: LedgerState, *, now: datetime) -> RedemptionOutcome:
    if len(state.stamps or []) < STAMPS_PER_CARD:
        raise InvalidState(f"At least {STAMPS_PER_CARD} stamps are required to redeem a reward")

    state = repair_lifetime(state)

    # granted and consumed in the same step: available_rewards is left as is
    new_state = replace(
        state,
        stamps=[],
        rewards_earned=state.rewards_earned + 1,
        reward_claimed=True,
        last_redemption_date=now,
    )

    return RedemptionOutcome(
        state=new_state,
        rewards_earned=new_state.rewards_earned,
        lifetime_stamps=new_state.lifetime_stamps,
    )


# ============================================================
# CLAIM (customer consumes an available reward)
# ============================================================

def apply_claim(state: LedgerState, *, now: datetime) -> LedgerState:
    if (state.available_rewards or 0) <= 0:
        raise InvalidState("No rewards available to claim")

    return replace(
        state,
        available_rewards=state.available_rewards - 1,
        last_reward_claimed=now,
    )


def open_ledger(*, welcome_stamps: int, now: datetime) -> LedgerState:
    welcome_stamps = max(0, min(int(welcome_stamps), STAMPS_PER_CARD))
    return LedgerState(
        stamps=new_stamps(welcome_stamps, now),
        lifetime_stamps=welcome_stamps,
        received_free_stamps=welcome_stamps > 0,
        last_stamp_date=now if welcome_stamps else None,
    )
