from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps.auth import get_current_customer, require_staff
from app.deps.clock import get_now
from app.errors import atomic
from app.models.customer import Customer
from app.schemas.scan import ScanRequest
from app.services.ledger_service import claim_reward, redeem_reward
from app.services.qr_service import extract_user_id


router = APIRouter(prefix="/rewards", tags=["rewards"])


@router.post("/redeem")
def redeem_customer_reward(
    payload: ScanRequest,
    staff: Customer = Depends(require_staff),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    customer_id = extract_user_id(payload.scannedUserId)

    with atomic(db, detail="Error while redeeming the reward"):
        outcome = redeem_reward(db, customer_id, now=now, staff_id=staff.id)

    return {
        "success": True,
        "rewardsEarned": outcome.rewards_earned,
        "lifetimeStamps": outcome.lifetime_stamps,
    }


@router.post("/claim")
def claim_available_reward(
    customer: Customer = Depends(get_current_customer),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    with atomic(db, detail="Error claiming reward"):
        ledger = claim_reward(db, customer.id, now=now)
        remaining = ledger.available_rewards

    return {
        "success": True,
        "message": "Reward claimed successfully!",
        "remainingRewards": remaining,
    }
