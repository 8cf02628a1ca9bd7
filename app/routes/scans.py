from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps.auth import require_staff
from app.deps.clock import get_now
from app.errors import atomic
from app.models.customer import Customer
from app.schemas.scan import ScanRequest
from app.services.ledger_service import process_scan
from app.services.qr_service import extract_user_id


router = APIRouter(prefix="/scans", tags=["scans"])


@router.post("")
def scan_customer(
    payload: ScanRequest,
    staff: Customer = Depends(require_staff),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    customer_id = extract_user_id(payload.scannedUserId)

    with atomic(db, detail="Error while processing the QR code scan"):
        outcome = process_scan(db, customer_id, now=now, staff_id=staff.id)

    response = {
        "success": True,
        "stampsAdded": outcome.stamps_added,
        "message": outcome.message,
        "currentStamps": outcome.current_stamps,
        "rewardEarned": outcome.reward_earned,
        "birthdayBonus": outcome.birthday_bonus,
    }
    if outcome.reward_earned:
        response["overflowStamps"] = outcome.overflow_stamps
    return response
