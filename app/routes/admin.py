from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps.auth import require_staff
from app.models.customer import Customer
from app.models.reward_event import RewardEvent
from app.schemas.customer import ClientSummaryOut
from app.schemas.reward_event import RewardEventOut
from app.services.contact_service import search_clients


router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/clients", response_model=list[ClientSummaryOut])
def list_clients(
    q: str | None = None,
    limit: int = 50,
    offset: int = 0,
    staff: Customer = Depends(require_staff),
    db: Session = Depends(get_db),
):
    rows = search_clients(db, q=q, limit=limit, offset=offset)
    return [
        {
            "id": customer.id,
            "name": customer.display_name,
            "email": customer.email,
            "phone": customer.phone,
            "dob": customer.dob,
            "currentStamps": len(ledger.stamps or []) if ledger else 0,
            "lifetimeStamps": ledger.lifetime_stamps if ledger else 0,
            "rewardsEarned": ledger.rewards_earned if ledger else 0,
            "availableRewards": ledger.available_rewards if ledger else 0,
        }
        for customer, ledger in rows
    ]


@router.get("/rewards-log", response_model=list[RewardEventOut])
def rewards_log(
    customerId: str | None = None,
    kind: str | None = None,
    limit: int = 100,
    offset: int = 0,
    staff: Customer = Depends(require_staff),
    db: Session = Depends(get_db),
):
    q = db.query(RewardEvent)
    if customerId:
        q = q.filter(RewardEvent.customer_id == customerId)
    if kind:
        q = q.filter(RewardEvent.kind == kind.upper())

    limit = max(1, min(limit, 500))
    offset = max(0, offset)

    return (
        q.order_by(RewardEvent.created_at.desc())
        .offset(offset)
        .limit(limit)
        .all()
    )
