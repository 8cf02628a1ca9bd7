from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.db import get_db
from app.deps.auth import get_caller_id, get_current_customer, require_staff
from app.deps.clock import get_now
from app.errors import atomic
from app.models.customer import Customer
from app.schemas.customer import CustomerOut, CustomerRegister, LedgerOut
from app.services.contact_service import register_customer
from app.services.ledger_service import get_ledger


router = APIRouter(prefix="/customers", tags=["customers"])


@router.post("/register", response_model=CustomerOut)
def register(
    payload: CustomerRegister,
    caller_id: str = Depends(get_caller_id),
    now: datetime = Depends(get_now),
    db: Session = Depends(get_db),
):
    with atomic(db, detail="Error creating the customer profile"):
        customer = register_customer(db, caller_id, payload.model_dump(exclude_unset=True), now=now)

    db.refresh(customer)
    return customer


@router.get("/me/ledger", response_model=LedgerOut)
def read_my_ledger(
    customer: Customer = Depends(get_current_customer),
    db: Session = Depends(get_db),
):
    return get_ledger(db, customer.id)


@router.get("/{customer_id}/ledger", response_model=LedgerOut)
def read_customer_ledger(
    customer_id: str,
    staff: Customer = Depends(require_staff),
    db: Session = Depends(get_db),
):
    return get_ledger(db, customer_id)
