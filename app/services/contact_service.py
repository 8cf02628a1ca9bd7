import logging
import os
from datetime import datetime

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from app.errors import Conflict, InvalidArgument
from app.models.customer import Customer
from app.models.stamp_ledger import StampLedger
from app.services.ledger_service import create_ledger


logger = logging.getLogger(__name__)


def welcome_stamps() -> int:
    return int(os.getenv("WELCOME_STAMPS") or "2")


def get_customer(db: Session, customer_id: str):
    return db.query(Customer).filter(Customer.id == customer_id).first()


def normalize_dob(value: str | None) -> str | None:
    """
    Accepts "D/M", "DD/MM" or "DD/MM/YYYY" and keeps only "DD/MM".
    """
    v = (value or "").strip()
    if not v:
        return None

    parts = v.split("/")
    if len(parts) not in (2, 3):
        raise InvalidArgument("dob must be DD/MM")
    try:
        day, month = int(parts[0]), int(parts[1])
    except ValueError:
        raise InvalidArgument("dob must be DD/MM")
    if not (1 <= day <= 31 and 1 <= month <= 12):
        raise InvalidArgument("dob must be DD/MM")

    return f"{day:02d}/{month:02d}"


def _normalize_email(value: str | None) -> str | None:
    v = (value or "").strip().lower()
    return v or None


def _normalize_phone(value: str | None) -> str | None:
    v = "".join(ch for ch in (value or "") if ch.isdigit() or ch == "+")
    return v or None


def _check_duplicates(db: Session, customer_id: str, *, email: str | None, phone: str | None):
    if email:
        taken = (
            db.query(Customer.id)
            .filter(func.lower(Customer.email) == email)
            .filter(Customer.id != customer_id)
            .first()
        )
        if taken:
            raise Conflict("Email already registered")

    if phone:
        taken = (
            db.query(Customer.id)
            .filter(Customer.phone == phone)
            .filter(Customer.id != customer_id)
            .first()
        )
        if taken:
            raise Conflict("Phone number already registered")


def register_customer(db: Session, customer_id: str, payload: dict, *, now: datetime):
    """
    Create (or update) the caller's profile. A new customer gets a stamp
    card with the welcome grant; an existing one never gets it twice.
    """
    email = _normalize_email(payload.get("email"))
    phone = _normalize_phone(payload.get("phone"))
    _check_duplicates(db, customer_id, email=email, phone=phone)

    customer = get_customer(db, customer_id)
    created = customer is None

    if created:
        customer = Customer(id=customer_id, role="customer", fcm_tokens=[])
        db.add(customer)

    if payload.get("firstName") is not None:
        customer.first_name = payload["firstName"].strip()
    if payload.get("lastName") is not None:
        customer.last_name = payload["lastName"].strip()
    if email:
        customer.email = email
    if phone:
        customer.phone = phone
    if payload.get("dob") is not None:
        customer.dob = normalize_dob(payload["dob"])

    token = (payload.get("fcmToken") or "").strip()
    if token and token not in (customer.fcm_tokens or []):
        customer.fcm_tokens = list(customer.fcm_tokens or []) + [token]

    db.flush()

    has_ledger = db.query(StampLedger.customer_id).filter(StampLedger.customer_id == customer_id).first()
    if not has_ledger:
        create_ledger(db, customer_id, welcome_stamps=welcome_stamps(), now=now)

    logger.info("customer registered", extra={"customer_id": customer_id, "new_customer": created})

    return customer


def search_clients(db: Session, *, q: str | None = None, limit: int = 50, offset: int = 0):
    query = (
        db.query(Customer, StampLedger)
        .outerjoin(StampLedger, StampLedger.customer_id == Customer.id)
        .filter(Customer.role != "superuser")
    )

    if q and q.strip():
        like = f"%{q.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(Customer.first_name).like(like),
                func.lower(Customer.last_name).like(like),
                func.lower(Customer.email).like(like),
                Customer.phone.like(like),
            )
        )

    limit = max(1, min(limit, 200))
    offset = max(0, offset)

    return (
        query.order_by(Customer.created_at.desc(), Customer.id.asc())
        .offset(offset)
        .limit(limit)
        .all()
    )
