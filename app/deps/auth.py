from fastapi import Depends, Header
from sqlalchemy.orm import Session

from app.db import get_db
from app.errors import NotFound, PermissionDenied, Unauthenticated
from app.models.customer import Customer


def get_caller_id(
    x_user_id: str | None = Header(default=None, alias="X-User-Id"),
) -> str:
    # uid of the authenticated caller, set by the identity gateway
    caller = (x_user_id or "").strip()
    if not caller:
        raise Unauthenticated()
    return caller


def get_current_customer(
    caller_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
) -> Customer:
    customer = db.query(Customer).filter(Customer.id == caller_id).first()
    if not customer:
        raise NotFound("User not found")
    return customer


def require_staff(
    caller_id: str = Depends(get_caller_id),
    db: Session = Depends(get_db),
) -> Customer:
    staff = db.query(Customer).filter(Customer.id == caller_id).first()
    if not staff or staff.role != "superuser":
        raise PermissionDenied()
    return staff
