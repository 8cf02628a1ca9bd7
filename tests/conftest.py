import os
from datetime import datetime

os.environ.setdefault("DATABASE_URL", "sqlite://")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db import Base, get_db
from app.deps.clock import get_now
from app.main import app
from app.models.customer import Customer
from app.models.stamp_ledger import StampLedger


NOW = datetime(2026, 3, 14, 10, 0, 0)

engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


@pytest.fixture
def db():
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db):
    def override_get_db():
        session = TestingSessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_now] = lambda: NOW
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def make_customer(db, customer_id="cust-1", *, role="customer", dob=None, stamps=None, fcm_tokens=None, **ledger_fields):
    customer = Customer(
        id=customer_id,
        first_name="Giulia",
        last_name="Rossi",
        email=f"{customer_id}@example.com",
        role=role,
        dob=dob,
        fcm_tokens=fcm_tokens or [],
    )
    db.add(customer)

    if stamps is not None:
        ledger = StampLedger(
            customer_id=customer_id,
            stamps=[{"date": f"2026-01-01T10:00:{i:02d}"} for i in range(stamps)],
            lifetime_stamps=ledger_fields.pop("lifetime_stamps", stamps),
            rewards_earned=ledger_fields.pop("rewards_earned", 0),
            available_rewards=ledger_fields.pop("available_rewards", 0),
            **ledger_fields,
        )
        db.add(ledger)

    db.commit()
    return customer


@pytest.fixture
def staff(db):
    return make_customer(db, "staff-1", role="superuser")


STAFF_HEADERS = {"X-User-Id": "staff-1"}
