from sqlalchemy import Column, JSON, String, TIMESTAMP
from sqlalchemy.sql import func
from app.db import Base


class Customer(Base):
    __tablename__ = "customers"

    # uid issued by the identity provider
    id = Column(String(128), primary_key=True)

    first_name = Column(String(100))
    last_name = Column(String(100))
    email = Column(String(255), index=True)
    phone = Column(String(50), index=True)

    dob = Column(String(5))      # DD/MM, no year

    role = Column(String(20), nullable=False, default="customer")  # customer / superuser

    fcm_tokens = Column(JSON, default=list)

    created_at = Column(TIMESTAMP, server_default=func.now())
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())

    @property
    def display_name(self) -> str:
        name = f"{self.first_name or ''} {self.last_name or ''}".strip()
        return name or "Unknown"
