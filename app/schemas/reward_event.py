from datetime import datetime
from typing import Optional

from uuid import UUID

from pydantic import BaseModel


class RewardEventOut(BaseModel):
    id: UUID
    customer_id: str

    kind: str
    method: str

    staff_id: Optional[str] = None
    stamps_before: Optional[int] = None

    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
