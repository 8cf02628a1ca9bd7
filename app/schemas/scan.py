from typing import Optional

from pydantic import BaseModel


class ScanRequest(BaseModel):
    # bare uid or the profile URL encoded in the customer's QR code
    scannedUserId: Optional[str] = None
