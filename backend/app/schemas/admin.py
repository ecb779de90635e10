"""
Admin dashboard schemas
"""
from datetime import datetime
from typing import List, Optional

from app.schemas.booking import ApiModel, BookingRecord
from app.schemas.content import SiteContent, SiteContentVersion


class PinRequest(ApiModel):
    pin: str


class AdminSessionResponse(ApiModel):
    token: str
    expires_at: datetime


class DashboardView(ApiModel):
    """Folded state of the three admin feeds"""
    bookings: List[BookingRecord]
    content: SiteContent
    versions: List[SiteContentVersion]
    pending_count: int
    paid_revenue: float
    paid_revenue_display: str
    booking_error: Optional[str] = None
    version_error: Optional[str] = None
