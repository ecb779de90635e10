"""
Checkout handoff schemas
"""
from typing import Literal, Optional

from app.schemas.booking import ApiModel, ServiceType


class CheckoutRequest(ApiModel):
    booking_id: str
    vehicle_id: str
    service_type: ServiceType
    customer_name: Optional[str] = None
    customer_email: Optional[str] = None


class CheckoutResponse(ApiModel):
    url: str


class CheckoutReturnResponse(ApiModel):
    status: Literal["success", "cancelled"]
    booking_id: Optional[str] = None
    message: str
