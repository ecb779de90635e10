"""
Booking request/response schemas
"""
from datetime import datetime
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

ServiceType = Literal["one-way", "round-trip", "hourly"]
BookingStatus = Literal["pending", "confirmed", "completed", "cancelled"]
PaymentStatus = Literal["unpaid", "paid", "refunded"]

BOOKING_STATUSES = ("pending", "confirmed", "completed", "cancelled")
PAYMENT_STATUSES = ("unpaid", "paid", "refunded")
SERVICE_TYPE_LABELS = {
    "one-way": "One Way",
    "round-trip": "Round Trip",
    "hourly": "Hourly",
}


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python and Firestore"""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class BookingDraftFields(ApiModel):
    """Partial update of a booking draft (all fields optional)"""
    service_type: Optional[ServiceType] = None
    service_date: Optional[str] = None
    pickup_time: Optional[str] = None
    pickup_address: Optional[str] = None
    dropoff_address: Optional[str] = None
    passengers: Optional[int] = None
    vehicle_id: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    special_instructions: Optional[str] = None


class BookingSubmitRequest(ApiModel):
    """One-shot booking submission (the whole form in one request)"""
    service_type: ServiceType = "one-way"
    service_date: str = ""
    pickup_time: str = ""
    pickup_address: str = ""
    dropoff_address: str = ""
    passengers: int = 2
    vehicle_id: Optional[str] = None
    full_name: str = ""
    email: str = ""
    phone: str = ""
    special_instructions: Optional[str] = None
    start_payment: bool = True


class BookingRecord(ApiModel):
    """Persisted booking"""
    id: str
    service_type: ServiceType
    service_date: str
    pickup_time: str
    pickup_address: str
    dropoff_address: str
    passengers: int
    vehicle_id: str
    vehicle_name: str = ""
    estimated_fare: float = Field(..., ge=0)
    customer_name: str
    customer_email: str
    customer_phone: str
    special_instructions: Optional[str] = None
    status: BookingStatus = "pending"
    payment_status: PaymentStatus = "unpaid"
    source: str = "web-booking"
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, doc_id: str, data: Dict[str, Any]) -> "BookingRecord":
        """Build from a Firestore document, tolerating missing fields"""
        return cls(
            id=doc_id,
            service_type=data.get('service_type') or "one-way",
            service_date=data.get('service_date', ''),
            pickup_time=data.get('pickup_time', ''),
            pickup_address=data.get('pickup_address', ''),
            dropoff_address=data.get('dropoff_address', ''),
            passengers=int(data.get('passengers') or 1),
            vehicle_id=data.get('vehicle_id', ''),
            vehicle_name=data.get('vehicle_name', ''),
            estimated_fare=max(float(data.get('estimated_fare') or 0), 0.0),
            customer_name=data.get('customer_name', ''),
            customer_email=data.get('customer_email', ''),
            customer_phone=data.get('customer_phone', ''),
            special_instructions=data.get('special_instructions'),
            status=data.get('status') or "pending",
            payment_status=data.get('payment_status') or "unpaid",
            source=data.get('source', 'web-booking'),
            created_at=data.get('created_at'),
        )


class BookingStatusUpdate(ApiModel):
    status: BookingStatus


class PaymentStatusUpdate(ApiModel):
    payment_status: PaymentStatus


class SubmissionResponse(ApiModel):
    """Outcome of a successful persist; payment may still have failed"""
    booking_id: str
    estimated_fare: float
    estimated_fare_display: str
    message: str
    redirect_url: Optional[str] = None
    payment_error: Optional[str] = None


class StepRequest(ApiModel):
    step: int = Field(..., ge=1, le=3)


class StepResponse(ApiModel):
    ok: bool
    step: int
    error: Optional[str] = None
    field: Optional[str] = None


class DraftResponse(ApiModel):
    draft_id: str
    step: int
    fields: BookingDraftFields
    vehicle_name: Optional[str] = None
    estimated_fare: float
    estimated_fare_display: str
    submitting: bool = False
