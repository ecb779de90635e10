"""
Booking submission: validate, persist, then hand off to payment
"""
import asyncio
import logging
from typing import Optional

from app.core.errors import NotConfiguredError, PaymentError, SubmissionInProgressError
from app.schemas.booking import SubmissionResponse
from app.schemas.checkout import CheckoutRequest
from app.services.booking.form import BookingForm
from app.services.booking.repository import BookingRepository
from app.services.fares import format_usd
from app.services.payments.checkout import CheckoutService

logger = logging.getLogger(__name__)

SAVED_MESSAGE = "Booking request saved successfully. Our team will contact you shortly."
REDIRECT_MESSAGE = "Booking saved. Redirecting to secure checkout..."
PAYMENT_FAILED_MESSAGE = (
    "Your booking was saved, but payment could not start automatically. "
    "Our dispatch team will follow up to complete payment."
)


class BookingFlow:
    """Terminal action of the booking form"""

    def __init__(self, repository: BookingRepository, checkout: Optional[CheckoutService] = None):
        self.repository = repository
        self.checkout = checkout

    async def submit(self, form: BookingForm, start_payment: bool = True) -> SubmissionResponse:
        """
        Persist the booking and optionally start checkout.

        A payment failure is not an error here: the booking stays stored as
        pending/unpaid and the response carries `payment_error`.

        Raises:
            SubmissionInProgressError: If this form is already being submitted
            BookingValidationError: If any field is missing (nothing is stored)
            NotConfiguredError / StoreUnavailableError: If the booking could not be stored
        """
        if form.submitting:
            raise SubmissionInProgressError()

        record_data = form.to_record_data()
        form.submitting = True
        try:
            booking_id = await asyncio.to_thread(self.repository.create_booking, record_data)
            fare = record_data['estimated_fare']

            if not start_payment or self.checkout is None:
                return SubmissionResponse(
                    booking_id=booking_id,
                    estimated_fare=fare,
                    estimated_fare_display=format_usd(fare),
                    message=SAVED_MESSAGE,
                )

            request = CheckoutRequest(
                booking_id=booking_id,
                vehicle_id=record_data['vehicle_id'],
                service_type=record_data['service_type'],
                customer_name=record_data['customer_name'],
                customer_email=record_data['customer_email'],
            )
            try:
                url = await asyncio.to_thread(self.checkout.create_session, request, form.catalog)
            except (PaymentError, NotConfiguredError) as e:
                logger.warning(f"Booking {booking_id} saved without payment: {e.detail}")
                return SubmissionResponse(
                    booking_id=booking_id,
                    estimated_fare=fare,
                    estimated_fare_display=format_usd(fare),
                    message=PAYMENT_FAILED_MESSAGE,
                    payment_error=e.detail,
                )

            return SubmissionResponse(
                booking_id=booking_id,
                estimated_fare=fare,
                estimated_fare_display=format_usd(fare),
                message=REDIRECT_MESSAGE,
                redirect_url=url,
            )
        finally:
            form.submitting = False
