"""
Stripe checkout handoff

Turns a stored booking into a hosted Stripe Checkout session. Payment
confirmation arrives later, out of band, through the webhook.
"""
import json
import logging
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import stripe

from app.core.errors import BookingValidationError, NotConfiguredError, PaymentError
from app.schemas.booking import SERVICE_TYPE_LABELS
from app.schemas.checkout import CheckoutRequest
from app.schemas.content import SiteContent
from app.services.fares import estimate_fare, to_minor_units

logger = logging.getLogger(__name__)

# Delayed payment methods complete first and succeed later
PAID_EVENTS = ("checkout.session.completed", "checkout.session.async_payment_succeeded")

CHECKOUT_RETURN_MESSAGES = {
    "success": "Payment received. Dispatch will confirm your reservation shortly.",
    "cancelled": "Checkout was cancelled. Your booking is saved and remains unpaid.",
}


class CheckoutService:
    """Creates Stripe Checkout sessions priced from the fleet catalog"""

    def __init__(
        self,
        secret_key: Optional[str],
        app_url: str,
        webhook_secret: Optional[str] = None,
    ):
        self.secret_key = secret_key
        self.app_url = app_url.rstrip('/')
        self.webhook_secret = webhook_secret

    @property
    def configured(self) -> bool:
        return bool(self.secret_key)

    def _return_url(self, status: str, booking_id: str) -> str:
        return f"{self.app_url}/booking?{urlencode({'checkout': status, 'bookingId': booking_id})}"

    def create_session(self, request: CheckoutRequest, catalog: SiteContent) -> str:
        """
        Create a hosted checkout session.

        Returns:
            The checkout URL to redirect the customer to

        Raises:
            NotConfiguredError: If STRIPE_SECRET_KEY is missing
            BookingValidationError: If the vehicle is not in the catalog
            PaymentError: If Stripe rejects the request
        """
        if not self.secret_key:
            raise NotConfiguredError("Stripe is not configured. Missing STRIPE_SECRET_KEY.")

        vehicle = catalog.vehicle(request.vehicle_id)
        if vehicle is None:
            raise BookingValidationError("vehicle_id", "Invalid vehicle or service type.")

        amount = estimate_fare(vehicle.base_fare, request.service_type)
        unit_amount = to_minor_units(amount)
        if unit_amount <= 0:
            raise BookingValidationError("vehicle_id", "Invalid checkout amount.")

        params: Dict[str, Any] = {
            'mode': "payment",
            'success_url': self._return_url("success", request.booking_id),
            'cancel_url': self._return_url("cancelled", request.booking_id),
            'line_items': [{
                'quantity': 1,
                'price_data': {
                    'currency': "usd",
                    'unit_amount': unit_amount,
                    'product_data': {
                        'name': f"{vehicle.name} · {SERVICE_TYPE_LABELS[request.service_type]}",
                        'description': "WNY Black Car premium reservation",
                    },
                },
            }],
            'metadata': {
                'bookingId': request.booking_id,
                'vehicleId': request.vehicle_id,
                'serviceType': request.service_type,
                'customerName': request.customer_name or "",
                'customerEmail': request.customer_email or "",
            },
        }
        if request.customer_email:
            params['customer_email'] = request.customer_email

        try:
            session = stripe.checkout.Session.create(api_key=self.secret_key, **params)
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout failed for booking {request.booking_id}: {e.user_message or e}")
            raise PaymentError(e.user_message or str(e) or PaymentError.default_detail)

        if not session.url:
            raise PaymentError("Stripe did not return a checkout URL.")

        logger.info(f"Checkout session {session.id} created for booking {request.booking_id} ({unit_amount} cents)")
        return session.url

    def parse_webhook(self, payload: bytes, signature: Optional[str]) -> Dict[str, Any]:
        """
        Verify the Stripe signature and decode the event as plain JSON.

        Raises:
            NotConfiguredError: If STRIPE_WEBHOOK_SECRET is missing
            ValueError: If the payload or signature is invalid
        """
        if not self.webhook_secret:
            raise NotConfiguredError("Stripe webhook is not configured. Missing STRIPE_WEBHOOK_SECRET.")
        body = payload.decode("utf-8")
        try:
            stripe.WebhookSignature.verify_header(body, signature or "", self.webhook_secret)
        except stripe.SignatureVerificationError:
            raise ValueError("Invalid signature")
        return json.loads(body)


def paid_booking_id(event: Dict[str, Any]) -> Optional[str]:
    """Booking id for a checkout session that has been paid, None for anything else"""
    if event.get("type") not in PAID_EVENTS:
        return None
    session = event["data"]["object"]
    if session.get("payment_status") != "paid":
        return None
    return (session.get("metadata") or {}).get("bookingId")


def checkout_return_message(status: str) -> str:
    return CHECKOUT_RETURN_MESSAGES[status]
