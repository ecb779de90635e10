"""
Stripe checkout endpoints
Checkout session handoff, return-page messages and the payment webhook
"""
from fastapi import APIRouter, Depends, Header, HTTPException, Query, Request, status
from fastapi.responses import JSONResponse
from typing import Literal, Optional
import asyncio
import logging

from app.api.deps import current_catalog, get_booking_repository, get_checkout_service, get_content_store
from app.core.errors import BookingNotFoundError, ReservationError
from app.schemas.checkout import CheckoutRequest, CheckoutResponse, CheckoutReturnResponse
from app.services.booking.repository import BookingRepository
from app.services.content.store import ContentStore
from app.services.payments.checkout import CheckoutService, checkout_return_message, paid_booking_id

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=CheckoutResponse)
async def create_checkout_session(
    request: CheckoutRequest,
    checkout: CheckoutService = Depends(get_checkout_service),
    store: ContentStore = Depends(get_content_store),
):
    """Returns `{url}` on success and `{error}` with the failure status otherwise"""
    try:
        catalog = await asyncio.to_thread(current_catalog, store)
        url = await asyncio.to_thread(checkout.create_session, request, catalog)
    except ReservationError as e:
        return JSONResponse(status_code=e.status_code, content={"error": e.detail})
    return CheckoutResponse(url=url)


@router.get("/return", response_model=CheckoutReturnResponse)
async def checkout_return(
    checkout_status: Literal["success", "cancelled"] = Query(..., alias="checkout"),
    booking_id: Optional[str] = Query(None, alias="bookingId"),
):
    """Message for the booking page after Stripe redirects back"""
    return CheckoutReturnResponse(
        status=checkout_status,
        booking_id=booking_id,
        message=checkout_return_message(checkout_status),
    )


@router.post("/webhook")
async def stripe_webhook(
    request: Request,
    stripe_signature: Optional[str] = Header(None, alias="Stripe-Signature"),
    checkout: CheckoutService = Depends(get_checkout_service),
    repository: BookingRepository = Depends(get_booking_repository),
):
    """Mark a booking paid when its checkout session completes"""
    payload = await request.body()
    try:
        event = checkout.parse_webhook(payload, stripe_signature)
    except ValueError as e:
        logger.warning(f"Rejected Stripe webhook: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid webhook payload")

    booking_id = paid_booking_id(event)
    if booking_id:
        try:
            await asyncio.to_thread(repository.update_payment_status, booking_id, "paid")
            logger.info(f"✅ Booking {booking_id} marked paid")
        except BookingNotFoundError:
            # Acknowledge anyway so Stripe stops retrying
            logger.warning(f"Webhook for unknown booking {booking_id}")

    return {"received": True}
