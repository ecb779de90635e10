"""
Booking endpoints
Customer-facing booking form: one-shot submission and server-held drafts
"""
from fastapi import APIRouter, Depends, HTTPException, Query, status
import asyncio
import logging

from app.api.deps import current_catalog, get_booking_flow, get_content_store, get_draft_store
from app.schemas.booking import (
    BookingDraftFields,
    BookingSubmitRequest,
    DraftResponse,
    StepRequest,
    StepResponse,
    SubmissionResponse,
)
from app.services.booking.drafts import DraftNotFoundError, DraftStore
from app.services.booking.flow import BookingFlow
from app.services.booking.form import BookingForm, TransitionResult
from app.services.content.store import ContentStore

logger = logging.getLogger(__name__)

router = APIRouter()


# ==================== Helper Functions ====================

def draft_to_response(form: BookingForm) -> DraftResponse:
    return DraftResponse(**form.summary())


def transition_to_response(result: TransitionResult) -> StepResponse:
    return StepResponse(ok=result.ok, step=result.step, error=result.error, field=result.field)


def load_draft(drafts: DraftStore, draft_id: str) -> BookingForm:
    try:
        return drafts.get(draft_id)
    except DraftNotFoundError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Booking session not found or expired. Please start again."
        )


# ==================== One-shot submission ====================

@router.post("", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_booking(
    request: BookingSubmitRequest,
    flow: BookingFlow = Depends(get_booking_flow),
    store: ContentStore = Depends(get_content_store),
):
    """
    Validate and store a complete booking, then start checkout.

    Nothing is stored when a field is missing (422). A checkout failure
    still returns 201 with `paymentError` set; the booking stays pending/unpaid.
    """
    form = BookingForm(await asyncio.to_thread(current_catalog, store))
    form.update(**request.model_dump(exclude={'start_payment'}))
    response = await flow.submit(form, start_payment=request.start_payment)
    logger.info(f"Booking {response.booking_id} submitted ({response.estimated_fare_display})")
    return response


# ==================== Drafts ====================

@router.post("/drafts", response_model=DraftResponse, status_code=status.HTTP_201_CREATED)
async def create_draft(
    store: ContentStore = Depends(get_content_store),
    drafts: DraftStore = Depends(get_draft_store),
):
    """Start a booking form at step 1"""
    form = drafts.create(await asyncio.to_thread(current_catalog, store))
    return draft_to_response(form)


@router.get("/drafts/{draft_id}", response_model=DraftResponse)
async def get_draft(draft_id: str, drafts: DraftStore = Depends(get_draft_store)):
    return draft_to_response(load_draft(drafts, draft_id))


@router.patch("/drafts/{draft_id}", response_model=DraftResponse)
async def update_draft(
    draft_id: str,
    patch: BookingDraftFields,
    drafts: DraftStore = Depends(get_draft_store),
):
    """Apply field edits; the step does not change"""
    form = load_draft(drafts, draft_id)
    form.apply(patch)
    return draft_to_response(form)


@router.post("/drafts/{draft_id}/step", response_model=StepResponse)
async def go_to_step(
    draft_id: str,
    request: StepRequest,
    drafts: DraftStore = Depends(get_draft_store),
):
    """
    Jump to a step. Going back is always allowed; going forward runs the
    exit guard of every step in between and stops at the first failure.
    """
    form = load_draft(drafts, draft_id)
    return transition_to_response(form.go_to(request.step))


@router.post("/drafts/{draft_id}/next", response_model=StepResponse)
async def next_step(draft_id: str, drafts: DraftStore = Depends(get_draft_store)):
    form = load_draft(drafts, draft_id)
    return transition_to_response(form.next())


@router.post("/drafts/{draft_id}/back", response_model=StepResponse)
async def previous_step(draft_id: str, drafts: DraftStore = Depends(get_draft_store)):
    form = load_draft(drafts, draft_id)
    return transition_to_response(form.back())


@router.post("/drafts/{draft_id}/submit", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def submit_draft(
    draft_id: str,
    start_payment: bool = Query(True, alias="startPayment"),
    drafts: DraftStore = Depends(get_draft_store),
    flow: BookingFlow = Depends(get_booking_flow),
):
    """Submit the draft; it is discarded once the booking is stored"""
    form = load_draft(drafts, draft_id)
    response = await flow.submit(form, start_payment=start_payment)
    drafts.discard(draft_id)
    logger.info(f"Draft {draft_id} submitted as booking {response.booking_id}")
    return response


@router.delete("/drafts/{draft_id}", status_code=status.HTTP_204_NO_CONTENT)
async def discard_draft(draft_id: str, drafts: DraftStore = Depends(get_draft_store)):
    drafts.discard(draft_id)
