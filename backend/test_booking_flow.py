"""
Booking persistence, submission and draft tests
"""
import asyncio
from types import SimpleNamespace

import pytest
import stripe

from app.core.errors import (
    BookingNotFoundError,
    BookingValidationError,
    NotConfiguredError,
    StoreUnavailableError,
    SubmissionInProgressError,
)
from app.services.booking.drafts import DraftNotFoundError, DraftStore
from app.services.booking.flow import (
    PAYMENT_FAILED_MESSAGE,
    REDIRECT_MESSAGE,
    SAVED_MESSAGE,
    BookingFlow,
)
from app.services.booking.repository import BookingRepository
from app.services.payments.checkout import CheckoutService


@pytest.fixture
def repository(mock_db):
    return BookingRepository(mock_db)


def stored_bookings(mock_db):
    return mock_db.collection("bookings").get()


# ==================== Repository ====================

def test_new_bookings_start_pending_and_unpaid(repository, filled_form):
    booking_id = repository.create_booking(filled_form.to_record_data())

    booking = repository.get_booking(booking_id)
    assert booking.status == "pending"
    assert booking.payment_status == "unpaid"
    assert booking.created_at is not None
    assert booking.estimated_fare == 240.0


def test_list_is_newest_first(repository, filled_form):
    ids = []
    for name in ("First", "Second", "Third"):
        filled_form.update(full_name=name)
        ids.append(repository.create_booking(filled_form.to_record_data()))

    listed = repository.list_bookings()

    assert [b.id for b in listed] == list(reversed(ids))
    assert [b.customer_name for b in listed] == ["Third", "Second", "First"]


def test_status_update_changes_only_that_field(repository, filled_form, mock_db):
    booking_id = repository.create_booking(filled_form.to_record_data())
    before = mock_db.collection("bookings").document(booking_id).get().to_dict()

    repository.update_booking_status(booking_id, "confirmed")

    after = mock_db.collection("bookings").document(booking_id).get().to_dict()
    assert after.pop("status") == "confirmed"
    before.pop("status")
    assert after == before


def test_list_filters(repository, filled_form):
    first = repository.create_booking(filled_form.to_record_data())
    second = repository.create_booking(filled_form.to_record_data())
    repository.update_booking_status(first, "confirmed")
    repository.update_payment_status(second, "paid")

    assert [b.id for b in repository.list_bookings(status="confirmed")] == [first]
    assert [b.id for b in repository.list_bookings(payment_status="paid")] == [second]


def test_invalid_status_values_rejected(repository, filled_form):
    booking_id = repository.create_booking(filled_form.to_record_data())
    with pytest.raises(ValueError):
        repository.update_booking_status(booking_id, "archived")
    with pytest.raises(ValueError):
        repository.update_payment_status(booking_id, "partial")


def test_update_missing_booking(repository):
    with pytest.raises(BookingNotFoundError):
        repository.update_booking_status("nope", "confirmed")


def test_outage_surfaces_as_store_unavailable(repository, filled_form, mock_db):
    mock_db.simulate_outage()
    with pytest.raises(StoreUnavailableError):
        repository.create_booking(filled_form.to_record_data())
    with pytest.raises(StoreUnavailableError):
        repository.list_bookings()


def test_unconfigured_store():
    with pytest.raises(NotConfiguredError):
        BookingRepository(None).list_bookings()


def test_booking_feed_emits_full_list(repository, filled_form):
    emissions = []
    subscription = repository.subscribe_bookings(emissions.append)

    repository.create_booking(filled_form.to_record_data())
    subscription.unsubscribe()
    repository.create_booking(filled_form.to_record_data())

    assert [len(e) for e in emissions] == [0, 1]
    assert not subscription.active


# ==================== Submission flow ====================

def fake_stripe_session(monkeypatch, url="https://checkout.stripe.com/c/pay/cs_test_1"):
    calls = []

    def create(**params):
        calls.append(params)
        return SimpleNamespace(id="cs_test_1", url=url)

    monkeypatch.setattr(stripe.checkout.Session, "create", create)
    return calls


def test_submit_without_payment(repository, filled_form, mock_db):
    response = asyncio.run(BookingFlow(repository).submit(filled_form, start_payment=False))

    assert response.message == SAVED_MESSAGE
    assert response.estimated_fare_display == "$240.00"
    assert len(stored_bookings(mock_db)) == 1
    assert not filled_form.submitting


@pytest.mark.parametrize("missing", ["full_name", "email", "phone"])
def test_invalid_submission_stores_nothing(repository, filled_form, mock_db, missing):
    filled_form.update(**{missing: ""})
    with pytest.raises(BookingValidationError):
        asyncio.run(BookingFlow(repository).submit(filled_form))
    assert stored_bookings(mock_db) == []


def test_submit_redirects_to_checkout(repository, filled_form, monkeypatch):
    calls = fake_stripe_session(monkeypatch)
    checkout = CheckoutService("sk_test_123", "https://wnyblackcar.com")

    response = asyncio.run(BookingFlow(repository, checkout).submit(filled_form))

    assert response.message == REDIRECT_MESSAGE
    assert response.redirect_url == "https://checkout.stripe.com/c/pay/cs_test_1"
    assert calls[0]["line_items"][0]["price_data"]["unit_amount"] == 24000
    assert calls[0]["metadata"]["bookingId"] == response.booking_id


def test_payment_failure_keeps_booking(repository, filled_form, monkeypatch):
    def create(**params):
        raise stripe.APIConnectionError("Network is unreachable")

    monkeypatch.setattr(stripe.checkout.Session, "create", create)
    checkout = CheckoutService("sk_test_123", "https://wnyblackcar.com")

    response = asyncio.run(BookingFlow(repository, checkout).submit(filled_form))

    assert response.message == PAYMENT_FAILED_MESSAGE
    assert response.payment_error
    assert response.redirect_url is None
    booking = repository.get_booking(response.booking_id)
    assert (booking.status, booking.payment_status) == ("pending", "unpaid")


def test_unconfigured_payment_keeps_booking(repository, filled_form):
    checkout = CheckoutService(None, "https://wnyblackcar.com")
    response = asyncio.run(BookingFlow(repository, checkout).submit(filled_form))

    assert response.message == PAYMENT_FAILED_MESSAGE
    assert "STRIPE_SECRET_KEY" in response.payment_error
    assert repository.get_booking(response.booking_id).payment_status == "unpaid"


def test_double_submit_rejected(repository, filled_form, mock_db):
    filled_form.submitting = True
    with pytest.raises(SubmissionInProgressError):
        asyncio.run(BookingFlow(repository).submit(filled_form))
    assert stored_bookings(mock_db) == []


def test_store_failure_releases_form(repository, filled_form, mock_db):
    mock_db.simulate_outage()
    with pytest.raises(StoreUnavailableError):
        asyncio.run(BookingFlow(repository).submit(filled_form, start_payment=False))
    assert not filled_form.submitting


# ==================== Drafts ====================

def test_draft_lifecycle(catalog):
    drafts = DraftStore(ttl_minutes=5)
    form = drafts.create(catalog)

    assert drafts.get(form.draft_id) is form
    drafts.discard(form.draft_id)
    with pytest.raises(DraftNotFoundError):
        drafts.get(form.draft_id)


def test_expired_drafts_are_dropped(catalog):
    drafts = DraftStore(ttl_minutes=0)
    form = drafts.create(catalog)
    with pytest.raises(DraftNotFoundError):
        drafts.get(form.draft_id)
    assert len(drafts) == 0
