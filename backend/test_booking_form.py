"""
Booking form state machine tests
"""
import itertools

import pytest

from app.core.errors import BookingValidationError
from app.services.booking.form import (
    STEP_CONFIRMATION,
    STEP_TRIP_DETAILS,
    STEP_VEHICLE_SELECTION,
    BookingForm,
)

TRIP_FIELDS = ["pickup_address", "dropoff_address", "service_date", "pickup_time"]
CONTACT_FIELDS = ["full_name", "email", "phone"]


# ==================== Trip details guard ====================

@pytest.mark.parametrize("empty", [
    combo
    for size in range(1, len(TRIP_FIELDS) + 1)
    for combo in itertools.combinations(TRIP_FIELDS, size)
])
def test_step_one_blocks_on_any_empty_trip_field(filled_form, empty):
    filled_form.update(**{name: "" for name in empty})
    filled_form.step = STEP_TRIP_DETAILS

    result = filled_form.next()

    assert not result.ok
    assert filled_form.step == STEP_TRIP_DETAILS
    # First missing field in form order is reported
    assert result.field == next(name for name in TRIP_FIELDS if name in empty)
    assert result.error.startswith("Can't continue to vehicle selection yet.")


def test_whitespace_only_counts_as_empty(filled_form):
    filled_form.update(pickup_address="   ")
    assert filled_form.go_to(STEP_VEHICLE_SELECTION).field == "pickup_address"


def test_step_one_passes_with_trip_details(filled_form):
    result = filled_form.next()
    assert result.ok
    assert filled_form.step == STEP_VEHICLE_SELECTION


# ==================== Vehicle guard ====================

def test_step_two_requires_vehicle(catalog):
    form = BookingForm(catalog)
    form.update(
        pickup_address="A", dropoff_address="B", service_date="2026-11-02", pickup_time="09:00"
    )
    assert form.next().ok

    result = form.next()
    assert not result.ok
    assert result.field == "vehicle_id"
    assert form.step == STEP_VEHICLE_SELECTION


def test_unknown_vehicle_is_rejected(filled_form):
    filled_form.update(vehicle_id="limo")
    result = filled_form.go_to(STEP_CONFIRMATION)
    assert not result.ok
    assert result.step == STEP_VEHICLE_SELECTION
    assert "not in our fleet" in result.error


# ==================== Jumps ====================

def test_forward_jump_runs_every_guard(catalog):
    form = BookingForm(catalog)
    form.update(vehicle_id="sedan")

    result = form.go_to(STEP_CONFIRMATION)

    # Vehicle is fine but trip details are not; the form stays on step 1
    assert not result.ok
    assert form.step == STEP_TRIP_DETAILS
    assert result.field == "pickup_address"


def test_backward_moves_are_always_allowed(filled_form):
    assert filled_form.go_to(STEP_CONFIRMATION).ok
    filled_form.update(pickup_address="", full_name="")

    assert filled_form.go_to(STEP_TRIP_DETAILS).ok
    assert filled_form.step == STEP_TRIP_DETAILS


def test_back_from_first_step_is_a_no_op(catalog):
    form = BookingForm(catalog)
    result = form.back()
    assert not result.ok
    assert form.step == STEP_TRIP_DETAILS


def test_unknown_step(filled_form):
    result = filled_form.go_to(7)
    assert not result.ok
    assert filled_form.step == STEP_TRIP_DETAILS


# ==================== Fare and submission ====================

def test_estimated_fare_follows_vehicle_and_service(filled_form):
    assert filled_form.estimated_fare == 240.0
    filled_form.update(vehicle_id="sprinter", service_type="hourly")
    assert filled_form.estimated_fare == 660.0


def test_no_vehicle_means_zero_fare(catalog):
    assert BookingForm(catalog).estimated_fare == 0.0


@pytest.mark.parametrize("missing", CONTACT_FIELDS)
def test_submit_requires_contact_fields(filled_form, missing):
    filled_form.update(**{missing: ""})
    with pytest.raises(BookingValidationError) as exc_info:
        filled_form.to_record_data()
    assert exc_info.value.field == missing


@pytest.mark.parametrize("email", ["jordan", "jordan@", "jordan@example", "a b@example.com"])
def test_submit_rejects_malformed_email(filled_form, email):
    filled_form.update(email=email)
    with pytest.raises(BookingValidationError) as exc_info:
        filled_form.validate_for_submit()
    assert exc_info.value.field == "email"


@pytest.mark.parametrize("passengers", [0, 15])
def test_passenger_count_bounds(filled_form, passengers):
    filled_form.update(passengers=passengers)
    with pytest.raises(BookingValidationError) as exc_info:
        filled_form.validate_for_submit()
    assert exc_info.value.field == "passengers"


def test_record_data(filled_form):
    filled_form.update(special_instructions="  ")
    data = filled_form.to_record_data()

    assert data["vehicle_name"] == "Luxury Sedan"
    assert data["estimated_fare"] == 240.0
    assert data["customer_email"] == "jordan@example.com"
    assert data["special_instructions"] is None
    assert data["source"] == "web-booking"
    assert "status" not in data


def test_unknown_field_update_rejected(catalog):
    with pytest.raises(ValueError):
        BookingForm(catalog).update(flight_number="AA100")
