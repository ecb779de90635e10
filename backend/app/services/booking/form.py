"""
Booking form state machine

Three linear steps: trip details -> vehicle selection -> confirmation.
Forward moves run the guard of every step being left; backward moves are
always allowed. Navigation requested on the customer's behalf (e.g. by the
concierge chat) goes through the same guards and is never forced.
"""
import logging
import re
import uuid
from dataclasses import asdict, dataclass, fields
from typing import Any, Callable, Dict, List, Optional

from app.core.errors import BookingValidationError
from app.schemas.booking import SERVICE_TYPE_LABELS, BookingDraftFields
from app.schemas.content import FleetItem, SiteContent
from app.services.fares import estimate_fare, format_usd

logger = logging.getLogger(__name__)

# -------------------------
# Step Definition
# -------------------------

STEP_TRIP_DETAILS = 1
STEP_VEHICLE_SELECTION = 2
STEP_CONFIRMATION = 3

STEP_ORDER = [STEP_TRIP_DETAILS, STEP_VEHICLE_SELECTION, STEP_CONFIRMATION]

STEP_NAMES = {
    STEP_TRIP_DETAILS: "trip details",
    STEP_VEHICLE_SELECTION: "vehicle selection",
    STEP_CONFIRMATION: "confirmation",
}

MIN_PASSENGERS = 1
MAX_PASSENGERS = 14

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


@dataclass
class BookingDraft:
    """Client-side draft; lives only as long as the form session"""
    service_type: str = "one-way"
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


@dataclass
class GuardFailure:
    field: str
    message: str


@dataclass
class TransitionResult:
    ok: bool
    step: int
    error: Optional[str] = None
    field: Optional[str] = None


def _blank(value: Optional[str]) -> bool:
    return not (value or "").strip()


class BookingForm:
    """One booking form session"""

    def __init__(self, catalog: SiteContent, draft_id: Optional[str] = None):
        self.draft_id = draft_id or uuid.uuid4().hex
        self.catalog = catalog
        self.draft = BookingDraft()
        self.step = STEP_TRIP_DETAILS
        self.submitting = False

    # -------------------------
    # Field updates
    # -------------------------

    def update(self, **changes: Any) -> None:
        """Set draft fields; None values are ignored"""
        known = {f.name for f in fields(BookingDraft)}
        for name, value in changes.items():
            if name not in known:
                raise ValueError(f"Unknown booking field: {name}")
            if value is not None:
                setattr(self.draft, name, value)

    def apply(self, patch: BookingDraftFields) -> None:
        self.update(**patch.model_dump(exclude_none=True))

    @property
    def vehicle(self) -> Optional[FleetItem]:
        return self.catalog.vehicle(self.draft.vehicle_id)

    @property
    def estimated_fare(self) -> float:
        vehicle = self.vehicle
        return estimate_fare(vehicle.base_fare if vehicle else None, self.draft.service_type)

    @property
    def service_type_label(self) -> str:
        return SERVICE_TYPE_LABELS.get(self.draft.service_type, self.draft.service_type)

    # -------------------------
    # Guards
    # -------------------------

    def _trip_details_failure(self) -> Optional[GuardFailure]:
        checks = [
            ("pickup_address", "Please enter the pickup address."),
            ("dropoff_address", "Please enter the drop-off address."),
            ("service_date", "Please select a service date."),
            ("pickup_time", "Please select a pickup time."),
        ]
        for field_name, message in checks:
            if _blank(getattr(self.draft, field_name)):
                return GuardFailure(field_name, message)
        return None

    def _vehicle_failure(self) -> Optional[GuardFailure]:
        if _blank(self.draft.vehicle_id):
            return GuardFailure("vehicle_id", "Please select a vehicle.")
        if self.vehicle is None:
            return GuardFailure("vehicle_id", f"Vehicle '{self.draft.vehicle_id}' is not in our fleet.")
        return None

    def _contact_failure(self) -> Optional[GuardFailure]:
        if _blank(self.draft.full_name):
            return GuardFailure("full_name", "Please enter your full name.")
        if _blank(self.draft.email):
            return GuardFailure("email", "Please enter your email address.")
        if not EMAIL_PATTERN.match(self.draft.email.strip()):
            return GuardFailure("email", "Please enter a valid email address.")
        if _blank(self.draft.phone):
            return GuardFailure("phone", "Please enter your phone number.")
        if not MIN_PASSENGERS <= int(self.draft.passengers) <= MAX_PASSENGERS:
            return GuardFailure(
                "passengers",
                f"Passengers must be between {MIN_PASSENGERS} and {MAX_PASSENGERS}."
            )
        return None

    def _exit_guard(self, step: int) -> Callable[[], Optional[GuardFailure]]:
        return {
            STEP_TRIP_DETAILS: self._trip_details_failure,
            STEP_VEHICLE_SELECTION: self._vehicle_failure,
            STEP_CONFIRMATION: self._contact_failure,
        }[step]

    def validation_errors(self) -> List[GuardFailure]:
        """Every failing guard, in step order"""
        failures = [self._exit_guard(step)() for step in STEP_ORDER]
        return [failure for failure in failures if failure]

    # -------------------------
    # Navigation
    # -------------------------

    def go_to(self, target: int) -> TransitionResult:
        """Move to `target`, running the guard of every step left on the way forward"""
        if target not in STEP_ORDER:
            return TransitionResult(False, self.step, f"Unknown step {target}.")

        if target <= self.step:
            self.step = target
            return TransitionResult(True, self.step)

        for step in range(self.step, target):
            failure = self._exit_guard(step)()
            if failure:
                logger.info(
                    f"Draft {self.draft_id}: blocked {self.step} -> {target} "
                    f"(missing {failure.field})"
                )
                return TransitionResult(
                    False,
                    self.step,
                    f"Can't continue to {STEP_NAMES[target]} yet. {failure.message}",
                    failure.field,
                )

        self.step = target
        return TransitionResult(True, self.step)

    def next(self) -> TransitionResult:
        if self.step == STEP_CONFIRMATION:
            return TransitionResult(False, self.step, "This is the last step. Submit your booking.")
        return self.go_to(self.step + 1)

    def back(self) -> TransitionResult:
        if self.step == STEP_TRIP_DETAILS:
            return TransitionResult(False, self.step, "You're already at the first step.")
        return self.go_to(self.step - 1)

    # -------------------------
    # Submission
    # -------------------------

    def validate_for_submit(self) -> None:
        """
        Raises:
            BookingValidationError: For the first failing field
        """
        errors = self.validation_errors()
        if errors:
            raise BookingValidationError(errors[0].field, errors[0].message)

    def to_record_data(self) -> Dict[str, Any]:
        """Firestore fields for a new booking (status fields are set by the repository)"""
        self.validate_for_submit()
        vehicle = self.vehicle
        data = asdict(self.draft)
        return {
            'service_type': data['service_type'],
            'service_date': data['service_date'].strip(),
            'pickup_time': data['pickup_time'].strip(),
            'pickup_address': data['pickup_address'].strip(),
            'dropoff_address': data['dropoff_address'].strip(),
            'passengers': int(data['passengers']),
            'vehicle_id': vehicle.id,
            'vehicle_name': vehicle.name,
            'estimated_fare': self.estimated_fare,
            'customer_name': data['full_name'].strip(),
            'customer_email': data['email'].strip(),
            'customer_phone': data['phone'].strip(),
            'special_instructions': (data['special_instructions'] or '').strip() or None,
            'source': 'web-booking',
        }

    def to_fields(self) -> BookingDraftFields:
        return BookingDraftFields(**asdict(self.draft))

    def summary(self) -> Dict[str, Any]:
        vehicle = self.vehicle
        fare = self.estimated_fare
        return {
            'draft_id': self.draft_id,
            'step': self.step,
            'fields': self.to_fields(),
            'vehicle_name': vehicle.name if vehicle else None,
            'estimated_fare': fare,
            'estimated_fare_display': format_usd(fare),
            'submitting': self.submitting,
        }
