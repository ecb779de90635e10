"""
Error taxonomy for the reservation backend

Services raise these; the API layer converts them to HTTP responses
(see app.main). Each class carries the status code it maps to.
"""
from typing import Any, Dict, List, Optional


class ReservationError(Exception):
    """Base class for every handled failure"""

    status_code = 500
    default_detail = "Something went wrong."

    def __init__(self, detail: Optional[str] = None):
        self.detail = detail or self.default_detail
        super().__init__(self.detail)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail}


class BookingValidationError(ReservationError):
    """A required booking field is missing or invalid"""

    status_code = 422
    default_detail = "Invalid booking details."

    def __init__(self, field: str, detail: str):
        self.field = field
        super().__init__(detail)

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail, "field": self.field}


class NotConfiguredError(ReservationError):
    """A backing service has no credentials"""

    status_code = 503
    default_detail = "Service is not configured."


class StoreUnavailableError(ReservationError):
    """The document store rejected or failed a read/write"""

    status_code = 502
    default_detail = "The booking store is unavailable right now."


class BookingNotFoundError(ReservationError):
    status_code = 404
    default_detail = "Booking not found."


class VersionNotFoundError(ReservationError):
    status_code = 404
    default_detail = "Content version not found."


class VersionMismatchError(ReservationError):
    """A restore request carried content that differs from the stored version"""

    status_code = 409
    default_detail = "The supplied snapshot does not match the stored version."


class ContentValidationError(ReservationError):
    """Fleet entries failed validation; nothing was saved"""

    status_code = 422

    def __init__(self, issues: List[Dict[str, str]]):
        self.issues = issues
        offending = sorted({issue["id"] for issue in issues})
        super().__init__(f"Content not saved. Fix fleet entries: {', '.join(offending)}")

    @property
    def offending_ids(self) -> List[str]:
        return sorted({issue["id"] for issue in self.issues})

    def to_dict(self) -> Dict[str, Any]:
        return {"detail": self.detail, "issues": self.issues}


class PaymentError(ReservationError):
    status_code = 502
    default_detail = "Unable to create checkout session."


class AdminLockedError(ReservationError):
    status_code = 401
    default_detail = "Admin PIN required."


class SubmissionInProgressError(ReservationError):
    status_code = 409
    default_detail = "This booking is already being submitted."
