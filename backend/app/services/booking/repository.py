"""
Booking repository on Firestore

Writes are last-write-wins; there is no concurrency token. Two admins
changing the same booking at once may overwrite each other.
"""
import logging
from typing import Any, Callable, Dict, List, Optional

from google.api_core import exceptions as gcp_exceptions
from google.cloud import firestore

from app.core import feeds
from app.core.errors import BookingNotFoundError, StoreUnavailableError
from app.core.firebase import Collections, require_db
from app.core.security import safe_log_error
from app.schemas.booking import BOOKING_STATUSES, PAYMENT_STATUSES, BookingRecord

logger = logging.getLogger(__name__)


class BookingRepository:
    """Create/list/update bookings"""

    def __init__(self, client):
        self._client = client

    def _collection(self):
        return require_db(self._client).collection(Collections.BOOKINGS)

    def _ordered(self):
        return self._collection().order_by('created_at', direction=firestore.Query.DESCENDING)

    @staticmethod
    def _decode(snapshots) -> List[BookingRecord]:
        return [BookingRecord.from_document(doc.id, doc.to_dict() or {}) for doc in snapshots]

    def create_booking(self, data: Dict[str, Any]) -> str:
        """
        Store a new booking.

        Status fields always start at pending/unpaid; the id and creation
        timestamp are assigned by the store.

        Returns:
            The new booking id
        """
        collection = self._collection()
        record = {
            **data,
            'status': 'pending',
            'payment_status': 'unpaid',
            'created_at': firestore.SERVER_TIMESTAMP,
        }
        try:
            doc_ref = collection.document()
            doc_ref.set(record)
        except gcp_exceptions.GoogleAPICallError as e:
            safe_log_error("Error creating booking", e)
            raise StoreUnavailableError(f"Unable to save booking: {e.message}")

        logger.info(f"✅ Booking created: {doc_ref.id} ({data.get('vehicle_id')}, {data.get('service_type')})")
        return doc_ref.id

    def get_booking(self, booking_id: str) -> BookingRecord:
        collection = self._collection()
        try:
            doc = collection.document(booking_id).get()
        except gcp_exceptions.GoogleAPICallError as e:
            safe_log_error(f"Error loading booking {booking_id}", e)
            raise StoreUnavailableError(f"Unable to load booking: {e.message}")
        if not doc.exists:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        return BookingRecord.from_document(doc.id, doc.to_dict() or {})

    def list_bookings(
        self,
        status: Optional[str] = None,
        payment_status: Optional[str] = None,
    ) -> List[BookingRecord]:
        """All bookings, newest first, optionally filtered"""
        query = self._ordered()
        try:
            bookings = self._decode(query.stream())
        except gcp_exceptions.GoogleAPICallError as e:
            safe_log_error("Error listing bookings", e)
            raise StoreUnavailableError(f"Unable to load bookings: {e.message}")

        # Filtering in memory keeps the single created_at index sufficient
        if status:
            bookings = [b for b in bookings if b.status == status]
        if payment_status:
            bookings = [b for b in bookings if b.payment_status == payment_status]
        return bookings

    def subscribe_bookings(
        self,
        on_next: Callable[[List[BookingRecord]], None],
        on_error: Optional[Callable[[Exception], None]] = None,
    ) -> feeds.Subscription:
        """Live feed of all bookings, newest first; emits the full list on every change"""
        return feeds.watch("bookings", self._ordered(), self._decode, on_next, on_error)

    def update_booking_status(self, booking_id: str, status: str) -> None:
        if status not in BOOKING_STATUSES:
            raise ValueError(f"Invalid booking status: {status}")
        self._update_field(booking_id, 'status', status)

    def update_payment_status(self, booking_id: str, payment_status: str) -> None:
        if payment_status not in PAYMENT_STATUSES:
            raise ValueError(f"Invalid payment status: {payment_status}")
        self._update_field(booking_id, 'payment_status', payment_status)

    def _update_field(self, booking_id: str, field: str, value: str) -> None:
        collection = self._collection()
        try:
            collection.document(booking_id).update({field: value})
        except gcp_exceptions.NotFound:
            raise BookingNotFoundError(f"Booking {booking_id} not found")
        except gcp_exceptions.GoogleAPICallError as e:
            safe_log_error(f"Error updating {field} on booking {booking_id}", e)
            raise StoreUnavailableError(f"Unable to update booking: {e.message}")

        logger.info(f"Booking {booking_id}: {field} -> {value}")
