"""
Admin dashboard

Folds the latest snapshot of the bookings feed, the site content document
and the content-version feed into one view. Every emission replaces the
corresponding slice wholesale, so applying the same snapshot twice leaves
the view unchanged.

All writes require a valid admin session from the PIN gate.
"""
import logging
import threading
from typing import Callable, Iterable, List, Optional

from app.core.errors import ReservationError
from app.core.feeds import Subscription
from app.core.security import AdminPinGate, AdminSession
from app.schemas.admin import DashboardView
from app.schemas.booking import BookingRecord
from app.schemas.content import SiteContent, SiteContentVersion, default_site_content
from app.services.booking.repository import BookingRepository
from app.services.content.store import ContentStore
from app.services.fares import format_usd

logger = logging.getLogger(__name__)


def build_view(
    bookings: List[BookingRecord],
    content: SiteContent,
    versions: List[SiteContentVersion],
    booking_error: Optional[str] = None,
    version_error: Optional[str] = None,
) -> DashboardView:
    """Dashboard view with its derived aggregates"""
    pending_count = sum(1 for b in bookings if b.status == "pending")
    paid_revenue = sum(b.estimated_fare for b in bookings if b.payment_status == "paid")
    return DashboardView(
        bookings=list(bookings),
        content=content,
        versions=list(versions),
        pending_count=pending_count,
        paid_revenue=paid_revenue,
        paid_revenue_display=format_usd(paid_revenue),
        booking_error=booking_error,
        version_error=version_error,
    )


class AdminDashboard:
    """Live admin view plus the admin write operations"""

    def __init__(
        self,
        bookings: BookingRepository,
        content: ContentStore,
        gate: AdminPinGate,
        session: AdminSession,
        on_change: Optional[Callable[[DashboardView], None]] = None,
    ):
        self._bookings = bookings
        self._content = content
        self._gate = gate
        self._session = session
        self._on_change = on_change
        self._subscriptions: List[Subscription] = []
        self._lock = threading.Lock()

        self._booking_rows: List[BookingRecord] = []
        self._site_content: SiteContent = default_site_content()
        self._versions: List[SiteContentVersion] = []
        self._booking_error: Optional[str] = None
        self._version_error: Optional[str] = None

    # ==================== Feed lifecycle ====================

    def open(self) -> "AdminDashboard":
        """Subscribe to the three feeds"""
        self._authorize()
        try:
            self._subscriptions.append(
                self._bookings.subscribe_bookings(self.apply_bookings, self._on_booking_error)
            )
            self._subscriptions.append(self._content.subscribe_content(self.apply_content))
            self._subscriptions.append(
                self._content.subscribe_versions(self.apply_versions, self._on_version_error)
            )
        except ReservationError:
            self.close()
            raise
        return self

    def close(self) -> None:
        for subscription in self._subscriptions:
            subscription.unsubscribe()
        self._subscriptions = []

    def __enter__(self) -> "AdminDashboard":
        return self.open()

    def __exit__(self, *exc_info) -> None:
        self.close()

    @property
    def subscribed(self) -> bool:
        return any(s.active for s in self._subscriptions)

    # ==================== Folding ====================

    def apply_bookings(self, bookings: List[BookingRecord]) -> None:
        with self._lock:
            self._booking_rows = list(bookings)
            self._booking_error = None
        self._emit()

    def apply_content(self, content: SiteContent) -> None:
        with self._lock:
            self._site_content = content
        self._emit()

    def apply_versions(self, versions: List[SiteContentVersion]) -> None:
        with self._lock:
            self._versions = list(versions)
            self._version_error = None
        self._emit()

    def _on_booking_error(self, error: Exception) -> None:
        with self._lock:
            self._booking_error = str(error)
        self._emit()

    def _on_version_error(self, error: Exception) -> None:
        with self._lock:
            self._version_error = str(error)
        self._emit()

    @property
    def view(self) -> DashboardView:
        with self._lock:
            return build_view(
                self._booking_rows,
                self._site_content,
                self._versions,
                self._booking_error,
                self._version_error,
            )

    def _emit(self) -> None:
        if self._on_change:
            self._on_change(self.view)

    # ==================== Writes ====================

    def _authorize(self) -> AdminSession:
        self._session = self._gate.verify(self._session.token)
        return self._session

    def update_booking_status(self, booking_id: str, status: str) -> None:
        self._authorize()
        self._bookings.update_booking_status(booking_id, status)

    def update_payment_status(self, booking_id: str, payment_status: str) -> None:
        self._authorize()
        self._bookings.update_payment_status(booking_id, payment_status)

    def save_content(self, draft: SiteContent, failed_images: Iterable[str] = ()) -> str:
        session = self._authorize()
        return self._content.save_content(draft, actor=session.actor, failed_images=failed_images)

    def restore_content(self, version_id: str, snapshot: Optional[SiteContent] = None) -> str:
        session = self._authorize()
        return self._content.restore_content(version_id, actor=session.actor, snapshot=snapshot)
