"""
In-memory booking form sessions

Drafts are never written to Firestore. They disappear after an idle TTL
or once submitted.
"""
import logging
import threading
from datetime import datetime, timedelta
from typing import Dict, Optional, Tuple

from app.core.config import settings
from app.core.firebase import utcnow
from app.schemas.content import SiteContent
from app.services.booking.form import BookingForm

logger = logging.getLogger(__name__)


class DraftNotFoundError(KeyError):
    pass


class DraftStore:
    """Booking forms keyed by draft id"""

    def __init__(self, ttl_minutes: int = settings.DRAFT_TTL_MINUTES):
        self._ttl = timedelta(minutes=ttl_minutes)
        self._drafts: Dict[str, Tuple[BookingForm, datetime]] = {}
        self._lock = threading.Lock()

    def create(self, catalog: SiteContent) -> BookingForm:
        form = BookingForm(catalog)
        with self._lock:
            self._purge_expired()
            self._drafts[form.draft_id] = (form, utcnow())
        logger.info(f"Draft {form.draft_id} created")
        return form

    def get(self, draft_id: Optional[str]) -> BookingForm:
        """
        Raises:
            DraftNotFoundError: If the draft is unknown or expired
        """
        with self._lock:
            entry = self._drafts.get(draft_id) if draft_id else None
            if entry is None:
                raise DraftNotFoundError(draft_id)
            form, touched_at = entry
            if utcnow() - touched_at > self._ttl:
                del self._drafts[draft_id]
                raise DraftNotFoundError(draft_id)
            self._drafts[draft_id] = (form, utcnow())
            return form

    def discard(self, draft_id: str) -> None:
        with self._lock:
            self._drafts.pop(draft_id, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._drafts)

    def _purge_expired(self) -> None:
        now = utcnow()
        expired = [d for d, (_, touched) in self._drafts.items() if now - touched > self._ttl]
        for draft_id in expired:
            del self._drafts[draft_id]
        if expired:
            logger.info(f"Purged {len(expired)} expired drafts")


draft_store = DraftStore()
