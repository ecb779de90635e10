"""
FastAPI dependencies shared by the v1 routers
"""
import logging
from functools import lru_cache

from fastapi import Depends

from app.core.config import settings
from app.core.errors import NotConfiguredError, StoreUnavailableError
from app.core.firebase import get_db
from app.schemas.content import SiteContent, default_site_content
from app.services.booking.drafts import DraftStore, draft_store
from app.services.booking.flow import BookingFlow
from app.services.booking.repository import BookingRepository
from app.services.chatbot.concierge import ConciergeService, build_concierge
from app.services.content.store import ContentStore
from app.services.payments.checkout import CheckoutService

logger = logging.getLogger(__name__)


def get_booking_repository(client=Depends(get_db)) -> BookingRepository:
    return BookingRepository(client)


def get_content_store(client=Depends(get_db)) -> ContentStore:
    return ContentStore(client)


def get_checkout_service() -> CheckoutService:
    return CheckoutService(
        settings.STRIPE_SECRET_KEY,
        settings.APP_URL,
        webhook_secret=settings.STRIPE_WEBHOOK_SECRET,
    )


def get_booking_flow(
    repository: BookingRepository = Depends(get_booking_repository),
    checkout: CheckoutService = Depends(get_checkout_service),
) -> BookingFlow:
    return BookingFlow(repository, checkout)


def get_draft_store() -> DraftStore:
    return draft_store


@lru_cache()
def get_concierge() -> ConciergeService:
    return build_concierge()


def current_catalog(store: ContentStore) -> SiteContent:
    """Site content for pricing and recommendations; defaults when the store can't serve it"""
    try:
        return store.get_content()
    except (NotConfiguredError, StoreUnavailableError) as e:
        logger.warning(f"Using default site content: {e.detail}")
        return default_site_content()
