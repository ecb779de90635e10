"""
Public site content endpoint
"""
from fastapi import APIRouter, Depends
import asyncio
import logging

from app.api.deps import current_catalog, get_content_store
from app.schemas.content import SiteContent
from app.services.content.store import ContentStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=SiteContent)
async def get_site_content(store: ContentStore = Depends(get_content_store)):
    """Published site content; built-in defaults until an admin saves a version"""
    return await asyncio.to_thread(current_catalog, store)
