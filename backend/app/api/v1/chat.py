"""
Concierge chat endpoint
"""
from fastapi import APIRouter, Depends, Request
import asyncio
import logging

from app.api.deps import current_catalog, get_concierge, get_content_store
from app.core.security import get_client_ip, validate_ai_input
from app.schemas.chat import ChatRequest, ChatResponse
from app.services.chatbot.concierge import ConciergeService
from app.services.content.store import ContentStore

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    http_request: Request,
    concierge: ConciergeService = Depends(get_concierge),
    store: ContentStore = Depends(get_content_store),
):
    """
    One concierge turn. Always answers: without a Gemini key, or when
    Gemini fails, the rule-based reply is used.
    """
    message = validate_ai_input(request.message)
    logger.info(f"💬 Concierge message from {get_client_ip(http_request)}")

    catalog = await asyncio.to_thread(current_catalog, store)
    return await concierge.respond(request, message, catalog)
