"""
Virtual concierge for the booking page
- Two-tier reply strategy: Gemini when configured, deterministic rules otherwise
- Keyword intent gate (no LLM) for the rule-based tier
- Step navigation requests go through the booking form's own guards
"""

from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Literal, Optional

import httpx

from app.core.config import settings
from app.schemas.chat import ChatContext, ChatRequest, ChatResponse, ChatTurn, NavigationResult
from app.schemas.content import FleetItem, SiteContent
from app.services.booking.drafts import DraftNotFoundError, DraftStore, draft_store
from app.services.booking.form import BookingForm
from app.services.fares import format_usd

logger = logging.getLogger(__name__)

GEMINI_API_URL = "https://generativelanguage.googleapis.com/v1beta/models/{model}:generateContent"

HISTORY_LIMIT = 10

DEFAULT_REPLY = (
    "I can help you choose the right vehicle, complete each booking step, and finish checkout smoothly."
)

# -------------------------
# Utility Functions
# -------------------------

def normalize_whitespace(s: str) -> str:
    return re.sub(r"\s+", " ", s.strip())


def seat_capacity(seats_text: str) -> int:
    """'Up to 14 passengers' -> 14"""
    numbers = [int(n) for n in re.findall(r"\d+", seats_text or "")]
    return max(numbers) if numbers else 0


def recommend_vehicle(fleet: List[FleetItem], passengers: int) -> Optional[FleetItem]:
    """Smallest class that seats the party; the largest class when none does"""
    if not fleet:
        return None
    by_capacity = sorted(fleet, key=lambda item: seat_capacity(item.seats))
    for item in by_capacity:
        if seat_capacity(item.seats) >= passengers:
            return item
    return by_capacity[-1]


def requested_step(message: str) -> Optional[int]:
    """'take me to step 3' -> 3"""
    match = re.search(r"\bstep\s*([123])\b", message.lower())
    return int(match.group(1)) if match else None


# -------------------------
# Intent Gate (No LLM)
# -------------------------

IntentKind = Literal["vehicle", "price", "payment", "steps", "general"]


@dataclass
class IntentGateResult:
    kind: IntentKind


class IntentGate:
    """Keyword intent classification for the rule-based tier"""

    VEHICLE = re.compile(r"\b(vehicles?|cars?|suv|sedan|van|sprinter|fleet)\b")
    PRICE = re.compile(r"\b(price|prices|fare|fares|cost|costs|how much|total)\b")
    PAYMENT = re.compile(r"\b(pay|paying|payment|checkout|card|stripe)\b")
    STEPS = re.compile(r"\b(step|steps|next|how do i book)\b")

    def check(self, user_message: str) -> IntentGateResult:
        msg = normalize_whitespace(user_message.lower())

        if self.VEHICLE.search(msg):
            return IntentGateResult(kind="vehicle")
        if self.PRICE.search(msg):
            return IntentGateResult(kind="price")
        if self.PAYMENT.search(msg):
            return IntentGateResult(kind="payment")
        if self.STEPS.search(msg):
            return IntentGateResult(kind="steps")
        return IntentGateResult(kind="general")


# -------------------------
# Reply Generators
# -------------------------

class RuleBasedReplyGenerator:
    """Deterministic replies; always available"""

    available = True

    def __init__(self, intent_gate: Optional[IntentGate] = None) -> None:
        self.intent_gate = intent_gate or IntentGate()

    def generate(self, message: str, context: ChatContext, catalog: SiteContent) -> str:
        kind = self.intent_gate.check(message).kind

        if kind == "vehicle":
            passengers = max(context.passengers or 1, 1)
            vehicle = recommend_vehicle(catalog.fleet, passengers)
            if vehicle is None:
                return "Dispatch will recommend the right vehicle once you submit your trip details."
            largest = max(catalog.fleet, key=lambda item: seat_capacity(item.seats))
            if vehicle.id == largest.id and len(catalog.fleet) > 1:
                return (
                    f"For a group of {passengers}, our {vehicle.name} ({vehicle.seats.lower()}) "
                    f"is the most comfortable choice."
                )
            return f"For a party of {passengers}, the {vehicle.name} ({vehicle.seats.lower()}) is the best fit."

        if kind == "price":
            if context.estimated_fare and context.estimated_fare > 0:
                return (
                    f"Your current estimated total is {format_usd(context.estimated_fare)}. "
                    f"Final pricing is confirmed at checkout."
                )
            return "Final pricing is confirmed during checkout and reviewed by dispatch after submission."

        if kind == "payment":
            return (
                "After you confirm, you're sent to a secure checkout page to pay by card. "
                "If payment can't start, your booking is still saved and dispatch will follow up."
            )

        if kind == "steps":
            return "I can guide you step-by-step: trip details, vehicle selection, then confirmation and payment."

        return DEFAULT_REPLY


class GeminiReplyGenerator:
    """Gemini-backed replies; unavailable without an API key"""

    def __init__(
        self,
        api_key: Optional[str],
        model: str,
        timeout: float = 8.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self.transport = transport

    @property
    def available(self) -> bool:
        return bool(self.api_key)

    def _system_prompt(self, context: ChatContext, catalog: SiteContent) -> str:
        knowledge = {
            'fleet': [
                {'name': v.name, 'class': v.type, 'seats': v.seats, 'luggage': v.luggage}
                for v in catalog.fleet
            ],
            'steps': ["trip details", "vehicle selection", "confirmation and payment"],
            'service_types': ["one way", "round trip", "hourly (3-hour minimum)"],
        }
        return "\n".join([
            "You are the virtual concierge for a premium black car service.",
            "Primary goal: help the customer finish their booking quickly and confidently.",
            "Use only the business context below and paraphrase naturally.",
            "Never share phone numbers, email addresses or direct contact details.",
            "Never invent exact prices unless the booking context includes an estimate.",
            "If unsure, say dispatch confirms the final details after submission.",
            "Keep answers short, polished and in US English. Plain text only.",
            "",
            f"Business knowledge: {json.dumps(knowledge)}",
            f"Live booking context: {context.model_dump_json(exclude_none=True, exclude={'draft_id'})}",
        ])

    def _contents(self, message: str, history: List[ChatTurn]) -> List[Dict[str, Any]]:
        contents = [
            {"role": "model" if turn.role == "assistant" else "user", "parts": [{"text": turn.text}]}
            for turn in history[-HISTORY_LIMIT:]
        ]
        contents.append({"role": "user", "parts": [{"text": message}]})
        return contents

    async def generate(
        self,
        message: str,
        history: List[ChatTurn],
        context: ChatContext,
        catalog: SiteContent,
    ) -> Optional[str]:
        """Reply text, or None when Gemini is unavailable or fails"""
        if not self.api_key:
            return None

        payload = {
            "systemInstruction": {"parts": [{"text": self._system_prompt(context, catalog)}]},
            "contents": self._contents(message, history),
            "generationConfig": {"temperature": 0.4, "maxOutputTokens": 300},
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                resp = await client.post(
                    GEMINI_API_URL.format(model=self.model),
                    params={"key": self.api_key},
                    json=payload,
                )

            if resp.status_code != 200:
                logger.warning(f"Gemini API returned {resp.status_code}")
                return None

            body = resp.json()
            candidates = (body.get("candidates") or []) if isinstance(body, dict) else []
            if not candidates:
                return None

            parts = (candidates[0].get("content") or {}).get("parts") or []
            text = "".join(part.get("text") or "" for part in parts).strip()
            return text or None

        except httpx.TimeoutException:
            logger.warning("Gemini API timeout")
            return None
        except (httpx.HTTPError, ValueError, KeyError, IndexError, AttributeError, TypeError) as e:
            logger.error(f"Gemini reply error: {e}")
            return None


# -------------------------
# Concierge Service
# -------------------------

class ConciergeService:
    """One stateless chat turn"""

    def __init__(
        self,
        primary: GeminiReplyGenerator,
        fallback: RuleBasedReplyGenerator,
        drafts: DraftStore,
    ) -> None:
        self.primary = primary
        self.fallback = fallback
        self.drafts = drafts

    async def respond(self, request: ChatRequest, message: str, catalog: SiteContent) -> ChatResponse:
        """
        Args:
            request: Chat request (history and booking context)
            message: Validated user message
            catalog: Current site content, for fleet knowledge
        """
        context = request.context
        form = self._find_draft(context.draft_id)
        navigation = self._navigate(message, context, form)
        if form is not None:
            context = self._context_from_form(form, context)

        reply: Optional[str] = None
        source = "fallback"
        if self.primary.available:
            reply = await self.primary.generate(message, request.history, context, catalog)
            if reply:
                source = "model"
            else:
                logger.info("Concierge falling back to rule-based reply")
        if not reply:
            reply = self.fallback.generate(message, context, catalog)

        if navigation is not None:
            if navigation.granted:
                reply = f"{reply} Taking you to step {navigation.step}."
            else:
                reply = f"{reply} {navigation.error}"

        return ChatResponse(reply=reply, source=source, navigation=navigation)

    def _find_draft(self, draft_id: Optional[str]) -> Optional[BookingForm]:
        if not draft_id:
            return None
        try:
            return self.drafts.get(draft_id)
        except DraftNotFoundError:
            logger.info(f"Concierge context references unknown draft {draft_id}")
            return None

    def _navigate(
        self,
        message: str,
        context: ChatContext,
        form: Optional[BookingForm],
    ) -> Optional[NavigationResult]:
        step = requested_step(message)
        if step is None or not context.draft_id:
            return None

        if form is None:
            return NavigationResult(
                requested_step=step,
                granted=False,
                step=context.booking_step or 1,
                error="Your booking session has expired. Please start the form again.",
            )

        result = form.go_to(step)
        return NavigationResult(
            requested_step=step,
            granted=result.ok,
            step=result.step,
            error=result.error,
        )

    @staticmethod
    def _context_from_form(form: BookingForm, context: ChatContext) -> ChatContext:
        vehicle = form.vehicle
        return context.model_copy(update={
            'booking_step': form.step,
            'service_type_label': form.service_type_label,
            'passengers': form.draft.passengers,
            'selected_vehicle_name': vehicle.name if vehicle else None,
            'estimated_fare': form.estimated_fare,
        })


# -------------------------
# Dependency Injection
# -------------------------

def build_concierge() -> ConciergeService:
    """
    Build the concierge with all dependencies.
    Use this in FastAPI dependency injection.
    """
    return ConciergeService(
        primary=GeminiReplyGenerator(
            settings.GEMINI_API_KEY,
            settings.GEMINI_MODEL,
            timeout=settings.GEMINI_TIMEOUT_SECONDS,
        ),
        fallback=RuleBasedReplyGenerator(),
        drafts=draft_store,
    )
