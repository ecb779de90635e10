"""
Concierge chat schemas
"""
from typing import List, Literal, Optional

from pydantic import Field

from app.schemas.booking import ApiModel


class ChatTurn(ApiModel):
    role: Literal["user", "assistant"]
    text: str


class ChatContext(ApiModel):
    """Live booking context sent along with each message"""
    booking_step: Optional[int] = Field(None, ge=1, le=3)
    service_type_label: Optional[str] = None
    passengers: Optional[int] = None
    selected_vehicle_name: Optional[str] = None
    estimated_fare: Optional[float] = None
    draft_id: Optional[str] = None


class ChatRequest(ApiModel):
    message: str = ""
    history: List[ChatTurn] = Field(default_factory=list)
    context: ChatContext = Field(default_factory=ChatContext)


class NavigationResult(ApiModel):
    requested_step: int
    granted: bool
    step: int
    error: Optional[str] = None


class ChatResponse(ApiModel):
    reply: str
    source: Literal["model", "fallback"] = "fallback"
    navigation: Optional[NavigationResult] = None
