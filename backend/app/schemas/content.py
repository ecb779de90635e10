"""
Editable site content schemas and the default content
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from app.schemas.booking import ApiModel

ContentVersionAction = Literal["save", "restore"]


class FleetItem(ApiModel):
    """One vehicle class in the catalog"""
    id: str
    name: str
    type: str
    seats: str
    luggage: str
    image: str
    description: str = ""
    base_fare: float


class HomeContent(ApiModel):
    hero_badge: str
    hero_title_line1: str
    hero_title_line2: str
    hero_description: str
    primary_cta: str
    secondary_cta: str


class BookingPageContent(ApiModel):
    form_title: str
    form_subtitle: str


class SiteContent(ApiModel):
    home: HomeContent
    booking: BookingPageContent
    fleet: List[FleetItem]

    def vehicle(self, vehicle_id: Optional[str]) -> Optional[FleetItem]:
        for item in self.fleet:
            if item.id == vehicle_id:
                return item
        return None


class SiteContentVersion(ApiModel):
    id: str
    snapshot: SiteContent
    action: Optional[ContentVersionAction] = None
    created_at: Optional[datetime] = None
    created_by: Optional[str] = None
    source_version_id: Optional[str] = None


class SaveContentRequest(ApiModel):
    content: SiteContent
    failed_images: List[str] = Field(
        default_factory=list,
        description="Fleet ids whose image failed to load in the admin preview"
    )


class RestoreContentRequest(ApiModel):
    snapshot: Optional[SiteContent] = None


DEFAULT_SITE_CONTENT: Dict[str, Any] = {
    'home': {
        'hero_badge': "PREMIUM SERVICE IN WESTERN NEW YORK",
        'hero_title_line1': "Travel with distinction.",
        'hero_title_line2': "Arrive with precision.",
        'hero_description': (
            "Elegance, discretion and professionalism in every mile. Specialists in executive "
            "transportation, airport transfers and private event mobility."
        ),
        'primary_cta': "Rent Your Vehicle",
        'secondary_cta': "View Services",
    },
    'booking': {
        'form_title': "Reserve Your Vehicle",
        'form_subtitle': (
            "Complete your trip details and our dispatch team will confirm availability promptly."
        ),
    },
    'fleet': [
        {
            'id': "sedan",
            'name': "Luxury Sedan",
            'type': "Executive Class",
            'seats': "Up to 3 passengers",
            'luggage': "2 suitcases",
            'image': "https://images.unsplash.com/photo-1552519507-da3b142c6e3d?auto=format&fit=crop&q=80&w=1200",
            'base_fare': 120.0,
            'description': (
                "Perfect for executive transfers and individual business travel with total comfort and privacy."
            ),
        },
        {
            'id': "suv",
            'name': "Premium SUV",
            'type': "First Class",
            'seats': "Up to 6 passengers",
            'luggage': "5 suitcases",
            'image': "https://images.unsplash.com/photo-1533473359331-0135ef1b58bf?auto=format&fit=crop&q=80&w=1200",
            'base_fare': 145.0,
            'description': (
                "Ample space for families and small groups with premium comfort and elegant arrival presence."
            ),
        },
        {
            'id': "sprinter",
            'name': "Executive Van",
            'type': "Group Class",
            'seats': "Up to 14 passengers",
            'luggage': "10 suitcases",
            'image': "https://images.unsplash.com/photo-1541899481282-d53bffe3c35d?auto=format&fit=crop&q=80&w=1200",
            'base_fare': 220.0,
            'description': (
                "The ideal option for event logistics, executive teams, and large group transportation."
            ),
        },
    ],
}


def default_site_content() -> SiteContent:
    return SiteContent.model_validate(DEFAULT_SITE_CONTENT)


def normalize_site_content(data: Optional[Dict[str, Any]]) -> SiteContent:
    """
    Fill gaps in stored content with defaults.

    Sections merge key by key; fleet entries fall back per index to the
    default entry at the same position (or the first one). A missing fleet
    gets the default catalog; a stored empty fleet stays empty.
    """
    data = data or {}
    defaults = DEFAULT_SITE_CONTENT
    default_fleet = defaults['fleet']

    fleet = []
    stored_fleet = data.get('fleet')
    for index, item in enumerate(default_fleet if stored_fleet is None else stored_fleet):
        fallback = default_fleet[index] if index < len(default_fleet) else default_fleet[0]
        merged = {key: item.get(key) if item.get(key) is not None else value
                  for key, value in fallback.items()}
        merged['base_fare'] = float(merged['base_fare'])
        fleet.append(merged)

    return SiteContent.model_validate({
        'home': {**defaults['home'], **(data.get('home') or {})},
        'booking': {**defaults['booking'], **(data.get('booking') or {})},
        'fleet': fleet,
    })
