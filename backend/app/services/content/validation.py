"""
Fleet validation run before any content save
"""
from typing import Dict, Iterable, List

from pydantic import HttpUrl, TypeAdapter, ValidationError

from app.core.errors import ContentValidationError
from app.schemas.content import FleetItem

_http_url = TypeAdapter(HttpUrl)


def is_valid_image_url(value: str) -> bool:
    """True for syntactically valid http/https URLs"""
    if not value or value != value.strip():
        return False
    try:
        _http_url.validate_python(value)
    except ValidationError:
        return False
    return True


def fleet_issues(fleet: List[FleetItem], failed_images: Iterable[str] = ()) -> List[Dict[str, str]]:
    """
    Every problem in the fleet, one entry per offending field.

    Args:
        fleet: Fleet entries about to be saved
        failed_images: Ids whose image the admin preview could not load
    """
    failed = set(failed_images)
    issues = []
    seen = set()

    for index, item in enumerate(fleet):
        label = item.id or f"#{index + 1}"
        if not item.id.strip():
            issues.append({'id': label, 'field': 'id', 'message': "Vehicle id is required."})
        elif item.id in seen:
            issues.append({'id': label, 'field': 'id', 'message': "Vehicle id is duplicated."})
        seen.add(item.id)

        if not item.base_fare > 0:
            issues.append({'id': label, 'field': 'base_fare', 'message': "Price must be greater than 0."})

        if not is_valid_image_url(item.image):
            issues.append({'id': label, 'field': 'image', 'message': "Image must be a valid http(s) URL."})
        elif item.id in failed:
            issues.append({'id': label, 'field': 'image', 'message': "Image failed to load."})

    return issues


def ensure_valid_fleet(fleet: List[FleetItem], failed_images: Iterable[str] = ()) -> None:
    """
    Raises:
        ContentValidationError: Naming every offending entry
    """
    issues = fleet_issues(fleet, failed_images)
    if issues:
        raise ContentValidationError(issues)
