from datetime import datetime
from typing import Any, Dict, List, Tuple

from .database import JOB_STATUSES, USER_TYPES

REQUIRED_STR_FIELDS = ["title", "customer_id"]
OPTIONAL_STR_FIELDS = [
    "id",
    "description",
    "category_id",
    "status",
    "city",
    "state",
    "featured_image_url",
]
PRICE_FIELDS = ["fixed_price", "budget_min", "budget_max"]
TIMESTAMP_FIELDS = ["created_at", "deadline"]

TITLE_MIN_LENGTH = 3
TITLE_MAX_LENGTH = 200


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _is_number(v: Any) -> bool:
    return isinstance(v, (int, float)) and not isinstance(v, bool)


def _valid_timestamp(v: str) -> bool:
    try:
        datetime.fromisoformat(v)
        return True
    except ValueError:
        return False


def validate_listing(data: Dict[str, Any]) -> List[str]:
    """
    Returns a list of validation error messages. Empty list means valid.
    """
    errors: List[str] = []

    for f in REQUIRED_STR_FIELDS:
        if f not in data:
            errors.append(f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            errors.append(f"Field '{f}' must be a non-empty string")

    if _is_non_empty_str(data.get("title")):
        length = len(data["title"].strip())
        if not TITLE_MIN_LENGTH <= length <= TITLE_MAX_LENGTH:
            errors.append(
                f"Field 'title' length must be between {TITLE_MIN_LENGTH} and {TITLE_MAX_LENGTH} characters"
            )

    for f in OPTIONAL_STR_FIELDS:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    status = data.get("status")
    if isinstance(status, str) and status not in JOB_STATUSES:
        errors.append(f"Field 'status' must be one of: {', '.join(JOB_STATUSES)}")

    photos = data.get("photos")
    if photos is not None and (not isinstance(photos, list) or not all(isinstance(p, str) for p in photos)):
        errors.append("Field 'photos' must be a list of URL strings")

    for f in PRICE_FIELDS:
        v = data.get(f)
        if v is None:
            continue
        if not _is_number(v):
            errors.append(f"Field '{f}' must be a number if provided")
        elif v < 0:
            errors.append(f"Field '{f}' must not be negative")

    bmin, bmax = data.get("budget_min"), data.get("budget_max")
    if _is_number(bmin) and _is_number(bmax) and bmin > bmax:
        errors.append("Field 'budget_min' must not exceed 'budget_max'")

    lat, lng = data.get("latitude"), data.get("longitude")
    if (lat is None) != (lng is None):
        errors.append("Fields 'latitude' and 'longitude' must be provided together")
    if lat is not None and (not _is_number(lat) or not -90 <= lat <= 90):
        errors.append("Field 'latitude' must be a number between -90 and 90")
    if lng is not None and (not _is_number(lng) or not -180 <= lng <= 180):
        errors.append("Field 'longitude' must be a number between -180 and 180")

    for f in TIMESTAMP_FIELDS:
        v = data.get(f)
        if v is None:
            continue
        if not isinstance(v, str) or not _valid_timestamp(v):
            errors.append(f"Field '{f}' must be an ISO-8601 timestamp")

    return errors


def validate_listing_strict(data: Dict[str, Any]) -> Tuple[bool, List[str]]:
    """Like validate_listing, but also requires a feed-visible price."""
    errors = validate_listing(data)
    if all(data.get(f) is None for f in PRICE_FIELDS):
        errors.append("One of 'fixed_price', 'budget_min' or 'budget_max' is required")
    return (not errors, errors)


def validate_profile(data: Dict[str, Any]) -> List[str]:
    """Validation errors for a profile row; empty list means valid."""
    errors: List[str] = []

    if not _is_non_empty_str(data.get("full_name")):
        errors.append("Field 'full_name' must be a non-empty string")

    for f in ["id", "avatar_url", "location"]:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")

    user_type = data.get("user_type")
    if user_type is not None and user_type not in USER_TYPES:
        errors.append(f"Field 'user_type' must be one of: {', '.join(USER_TYPES)}")

    for f in ["id_verified", "business_verified"]:
        if data.get(f) is not None and not isinstance(data[f], bool):
            errors.append(f"Field '{f}' must be a boolean if provided")

    rating = data.get("rating_average")
    if rating is not None and (not _is_number(rating) or not 0 <= rating <= 5):
        errors.append("Field 'rating_average' must be a number between 0 and 5")

    count = data.get("rating_count")
    if count is not None and (not isinstance(count, int) or isinstance(count, bool) or count < 0):
        errors.append("Field 'rating_count' must be a non-negative integer")

    created_at = data.get("created_at")
    if created_at is not None and (not isinstance(created_at, str) or not _valid_timestamp(created_at)):
        errors.append("Field 'created_at' must be an ISO-8601 timestamp")

    return errors


def validate_category(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    if not _is_non_empty_str(data.get("name")):
        errors.append("Field 'name' must be a non-empty string")
    for f in ["id", "slug", "parent_id"]:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")
    return errors


def validate_application(data: Dict[str, Any]) -> List[str]:
    errors: List[str] = []
    for f in ["job_id", "provider_id"]:
        if not _is_non_empty_str(data.get(f)):
            errors.append(f"Field '{f}' must be a non-empty string")
    for f in ["id", "message", "status"]:
        if data.get(f) is not None and not isinstance(data[f], str):
            errors.append(f"Field '{f}' must be a string if provided")
    created_at = data.get("created_at")
    if created_at is not None and (not isinstance(created_at, str) or not _valid_timestamp(created_at)):
        errors.append("Field 'created_at' must be an ISO-8601 timestamp")
    return errors
