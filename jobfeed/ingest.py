"""
Load marketplace fixtures (profiles, categories, jobs, applications) from a
JSON document into the database.

Expected layout:
    {"profiles": [...], "categories": [...], "jobs": [...], "applications": [...]}

Rows whose id already exists are skipped, so re-running an ingest is safe.
Rows that fail validation or point at a missing profile, category or job are
skipped and logged.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from .database import Category, Job, JobApplication, Profile, get_session, init_database, to_utc
from .logger import get_logger
from .schema import (
    validate_application,
    validate_category,
    validate_listing,
    validate_listing_strict,
    validate_profile,
)

PROFILE_FIELDS = [
    "id", "full_name", "avatar_url", "location", "user_type",
    "id_verified", "business_verified", "rating_average", "rating_count",
]
CATEGORY_FIELDS = ["id", "name", "slug", "parent_id"]
JOB_FIELDS = [
    "id", "customer_id", "category_id", "title", "description", "photos",
    "featured_image_url", "status", "city", "state", "latitude", "longitude",
    "fixed_price", "budget_min", "budget_max",
]
APPLICATION_FIELDS = ["id", "job_id", "provider_id", "message", "status"]
SECTIONS = ["profiles", "categories", "jobs", "applications"]


def parse_timestamp(ts_str: Optional[str]) -> Optional[datetime]:
    """Parse ISO timestamp string to naive UTC; None stays None."""
    if not ts_str:
        return None
    return to_utc(datetime.fromisoformat(ts_str))


def _pick(data: Dict[str, Any], fields) -> Dict[str, Any]:
    return {f: data[f] for f in fields if data.get(f) is not None}


def _exists(session, model, row_id: Optional[str]) -> bool:
    return row_id is not None and session.get(model, row_id) is not None


def _row_id(data: Any) -> Optional[str]:
    return data.get("id") if isinstance(data, dict) else None


def _missing_references(session, data: Dict[str, Any]) -> List[str]:
    errors = []
    if not _exists(session, Profile, data.get("customer_id")):
        errors.append(f"Unknown customer_id: {data.get('customer_id')}")
    category_id = data.get("category_id")
    if category_id is not None and not _exists(session, Category, category_id):
        errors.append(f"Unknown category_id: {category_id}")
    return errors


def ingest_listing(session, data: Dict[str, Any], strict: bool = False) -> dict:
    """
    Validate and stage one job listing.

    Returns:
        {"id": ..., "status": "new" | "exists" | "validation_error", ...}
    """
    if strict:
        _, errors = validate_listing_strict(data)
    else:
        errors = validate_listing(data)
    if errors:
        return {"id": data.get("id"), "status": "validation_error", "errors": errors}

    if _exists(session, Job, data.get("id")):
        return {"id": data["id"], "status": "exists"}

    errors = _missing_references(session, data)
    if errors:
        return {"id": data.get("id"), "status": "validation_error", "errors": errors}

    values = _pick(data, JOB_FIELDS)
    values["title"] = values["title"].strip()
    created_at = parse_timestamp(data.get("created_at"))
    if created_at is not None:
        values["created_at"] = created_at
        values["updated_at"] = created_at
    deadline = parse_timestamp(data.get("deadline"))
    if deadline is not None:
        values["deadline"] = deadline

    job = Job(**values)
    session.add(job)
    session.flush()
    return {"id": job.id, "status": "new"}


def ingest_document(session, document: Dict[str, Any], strict: bool = False) -> Dict[str, int]:
    """
    Stage every row of a fixture document and commit once.

    Raises:
        ValueError: If the document is not a JSON object of row lists
    """
    if not isinstance(document, dict):
        raise ValueError(f"fixture document must be a JSON object, got {type(document).__name__}")
    for section in SECTIONS:
        if not isinstance(document.get(section, []), list):
            raise ValueError(f"fixture section '{section}' must be a list")

    logger = get_logger()
    counts = {"profiles": 0, "categories": 0, "jobs": 0, "applications": 0, "skipped": 0}

    for data in document.get("profiles", []):
        errors = validate_profile(data) if isinstance(data, dict) else ["Profile must be an object"]
        if errors:
            counts["skipped"] += 1
            logger.warning("Skipping invalid profile", id=_row_id(data), errors=errors)
            continue
        if _exists(session, Profile, data.get("id")):
            counts["skipped"] += 1
            continue
        values = _pick(data, PROFILE_FIELDS)
        created_at = parse_timestamp(data.get("created_at"))
        if created_at is not None:
            values["created_at"] = created_at
        session.add(Profile(**values))
        session.flush()
        counts["profiles"] += 1

    for data in document.get("categories", []):
        errors = validate_category(data) if isinstance(data, dict) else ["Category must be an object"]
        if errors:
            counts["skipped"] += 1
            logger.warning("Skipping invalid category", id=_row_id(data), errors=errors)
            continue
        duplicate_name = session.query(Category).filter_by(name=data["name"]).first() is not None
        if duplicate_name or _exists(session, Category, data.get("id")):
            counts["skipped"] += 1
            continue
        parent_id = data.get("parent_id")
        if parent_id is not None and not _exists(session, Category, parent_id):
            counts["skipped"] += 1
            logger.warning("Skipping category with unknown parent", id=data.get("id"), parent_id=parent_id)
            continue
        session.add(Category(**_pick(data, CATEGORY_FIELDS)))
        session.flush()
        counts["categories"] += 1

    for data in document.get("jobs", []):
        if not isinstance(data, dict):
            counts["skipped"] += 1
            logger.warning("Skipping invalid listing", errors=["Listing must be an object"])
            continue
        outcome = ingest_listing(session, data, strict=strict)
        if outcome["status"] == "new":
            counts["jobs"] += 1
            continue
        counts["skipped"] += 1
        if outcome["status"] == "validation_error":
            logger.warning("Skipping invalid listing", id=outcome["id"], errors=outcome["errors"])

    for data in document.get("applications", []):
        errors = validate_application(data) if isinstance(data, dict) else ["Application must be an object"]
        if not errors:
            if _exists(session, JobApplication, data.get("id")):
                counts["skipped"] += 1
                continue
            if not _exists(session, Job, data["job_id"]):
                errors.append(f"Unknown job_id: {data['job_id']}")
            if not _exists(session, Profile, data["provider_id"]):
                errors.append(f"Unknown provider_id: {data['provider_id']}")
        if errors:
            counts["skipped"] += 1
            logger.warning("Skipping invalid application", id=_row_id(data), errors=errors)
            continue
        values = _pick(data, APPLICATION_FIELDS)
        created_at = parse_timestamp(data.get("created_at"))
        if created_at is not None:
            values["created_at"] = created_at
        session.add(JobApplication(**values))
        session.flush()
        counts["applications"] += 1

    session.commit()
    return counts


def ingest_file(input_path: Path, db_path: Path, strict: bool = False) -> Dict[str, int]:
    """
    Load a fixture file into the database at db_path.

    Args:
        input_path: Path to fixture JSON
        db_path: Path to SQLite database file (created if missing)
        strict: Also require every listing to carry a price

    Returns:
        Counts of inserted rows per table plus skipped rows

    Raises:
        json.JSONDecodeError: If the file is not valid JSON
        ValueError: If the document does not have the fixture layout
    """
    with input_path.open("r", encoding="utf-8") as f:
        document = json.load(f)

    init_database(db_path)
    session = get_session(db_path)
    try:
        counts = ingest_document(session, document, strict=strict)
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()

    get_logger().info(f"Ingest complete: {counts['jobs']} jobs, {counts['skipped']} skipped", **counts)
    return counts
