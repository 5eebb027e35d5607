"""
Job listing query service.

Fetches one page of open job listings with keyset pagination, conjunctive
filters, a selectable sort mode and an optional distance filter.
"""

from typing import Any, Dict, List, Optional, Union

from sqlalchemy.exc import DBAPIError

from .database import FEED_STATUSES, Job, Profile
from .env import DEFAULT_MAX_PAGE_SIZE, DEFAULT_PAGE_SIZE
from .filters import JobFilters, min_side_price
from .logger import get_logger
from .pagination import Cursor, coerce_cursor
from .sorting import DEFAULT_SORT, resolve_sort


class StorageUnavailableError(Exception):
    """Raised when the listing store cannot be read. Safe to retry later."""

    retryable = True


class Page:
    """One page of feed rows plus the cursor to continue from."""

    def __init__(self, rows: List[Dict[str, Any]], next_cursor: Optional[str], has_more: bool):
        self.rows = rows
        self.next_cursor = next_cursor
        self.has_more = has_more

    def __len__(self) -> int:
        return len(self.rows)

    @property
    def ids(self) -> List[str]:
        return [row["id"] for row in self.rows]

    def as_dict(self) -> dict:
        return {
            "rows": self.rows,
            "next_cursor": self.next_cursor,
            "has_more": self.has_more,
        }


def _columns(filters: JobFilters) -> list:
    columns = [
        Job.id,
        Job.title,
        Job.description,
        min_side_price().label("budget"),
        Job.photos,
        Job.created_at,
        Job.status,
        Job.customer_id,
        Job.category_id,
        Profile.full_name.label("customer_full_name"),
        Profile.avatar_url.label("customer_avatar"),
        Profile.location.label("customer_location"),
        Profile.user_type.label("customer_user_type"),
        Profile.id_verified.label("customer_id_verified"),
        Profile.business_verified.label("customer_business_verified"),
        Profile.rating_average.label("customer_rating_average"),
        Profile.rating_count.label("customer_rating_count"),
        Job.city,
        Job.state,
        Job.latitude,
        Job.longitude,
        Job.deadline,
        Job.fixed_price,
        Job.budget_min,
        Job.budget_max,
        Job.featured_image_url,
    ]
    distance = filters.distance()
    if distance is not None:
        columns.append(distance.label("distance_miles"))
    return columns


def _to_row(record) -> Dict[str, Any]:
    row = dict(record._mapping)
    id_verified = row.pop("customer_id_verified")
    business_verified = row.pop("customer_business_verified")
    row["customer_verified"] = bool(id_verified or business_verified)
    row.setdefault("distance_miles", None)
    row["photos"] = list(row["photos"] or [])
    return row


def build_query(session, cursor: Optional[Cursor], limit: int, filters: JobFilters, sort: str):
    """Compose the feed query without executing it."""
    strategy = resolve_sort(sort, filters)

    query = (
        session.query(*_columns(filters))
        .outerjoin(Profile, Profile.id == Job.customer_id)
        .filter(Job.status.in_(FEED_STATUSES))
    )
    if cursor is not None:
        query = query.filter(cursor.predicate(Job.created_at, Job.id))
    for clause in filters.clauses():
        query = query.filter(clause)

    return query.order_by(*strategy.order_by(filters)).limit(limit)


def fetch_page(
    session,
    cursor: Union[Cursor, str, None] = None,
    limit: int = DEFAULT_PAGE_SIZE,
    filters: Optional[JobFilters] = None,
    sort: Optional[str] = DEFAULT_SORT,
    max_page_size: int = DEFAULT_MAX_PAGE_SIZE,
) -> Page:
    """
    Fetch one page of the job feed.

    Args:
        session: SQLAlchemy session
        cursor: Cursor or opaque token from a previous page; None (or a
            malformed token) starts from the first page
        limit: Page size, a positive integer capped at max_page_size
        filters: Conjunctive filters, None for no filtering
        sort: relevance, recent, distance, price_low, price_high or popular
        max_page_size: Upper bound applied to limit

    Returns:
        Page with rows, next_cursor (None for an empty page) and has_more

    Raises:
        ValueError: If limit is not a positive integer
        StorageUnavailableError: If the database cannot be read
    """
    if isinstance(limit, bool) or not isinstance(limit, int) or limit < 1:
        raise ValueError(f"limit must be a positive integer, got {limit!r}")
    limit = min(limit, max_page_size)

    logger = get_logger()
    filters = filters or JobFilters()
    position = coerce_cursor(cursor)
    strategy = resolve_sort(sort, filters)

    logger.debug(
        "Fetching feed page",
        cursor=repr(position) if position else None,
        limit=limit,
        sort=strategy.name,
        filters=filters.as_dict(),
    )

    try:
        records = build_query(session, position, limit, filters, strategy.name).all()
    except DBAPIError as e:
        error_type = type(e.orig).__name__ if e.orig is not None else type(e).__name__
        logger.record_query_failure(error_type)
        logger.error("Feed query failed", error=str(e), sort=strategy.name)
        raise StorageUnavailableError(f"Listing store unavailable: {e.orig or e}") from e

    rows = [_to_row(r) for r in records]
    logger.record_query(strategy.name, len(rows))

    if not rows:
        return Page(rows=[], next_cursor=None, has_more=False)

    next_cursor = Cursor.from_row(rows[-1]).encode()
    return Page(rows=rows, next_cursor=next_cursor, has_more=len(rows) == limit)
