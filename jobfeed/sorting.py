"""
Sort strategies for the job feed.

Each strategy contributes primary ORDER BY clauses. The feed always appends
the tie-breaker (created_at DESC, id DESC) so page boundaries stay
deterministic whatever the primary key.
"""

from typing import Dict, List, Optional

from sqlalchemy import func, select

from .database import Job, JobApplication
from .filters import JobFilters, min_side_price

DEFAULT_SORT = "relevance"


def tie_breaker() -> List:
    return [Job.created_at.desc(), Job.id.desc()]


def application_count():
    """Correlated count of applications for the outer job row."""
    return (
        select(func.count(JobApplication.id))
        .where(JobApplication.job_id == Job.id)
        .correlate(Job)
        .scalar_subquery()
    )


class SortStrategy:
    name = DEFAULT_SORT

    def primary(self, filters: JobFilters) -> List:
        return []

    def applies(self, filters: JobFilters) -> bool:
        return True

    def order_by(self, filters: JobFilters) -> List:
        return self.primary(filters) + tie_breaker()


class RelevanceSort(SortStrategy):
    name = "relevance"


class RecentSort(SortStrategy):
    name = "recent"


class DistanceSort(SortStrategy):
    name = "distance"

    def applies(self, filters: JobFilters) -> bool:
        return filters.geo_active

    def primary(self, filters: JobFilters) -> List:
        return [filters.distance().asc()]


class PriceLowSort(SortStrategy):
    name = "price_low"

    def primary(self, filters: JobFilters) -> List:
        return [min_side_price().asc()]


class PriceHighSort(SortStrategy):
    name = "price_high"

    def primary(self, filters: JobFilters) -> List:
        return [min_side_price().desc()]


class PopularSort(SortStrategy):
    name = "popular"

    def primary(self, filters: JobFilters) -> List:
        return [application_count().desc()]


SORT_STRATEGIES: Dict[str, SortStrategy] = {
    s.name: s
    for s in (
        RelevanceSort(),
        RecentSort(),
        DistanceSort(),
        PriceLowSort(),
        PriceHighSort(),
        PopularSort(),
    )
}


def resolve_sort(name: Optional[str], filters: Optional[JobFilters] = None) -> SortStrategy:
    """
    Look up the strategy for a sort name.

    Unknown names, and strategies whose prerequisites are missing (distance
    without an active geo filter), fall back to the default order.
    """
    key = (name or DEFAULT_SORT).strip().lower()
    strategy = SORT_STRATEGIES.get(key, SORT_STRATEGIES[DEFAULT_SORT])
    if filters is not None and not strategy.applies(filters):
        return SORT_STRATEGIES[DEFAULT_SORT]
    return strategy
