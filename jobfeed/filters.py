"""
Filter parameters for the job feed and the SQL predicates they produce.
"""

from typing import Iterable, List, Optional, Sequence

from sqlalchemy import func, or_

from .database import Job, Profile


def min_side_price():
    """Effective price for minimum comparisons and price sorting."""
    return func.coalesce(Job.fixed_price, Job.budget_min, 0)


def max_side_price():
    """Effective price for maximum comparisons."""
    return func.coalesce(Job.fixed_price, Job.budget_max, Job.budget_min, 0)


def effective_price(fixed_price=None, budget_min=None, budget_max=None, side: str = "min") -> float:
    """Python counterpart of the effective price expressions."""
    if fixed_price is not None:
        return fixed_price
    if side == "max" and budget_max is not None:
        return budget_max
    if budget_min is not None:
        return budget_min
    return 0


def distance_expression(latitude: float, longitude: float):
    return func.great_circle_miles(latitude, longitude, Job.latitude, Job.longitude)


def _escape_like(term: str) -> str:
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class JobFilters:
    """
    Conjunctive filters for the job feed. Every attribute is optional and a
    None value imposes no constraint.

    Args:
        category_ids: Match any of these category ids
        category_id: Shorthand for a single category id
        search: Case-insensitive substring over title or description
        min_budget: Lower bound on the effective price
        max_budget: Upper bound on the effective price
        verified: Require an ID- or business-verified customer when True
        latitude, longitude, radius_miles: Geo filter, active only when
            all three are supplied
    """

    def __init__(
        self,
        category_ids: Optional[Sequence[str]] = None,
        category_id: Optional[str] = None,
        search: Optional[str] = None,
        min_budget: Optional[float] = None,
        max_budget: Optional[float] = None,
        verified: Optional[bool] = None,
        latitude: Optional[float] = None,
        longitude: Optional[float] = None,
        radius_miles: Optional[float] = None,
    ):
        ids: List[str] = list(category_ids or [])
        if category_id is not None and category_id not in ids:
            ids.append(category_id)
        self.category_ids = ids or None
        self.search = search.strip() if search and search.strip() else None
        self.min_budget = min_budget
        self.max_budget = max_budget
        self.verified = verified
        self.latitude = latitude
        self.longitude = longitude
        self.radius_miles = radius_miles

    @property
    def geo_active(self) -> bool:
        return (
            self.latitude is not None
            and self.longitude is not None
            and self.radius_miles is not None
        )

    def distance(self):
        """SQL distance expression, or None when the geo filter is inactive."""
        if not self.geo_active:
            return None
        return distance_expression(self.latitude, self.longitude)

    def clauses(self) -> Iterable:
        """Yield one SQL predicate per supplied filter."""
        if self.category_ids:
            yield Job.category_id.in_(self.category_ids)

        if self.search:
            pattern = f"%{_escape_like(self.search.casefold())}%"
            yield or_(
                func.fold_case(Job.title).like(pattern, escape="\\"),
                func.fold_case(Job.description).like(pattern, escape="\\"),
            )

        if self.min_budget is not None:
            yield min_side_price() >= self.min_budget

        if self.max_budget is not None:
            yield max_side_price() <= self.max_budget

        if self.verified:
            yield or_(Profile.id_verified.is_(True), Profile.business_verified.is_(True))

        distance = self.distance()
        if distance is not None:
            yield Job.latitude.isnot(None)
            yield Job.longitude.isnot(None)
            yield distance <= self.radius_miles

    def as_dict(self) -> dict:
        return {
            "category_ids": self.category_ids,
            "search": self.search,
            "min_budget": self.min_budget,
            "max_budget": self.max_budget,
            "verified": self.verified,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "radius_miles": self.radius_miles,
            "geo_active": self.geo_active,
        }
