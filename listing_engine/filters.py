# listing_engine/filters.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from .schemas import ListingFilter

ACTIVE_STATUS = "active"

# one placeholder shared by every comparison in the group
TERM_CLAUSE = (
    "(LOWER(title) LIKE LOWER({0}) OR "
    "LOWER(COALESCE(make, '')) LIKE LOWER({0}) OR "
    "LOWER(COALESCE(model, '')) LIKE LOWER({0}) OR "
    "LOWER(city) LIKE LOWER({0}) OR "
    "LOWER(COALESCE(area, '')) LIKE LOWER({0}))"
)


@dataclass(frozen=True)
class BuiltQuery:
    clauses: List[str]
    params: List[Any]

    @property
    def where_sql(self) -> str:
        return " AND ".join(self.clauses)


@dataclass
class PredicateBuilder:
    """Accumulates SQL clauses and their bound values.

    Clause templates are fixed strings owned by this package; the only
    thing formatted into them is placeholder names (`:p1`, `:p2`, ...).
    Values always travel in `params`.
    """
    clauses: List[str] = field(default_factory=list)
    params: List[Any] = field(default_factory=list)

    def bind(self, value: Any) -> str:
        self.params.append(value)
        return f":p{len(self.params)}"

    def add(self, template: str, *values: Any) -> "PredicateBuilder":
        names = [self.bind(v) for v in values]
        self.clauses.append(template.format(*names))
        return self

    def build(self) -> BuiltQuery:
        return BuiltQuery(clauses=list(self.clauses), params=list(self.params))


def parse_filter(raw: Optional[Mapping[str, Any]]) -> ListingFilter:
    return ListingFilter.model_validate(dict(raw or {}))


def contains(value: str) -> str:
    return f"%{value}%"


def apply_filter(builder: PredicateBuilder, f: ListingFilter) -> PredicateBuilder:
    """Add every predicate implied by ``f`` to ``builder``."""
    builder.add("deleted_at IS NULL")

    if f.country:
        builder.add("country_code = {}", f.country)
    if f.city:
        builder.add("LOWER(city) LIKE LOWER({})", contains(f.city))
    if f.area:
        builder.add("LOWER(COALESCE(area, '')) LIKE LOWER({})", contains(f.area))
    if f.vehicle_type:
        builder.add("vehicle_type = {}", f.vehicle_type)
    if f.transmission:
        builder.add("transmission = {}", f.transmission)
    if f.fuel_type:
        builder.add("fuel_type = {}", f.fuel_type)
    builder.add("status = {}", f.status or ACTIVE_STATUS)

    if f.seats is not None:
        builder.add("seats = {}", f.seats)
    if f.year_min is not None:
        builder.add("year >= {}", f.year_min)
    if f.year_max is not None:
        builder.add("year <= {}", f.year_max)
    if f.min_price is not None:
        builder.add("price_per_day >= {}", f.min_price)
    if f.max_price is not None:
        builder.add("price_per_day <= {}", f.max_price)

    # hasImage=true means has_image AND image_public (unset image_public counts as public)
    if f.has_image is True:
        builder.add("has_image = {0} AND COALESCE(image_public, {0}) = {0}", True)
    elif f.has_image is False:
        builder.add("COALESCE(has_image, {0}) = {0}", False)

    if f.term:
        builder.add(TERM_CLAUSE, contains(f.term))
    return builder


def build_where(f: ListingFilter) -> BuiltQuery:
    return apply_filter(PredicateBuilder(), f).build()
