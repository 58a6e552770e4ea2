# listing_engine/schemas.py
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel
from typing import Any, List, Literal, Optional

from .coerce import SEATS_RANGE, clamp, normalize_str, to_float, to_int, year_range

SortKey = Literal["newest", "price_asc", "price_desc", "rating_desc", "popular"]
SORT_KEYS = ("newest", "price_asc", "price_desc", "rating_desc", "popular")
DEFAULT_SORT = "popular"


class ListingFilter(BaseModel):
    """Search intent parsed from raw query parameters.

    Parsing is best effort: a value that cannot be read degrades to ``None``
    instead of failing the request, and inverted ranges are swapped.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore", frozen=True)

    country: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    vehicle_type: Optional[str] = Field(None, alias="type")
    transmission: Optional[str] = None
    fuel_type: Optional[str] = Field(None, alias="fuel")
    status: Optional[str] = None
    term: Optional[str] = Field(None, alias="q")

    seats: Optional[int] = None
    year_min: Optional[int] = Field(None, alias="yearMin")
    year_max: Optional[int] = Field(None, alias="yearMax")
    min_price: Optional[float] = Field(None, alias="minPrice")
    max_price: Optional[float] = Field(None, alias="maxPrice")

    has_image: Optional[bool] = Field(None, alias="hasImage")
    sort: SortKey = DEFAULT_SORT
    limit: Optional[int] = None
    offset: Optional[int] = None

    @field_validator(
        "country", "city", "area", "vehicle_type", "transmission", "fuel_type", "status", "term",
        mode="before",
    )
    @classmethod
    def _text(cls, v: Any) -> Optional[str]:
        return normalize_str(v)

    @field_validator("limit", "offset", mode="before")
    @classmethod
    def _int(cls, v: Any) -> Optional[int]:
        return to_int(v)

    @field_validator("seats", mode="before")
    @classmethod
    def _seats(cls, v: Any) -> Optional[int]:
        n = to_int(v)
        if n is None or not SEATS_RANGE[0] <= n <= SEATS_RANGE[1]:
            return None
        return n

    @field_validator("year_min", "year_max", mode="before")
    @classmethod
    def _year(cls, v: Any) -> Optional[int]:
        n = to_int(v)
        return None if n is None else clamp(n, *year_range())

    @field_validator("min_price", "max_price", mode="before")
    @classmethod
    def _float(cls, v: Any) -> Optional[float]:
        return to_float(v)

    @field_validator("has_image", mode="before")
    @classmethod
    def _has_image(cls, v: Any) -> Optional[bool]:
        if isinstance(v, bool):
            return v
        s = normalize_str(v)
        if s == "true":
            return True
        if s == "false":
            return False
        return None

    @field_validator("sort", mode="before")
    @classmethod
    def _sort(cls, v: Any) -> str:
        s = normalize_str(v)
        return s if s in SORT_KEYS else DEFAULT_SORT

    @model_validator(mode="before")
    @classmethod
    def _swap_ranges(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for lo, hi, parse in (
            (("yearMin", "year_min"), ("yearMax", "year_max"), to_int),
            (("minPrice", "min_price"), ("maxPrice", "max_price"), to_float),
        ):
            lo_key = lo[0] if lo[0] in data else lo[1]
            hi_key = hi[0] if hi[0] in data else hi[1]
            a, b = parse(data.get(lo_key)), parse(data.get(hi_key))
            if a is not None and b is not None and a > b:
                data[lo_key], data[hi_key] = b, a
        return data


class _CamelOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AddressOut(_CamelOut):
    country_code: Optional[str] = None
    city: Optional[str] = None
    area: Optional[str] = None
    full_address: Optional[str] = None


class PickupOut(_CamelOut):
    lat: Optional[float] = None
    lng: Optional[float] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    country: Optional[str] = None
    postal_code: Optional[str] = None


class ListingOut(_CamelOut):
    id: str
    title: Optional[str] = None
    vehicle_type: Optional[str] = None
    transmission: Optional[str] = None
    fuel_type: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None
    trim: Optional[str] = None
    body_type: Optional[str] = None
    seats: Optional[int] = None
    year: Optional[int] = None
    currency: Optional[str] = None
    price_per_day: Optional[float] = None
    rating: Optional[float] = None
    reviews: Optional[int] = None
    status: Optional[str] = None
    address: AddressOut
    pickup: PickupOut
    has_image: bool = False
    image_public: bool = True
    image_path: Optional[str] = None
    image_url: Optional[str] = None
    gallery: Optional[List[Any]] = None
    is_popular: bool = False
    is_featured: bool = False
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    distance_km: Optional[float] = None


class PageMeta(BaseModel):
    limit: int
    offset: int
    total: int
