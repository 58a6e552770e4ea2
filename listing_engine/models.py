# listing_engine/models.py
"""SQLAlchemy ORM model for the `listings` table.

The engine itself talks to the table through `ListingStore` with plain SQL
and Core statements; the model is the single source of the column layout
and is what `create_all` uses.
"""
from sqlalchemy import (
    Column, Integer, Text, Float, Boolean, TIMESTAMP, JSON, func, Index, false, true,
)
from sqlalchemy.dialects.postgresql import JSONB
from .db import Base

JsonBag = JSON().with_variant(JSONB(), "postgresql")

LISTING_STATUSES = (
    "draft",
    "pending_review",
    "active",
    "inactive",
    "unlisted",
    "suspended",
    "archived",
)

class Listing(Base):
    __tablename__ = "listings"
    id = Column(Integer, primary_key=True, index=True)
    owner_id = Column(Text, index=True)

    title = Column(Text)
    vehicle_type = Column(Text)
    transmission = Column(Text)
    fuel_type = Column(Text)
    make = Column(Text)
    model = Column(Text)
    trim = Column(Text)
    body_type = Column(Text)
    year = Column(Integer)
    seats = Column(Integer)

    currency = Column(Text)
    price_per_day = Column(Integer)

    is_popular = Column(Boolean, nullable=False, server_default=false())
    is_featured = Column(Boolean, nullable=False, server_default=false())
    status = Column(Text, nullable=False, server_default="draft")

    country_code = Column(Text)
    city = Column(Text)
    area = Column(Text)
    full_address = Column(Text)

    pickup_lat = Column(Float)
    pickup_lng = Column(Float)
    pickup_address = Column(Text)
    pickup_city = Column(Text)
    pickup_state = Column(Text)
    pickup_country = Column(Text)
    pickup_postal_code = Column(Text)

    image_path = Column(Text)
    image_public = Column(Boolean, nullable=False, server_default=true())
    has_image = Column(Boolean, nullable=False, server_default=false())
    image_gallery = Column(JsonBag)

    features = Column(JsonBag)
    requirements = Column(JsonBag)
    pricing_rules = Column(JsonBag)

    # legacy scalar rating columns; rating_avg/rating_count supersede them
    rating = Column(Float)
    reviews = Column(Integer)
    rating_avg = Column(Float)
    rating_count = Column(Integer)

    created_at = Column(TIMESTAMP(timezone=True), server_default=func.now())
    updated_at = Column(TIMESTAMP(timezone=True), server_default=func.now(), onupdate=func.now())
    deleted_at = Column(TIMESTAMP(timezone=True))

Index("idx_listings_price", Listing.price_per_day)
Index("idx_listings_year", Listing.year)
Index("idx_listings_status_deleted", Listing.status, Listing.deleted_at)
Index("idx_listings_pickup", Listing.pickup_lat, Listing.pickup_lng)
