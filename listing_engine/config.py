# listing_engine/config.py
"""Environment-driven settings.

Static limits are module constants; media URLs are read on each call so a
running process (and the tests) pick up changes to the environment.
"""
import os
from dotenv import load_dotenv

load_dotenv()

DATABASE_URL = os.getenv("POSTGRES_URL", "sqlite:///./listings.db")
DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", 5))
DB_MAX_OVERFLOW = int(os.getenv("DB_MAX_OVERFLOW", 10))

LISTING_TABLE = "listings"

# header carrying the verified owner id, set by the upstream auth gateway
OWNER_ID_HEADER = os.getenv("OWNER_ID_HEADER", "X-Owner-Id")

# (default, ceiling) per endpoint
LIST_LIMITS = (20, 50)
MAP_LIMITS = (200, 500)
OWNER_LIMITS = (20, 100)
SUGGEST_LIMITS = (8, 20)
FEATURED_LIMITS = (10, 20)
POPULAR_LIMITS = (10, 20)
SIMILAR_LIMITS = (8, 20)

# largest offset bound into a query (32-bit signed)
MAX_OFFSET = 2**31 - 1

RADIUS_KM_MIN = 1
RADIUS_KM_MAX = 50


def media_base():
    base = (os.getenv("MEDIA_PUBLIC_BASE_URL") or "").strip()
    return base.rstrip("/") or None


def placeholder_url():
    explicit = (os.getenv("MEDIA_PLACEHOLDER_URL") or "").strip()
    if explicit:
        return explicit
    base = media_base()
    return f"{base}/cars/placeholder-car.jpg" if base else None
