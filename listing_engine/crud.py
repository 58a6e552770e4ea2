# listing_engine/crud.py
"""Persistence of canonical column maps through `ListingStore`.

Every statement here is scoped to non-deleted rows (restore being the one
exception) and, when an owner id is given, to that owner's rows.
"""
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func, insert, update

from . import config
from .coerce import safe_json_parse
from .db import ListingStore
from .errors import NotFoundError, ValidationError
from .models import Listing
from .pagination import SELECT_FIELDS
from .reconcile import dedupe_gallery, reconcile_for_publish
from .utils import get_logger

logger = get_logger(__name__)
listings = Listing.__table__


def _scope(stmt, listing_id, owner_id: Optional[str], deleted: bool = False):
    stmt = stmt.where(listings.c.id == listing_id)
    if deleted:
        stmt = stmt.where(listings.c.deleted_at.is_not(None))
    else:
        stmt = stmt.where(listings.c.deleted_at.is_(None))
    if owner_id is not None:
        stmt = stmt.where(listings.c.owner_id == owner_id)
    return stmt


def _fetch(store: ListingStore, columns: str, listing_id, owner_id: Optional[str] = None):
    sql = f"SELECT {columns} FROM {config.LISTING_TABLE} WHERE id = :p1 AND deleted_at IS NULL"
    params: List[Any] = [listing_id]
    if owner_id is not None:
        sql += " AND owner_id = :p2"
        params.append(owner_id)
    rows = store.query(sql + " LIMIT 1", params)
    return rows[0] if rows else None


def get_listing(store: ListingStore, listing_id, owner_id: Optional[str] = None) -> Dict[str, Any]:
    row = _fetch(store, SELECT_FIELDS, listing_id, owner_id)
    if not row:
        raise NotFoundError()
    return row


def insert_listing(store: ListingStore, columns: Dict[str, Any], owner_id: Optional[str] = None):
    values = dict(columns)
    if owner_id is not None:
        values["owner_id"] = owner_id
    res = store.execute(insert(listings).values(**values))
    logger.info("Created listing %s", res.primary_key)
    return get_listing(store, res.primary_key)


def update_listing(store: ListingStore, listing_id, columns: Dict[str, Any],
                   owner_id: Optional[str] = None):
    if not columns:
        raise ValidationError("No valid updates provided.")
    stmt = _scope(update(listings), listing_id, owner_id).values(**columns, updated_at=func.now())
    res = store.execute(stmt)
    if not res.rowcount:
        raise NotFoundError()
    logger.info("Updated listing %s (%s)", listing_id, ", ".join(sorted(columns)))
    return get_listing(store, listing_id)


def publish_listing(store: ListingStore, listing_id, raw: Optional[Dict[str, Any]] = None,
                    owner_id: Optional[str] = None):
    # read then write; concurrent publishes of one listing are last-writer-wins
    existing = _fetch(store, "id, features", listing_id, owner_id)
    if not existing:
        raise NotFoundError()
    columns = reconcile_for_publish(raw or {}, existing.get("features"))
    return update_listing(store, listing_id, columns, owner_id)


def set_status(store: ListingStore, listing_id, status: str, owner_id: Optional[str] = None):
    return update_listing(store, listing_id, {"status": status}, owner_id)


def unpublish_listing(store: ListingStore, listing_id, owner_id: Optional[str] = None):
    return set_status(store, listing_id, "draft", owner_id)


def deactivate_listing(store: ListingStore, listing_id, owner_id: Optional[str] = None):
    return set_status(store, listing_id, "inactive", owner_id)


def delete_listing(store: ListingStore, listing_id, owner_id: Optional[str] = None) -> bool:
    stmt = _scope(update(listings), listing_id, owner_id).values(
        deleted_at=datetime.now(timezone.utc), updated_at=func.now()
    )
    if not store.execute(stmt).rowcount:
        raise NotFoundError()
    logger.info("Soft-deleted listing %s", listing_id)
    return True


def restore_listing(store: ListingStore, listing_id, owner_id: Optional[str] = None):
    stmt = _scope(update(listings), listing_id, owner_id, deleted=True).values(
        deleted_at=None, updated_at=func.now()
    )
    if not store.execute(stmt).rowcount:
        raise NotFoundError("Listing not found or not deleted")
    logger.info("Restored listing %s", listing_id)
    return get_listing(store, listing_id)


def clean_photos(photos: Any) -> List[Dict[str, Any]]:
    if not isinstance(photos, list):
        return []
    now = datetime.now(timezone.utc).isoformat()
    out = []
    for p in photos:
        if not isinstance(p, dict):
            continue
        photo = {
            "id": p.get("id") if isinstance(p.get("id"), str) else "",
            "path": p.get("path") if isinstance(p.get("path"), str) else "",
            "url": p.get("url") if isinstance(p.get("url"), str) else "",
            "mime": p.get("mime") if isinstance(p.get("mime"), str) else "",
            "created_at": now,
        }
        for dim in ("width", "height"):
            if isinstance(p.get(dim), (int, float)) and not isinstance(p.get(dim), bool):
                photo[dim] = p[dim]
        if photo["id"] and photo["path"]:
            out.append(photo)
    return out


def finalize_photos(store: ListingStore, listing_id, photos: Any, owner_id: Optional[str] = None):
    """Merge uploaded photo descriptors into the gallery and refresh the cover."""
    clean = clean_photos(photos)
    if not clean:
        raise ValidationError("photos[] is required", ["photos"])
    existing = _fetch(store, "id, image_gallery", listing_id, owner_id)
    if not existing:
        raise NotFoundError()
    current = safe_json_parse(existing.get("image_gallery"), [])
    merged = dedupe_gallery((current if isinstance(current, list) else []) + clean)
    cover = merged[0] if merged else {}
    columns = {
        "image_gallery": merged,
        "has_image": bool(merged),
        "image_path": (cover.get("url") or cover.get("path") or "").strip() or None,
    }
    return update_listing(store, listing_id, columns, owner_id)
