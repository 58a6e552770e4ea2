# listing_engine/api/routes.py
from contextlib import contextmanager
from fastapi import APIRouter, Body, Depends, HTTPException, Request
from sqlalchemy.orm import Session
from typing import Any, Dict, Optional
from .. import crud, geo, services
from ..db import ListingStore, get_db
from ..errors import NotFoundError, StorageError, ValidationError
from ..projector import to_public
from ..reconcile import HOST_CREATE, PUBLIC_CREATE

router = APIRouter()


def get_store(db: Session = Depends(get_db)) -> ListingStore:
    return ListingStore(db)


def get_owner_id(request: Request) -> str:
    # set by the owner_from_gateway middleware (main.py) from the auth gateway header
    owner_id = getattr(request.state, "owner_id", None)
    if not owner_id:
        raise HTTPException(status_code=401, detail="Unauthorized")
    return str(owner_id)


@contextmanager
def http_errors():
    try:
        yield
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=e.message)
    except NotFoundError as e:
        raise HTTPException(status_code=404, detail=e.message)
    except StorageError as e:
        raise HTTPException(status_code=500, detail=e.message)


def _query(request: Request) -> Dict[str, Any]:
    return dict(request.query_params)


@router.get("/health")
def health():
    return {"status": "ok"}


# read routes (public)

@router.get("/listings")
def listings(request: Request, store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.search(store, _query(request))


@router.get("/listings/search")
def search_listings(request: Request, store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.search(store, _query(request))


@router.get("/listings/map")
def listings_map(request: Request, store: ListingStore = Depends(get_store)):
    raw = _query(request)
    with http_errors():
        bbox = geo.parse_bounds(raw)
        return services.search_in_bounds(store, raw, bbox, geo.parse_radius(raw))


@router.get("/listings/filters")
def listing_filters(request: Request, store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.filter_options(store, _query(request))


@router.get("/listings/suggest")
def suggest_listings(request: Request, store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.suggest(store, _query(request))


@router.get("/listings/featured")
def featured_listings(request: Request, store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.featured(store, _query(request))


@router.get("/listings/popular")
def popular_listings(request: Request, store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.popular(store, _query(request))


@router.get("/listings/stats")
def listing_stats(request: Request, store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.stats(store, _query(request))


@router.get("/listings/{listing_id}")
def get_listing(listing_id: int, store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.get_public(store, listing_id)


@router.get("/listings/{listing_id}/similar")
def similar_listings(listing_id: int, request: Request, store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.similar(store, listing_id, _query(request))


# write routes (owner identity required)

@router.get("/host/listings")
def host_listings(request: Request, owner_id: str = Depends(get_owner_id),
                  store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.owner_listings(store, owner_id, _query(request))


@router.post("/listings", status_code=201)
def create_listing(payload: Dict[str, Any] = Body(...), owner_id: str = Depends(get_owner_id),
                   store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.create_listing(store, payload, owner_id, PUBLIC_CREATE)


@router.post("/host/listings", status_code=201)
def create_host_listing(payload: Dict[str, Any] = Body(...), owner_id: str = Depends(get_owner_id),
                        store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.create_listing(store, payload, owner_id, HOST_CREATE)


@router.patch("/listings/{listing_id}")
def update_listing(listing_id: int, payload: Dict[str, Any] = Body(...),
                   owner_id: str = Depends(get_owner_id), store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.update_listing(store, listing_id, payload, owner_id)


@router.post("/listings/{listing_id}/publish")
def publish_listing(listing_id: int, payload: Optional[Dict[str, Any]] = Body(None),
                    owner_id: str = Depends(get_owner_id), store: ListingStore = Depends(get_store)):
    with http_errors():
        return services.publish_listing(store, listing_id, payload or {}, owner_id)


@router.post("/listings/{listing_id}/unpublish")
def unpublish_listing(listing_id: int, owner_id: str = Depends(get_owner_id),
                      store: ListingStore = Depends(get_store)):
    with http_errors():
        return {"item": to_public(crud.unpublish_listing(store, listing_id, owner_id))}


@router.post("/listings/{listing_id}/deactivate")
def deactivate_listing(listing_id: int, owner_id: str = Depends(get_owner_id),
                       store: ListingStore = Depends(get_store)):
    with http_errors():
        return {"item": to_public(crud.deactivate_listing(store, listing_id, owner_id))}


@router.post("/listings/{listing_id}/photos")
def finalize_photos(listing_id: int, payload: Dict[str, Any] = Body(...),
                    owner_id: str = Depends(get_owner_id), store: ListingStore = Depends(get_store)):
    with http_errors():
        row = crud.finalize_photos(store, listing_id, payload.get("photos"), owner_id)
        return {"item": to_public(row)}


@router.delete("/listings/{listing_id}")
def delete_listing(listing_id: int, owner_id: str = Depends(get_owner_id),
                   store: ListingStore = Depends(get_store)):
    with http_errors():
        crud.delete_listing(store, listing_id, owner_id)
    return {"status": "deleted", "id": str(listing_id)}


@router.post("/listings/{listing_id}/restore")
def restore_listing(listing_id: int, owner_id: str = Depends(get_owner_id),
                    store: ListingStore = Depends(get_store)):
    with http_errors():
        return {"item": to_public(crud.restore_listing(store, listing_id, owner_id))}
