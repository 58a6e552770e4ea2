import pytest

from listing_engine import crud, services
from listing_engine.errors import NotFoundError, StorageError, ValidationError
from listing_engine.reconcile import HOST_CREATE

NEW_LISTING = {
    "title": "Test Car",
    "vehicle_type": "sedan",
    "transmission": "automatic",
    "price_per_day": "45",
    "features": {
        "vehicle": {"make": "Toyota", "model": "Corolla", "year": "2020"},
        "address": {"country_code": "ca", "city": "Toronto", "postal_code": "M5V"},
    },
}


def test_create_and_get(store):
    item = services.create_listing(store, NEW_LISTING, owner_id="owner-1")["item"]
    assert item["title"] == "Test Car"
    assert item["make"] == "Toyota"
    assert item["year"] == 2020
    assert item["pricePerDay"] == 45.0
    assert item["status"] == "draft"
    assert item["address"]["countryCode"] == "CA"
    assert item["pickup"]["city"] == "Toronto"
    assert item["pickup"]["postalCode"] == "M5V"

    row = crud.get_listing(store, int(item["id"]), owner_id="owner-1")
    assert row["title"] == "Test Car"
    with pytest.raises(NotFoundError):
        crud.get_listing(store, int(item["id"]), owner_id="someone-else")


def test_create_missing_city_inserts_nothing(store):
    payload = {"title": "Civic", "vehicle_type": "sedan", "country_code": "CA"}
    with pytest.raises(ValidationError) as exc:
        services.create_listing(store, payload, owner_id="owner-1")
    assert exc.value.fields == ["city"]
    assert store.count("", []) == 0


def test_host_create_contract(store):
    payload = {"title": "Civic", "vehicle_type": "sedan", "transmission": "manual"}
    item = services.create_listing(store, payload, "owner-1", HOST_CREATE)["item"]
    assert item["address"]["city"] is None


def test_update_is_owner_scoped(store, add_listing):
    listing_id = add_listing(owner_id="owner-1")
    with pytest.raises(NotFoundError):
        services.update_listing(store, listing_id, {"title": "Stolen"}, owner_id="owner-2")

    item = services.update_listing(store, listing_id, {"title": "Renamed", "area": ""}, owner_id="owner-1")["item"]
    assert item["title"] == "Renamed"
    assert item["address"]["area"] is None


def test_update_rejects_payload_without_known_fields(store, add_listing):
    listing_id = add_listing(owner_id="owner-1")
    with pytest.raises(ValidationError):
        services.update_listing(store, listing_id, {"colour": "red"}, owner_id="owner-1")


def test_publish_merges_features_with_stored_draft(store, add_listing):
    listing_id = add_listing(
        owner_id="owner-1", status="draft", make=None,
        features={"vehicle": {"make": "Toyota", "model": "Corolla"}},
    )
    item = services.publish_listing(store, listing_id, {"features": {"vehicle": {"model": "Camry"}}},
                                    owner_id="owner-1")["item"]
    assert item["status"] == "active"
    assert item["make"] == "Toyota"
    assert item["model"] == "Camry"

    row = store.query("SELECT features FROM listings WHERE id = :p1", [listing_id])[0]
    assert "Camry" in str(row["features"]) and "Toyota" in str(row["features"])


def test_publish_missing_listing(store):
    with pytest.raises(NotFoundError):
        services.publish_listing(store, 999, {}, owner_id="owner-1")


def test_status_transitions(store, add_listing):
    listing_id = add_listing(owner_id="owner-1")
    assert crud.unpublish_listing(store, listing_id, "owner-1")["status"] == "draft"
    assert crud.deactivate_listing(store, listing_id, "owner-1")["status"] == "inactive"


def test_soft_delete_and_restore(store, add_listing):
    listing_id = add_listing(owner_id="owner-1")
    assert crud.delete_listing(store, listing_id, "owner-1") is True

    with pytest.raises(NotFoundError):
        crud.get_listing(store, listing_id)
    assert services.search(store, {})["page"]["total"] == 0
    with pytest.raises(NotFoundError):
        crud.delete_listing(store, listing_id, "owner-1")

    row = crud.restore_listing(store, listing_id, "owner-1")
    assert row["id"] == listing_id
    with pytest.raises(NotFoundError) as exc:
        crud.restore_listing(store, listing_id, "owner-1")
    assert exc.value.message == "Listing not found or not deleted"


def test_finalize_photos(store, add_listing):
    listing_id = add_listing(owner_id="owner-1", image_gallery=[{"id": "a", "path": "cars/a.jpg"}])
    photos = [
        {"id": "b", "path": "cars/b.jpg", "url": "https://cdn.example.com/b.jpg", "width": 800},
        {"id": "a", "path": "cars/a2.jpg", "mime": "image/jpeg"},
        {"id": "", "path": "cars/c.jpg"},
    ]
    row = crud.finalize_photos(store, listing_id, photos, "owner-1")
    assert row["has_image"] in (True, 1)
    assert row["image_path"] == "cars/a2.jpg"

    item = services.get_public(store, listing_id)["item"]
    assert [p["id"] for p in item["gallery"]] == ["a", "b"]
    assert item["gallery"][1]["width"] == 800
    assert item["imageUrl"] is None

    with pytest.raises(ValidationError):
        crud.finalize_photos(store, listing_id, [{"id": "x"}], "owner-1")


def test_storage_failure_is_generic(store):
    with pytest.raises(StorageError) as exc:
        store.query("SELECT nope FROM missing_table")
    assert exc.value.message == "Database query failed"
    assert "missing_table" not in str(exc.value)
    assert exc.value.__cause__ is not None


def test_unbindable_integer_is_a_storage_error(store):
    with pytest.raises(StorageError) as exc:
        store.query("SELECT :p1 AS v", [10**30])
    assert exc.value.message == "Database query failed"
    assert store.count("", []) == 0


def test_update_persists_features_sent_as_json_text(store, add_listing):
    listing_id = add_listing(owner_id="owner-1")
    services.update_listing(store, listing_id, {"features": '{"vehicle": {"make": "Kia"}}'}, owner_id="owner-1")
    row = store.query("SELECT make, features FROM listings WHERE id = :p1", [listing_id])[0]
    assert row["make"] == "Kia"
    assert "Kia" in str(row["features"])
