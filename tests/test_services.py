import pytest

from listing_engine import services
from listing_engine.errors import NotFoundError


def test_city_search_with_inverted_price_range(store, add_listing):
    add_listing(title="Cheap", price_per_day=15)
    match = add_listing(title="Mid", price_per_day=30)
    add_listing(title="Pricey", price_per_day=80)
    add_listing(title="Montreal", city="Montreal", price_per_day=30)
    add_listing(title="Inactive", price_per_day=30, status="inactive")

    out = services.search(store, {"city": "toronto", "minPrice": "50", "maxPrice": "20"})
    assert [item["id"] for item in out["items"]] == [str(match)]
    assert out["page"]["total"] == 1


def test_search_term_and_explicit_status(store, add_listing):
    add_listing(title="Family van", make="Honda", model="Odyssey")
    add_listing(title="Sporty", make="Mazda", model="MX-5", area="Liberty Village")
    add_listing(title="Old Honda", make="Honda", status="inactive")

    assert [i["title"] for i in services.search(store, {"q": "honda"})["items"]] == ["Family van"]
    assert [i["title"] for i in services.search(store, {"q": "liberty"})["items"]] == ["Sporty"]
    assert [i["title"] for i in services.search(store, {"q": "honda", "status": "inactive"})["items"]] == ["Old Honda"]


def test_has_image_filter(store, add_listing):
    add_listing(title="Public", has_image=True, image_public=True, image_path="a.jpg")
    add_listing(title="Private", has_image=True, image_public=False, image_path="b.jpg")
    add_listing(title="None", has_image=False)

    with_image = services.search(store, {"hasImage": "true"})["items"]
    without = services.search(store, {"hasImage": "false", "sort": "newest"})["items"]
    assert [i["title"] for i in with_image] == ["Public"]
    assert [i["title"] for i in without] == ["None"]


def test_get_public_hides_deleted_rows(store, add_listing):
    listing_id = add_listing(status="draft")
    assert services.get_public(store, listing_id)["item"]["status"] == "draft"

    gone = add_listing(deleted_at=None)
    store.execute("UPDATE listings SET deleted_at = CURRENT_TIMESTAMP WHERE id = :p1", [gone])
    with pytest.raises(NotFoundError):
        services.get_public(store, gone)


def test_filter_options(store, add_listing):
    add_listing(vehicle_type="suv", transmission="manual", seats=7, year=2018, price_per_day=60, area="Annex")
    add_listing(vehicle_type="sedan", seats=5, year=2022, price_per_day=25, area=" ")
    add_listing(vehicle_type="truck", status="draft", price_per_day=500)
    add_listing(vehicle_type="van", country_code="US", city="Austin")

    out = services.filter_options(store, {"country": "CA"})
    assert out["country"] == "CA"
    assert out["vehicleTypes"] == ["sedan", "suv"]
    assert out["transmissions"] == ["automatic", "manual"]
    assert out["seats"] == [5, 7]
    assert out["year"] == {"min": 2018, "max": 2022}
    assert out["pricePerDay"] == {"min": 25, "max": 60}
    assert out["areas"] == ["Annex"]


def test_suggest(store, add_listing):
    add_listing(title="Corolla LE", area="Downtown", is_popular=True)
    add_listing(title="Corolla S")
    add_listing(title="Corolla draft", status="draft")

    assert services.suggest(store, {"q": "  "}) == {"items": []}
    items = services.suggest(store, {"q": "corolla", "limit": "5"})["items"]
    assert [i["label"] for i in items] == ["Corolla LE • Downtown • Toronto", "Corolla S • Toronto"]
    assert len(services.suggest(store, {"q": "corolla", "limit": "1"})["items"]) == 1


def test_featured_and_popular_rails(store, add_listing):
    add_listing(title="Plain", rating=4.9)
    add_listing(title="Featured", is_featured=True)
    add_listing(title="Popular", is_popular=True)
    add_listing(title="Hidden", is_featured=True, status="draft")

    assert [i["title"] for i in services.featured(store)["items"]] == ["Featured", "Popular", "Plain"]
    assert [i["title"] for i in services.popular(store, {"limit": "2"})["items"]] == ["Popular", "Plain"]


def test_stats(store, add_listing):
    add_listing(pickup_lat=43.6, pickup_lng=-79.4, has_image=True, image_path="a.jpg", price_per_day=20)
    add_listing(status="draft", price_per_day=90)
    add_listing(city="Montreal", price_per_day=5)

    stats = services.stats(store, {"country": "CA", "city": "toronto"})["stats"]
    assert stats["total"] == 2
    assert stats["active"] == 1
    assert stats["with_coords"] == 1
    assert stats["with_public_image"] == 1
    assert (stats["min_price_per_day"], stats["max_price_per_day"]) == (20, 90)


def test_similar_prefers_same_type_then_country(store, add_listing):
    base = add_listing(vehicle_type="suv")
    same_type = add_listing(vehicle_type="suv")
    add_listing(vehicle_type="sedan")
    add_listing(vehicle_type="suv", country_code="US")

    assert [i["id"] for i in services.similar(store, base)["items"]] == [str(same_type)]

    lonely = add_listing(vehicle_type="truck")
    ids = [i["id"] for i in services.similar(store, lonely)["items"]]
    assert str(lonely) not in ids
    assert len(ids) == 3


def test_owner_listings_show_every_status(store, add_listing):
    add_listing(owner_id="owner-1", status="draft")
    add_listing(owner_id="owner-1", status="inactive")
    add_listing(owner_id="owner-2")

    out = services.owner_listings(store, "owner-1", {"limit": "500"})
    assert out["page"] == {"limit": 100, "offset": 0, "total": 2}
    assert sorted(i["status"] for i in out["items"]) == ["draft", "inactive"]
