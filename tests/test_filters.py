from listing_engine.coerce import year_range
from listing_engine.filters import PredicateBuilder, build_where, parse_filter


def test_empty_filter_hides_deleted_and_inactive():
    built = build_where(parse_filter({}))
    assert built.clauses == ["deleted_at IS NULL", "status = :p1"]
    assert built.params == ["active"]


def test_explicit_status_replaces_active_default():
    built = build_where(parse_filter({"status": " inactive "}))
    assert "deleted_at IS NULL" in built.clauses
    assert built.params == ["inactive"]
    assert "active" not in built.params


def test_end_to_end_params_for_city_and_inverted_price():
    built = build_where(parse_filter({"city": "Toronto", "minPrice": "50", "maxPrice": "20"}))
    assert built.clauses == [
        "deleted_at IS NULL",
        "LOWER(city) LIKE LOWER(:p1)",
        "status = :p2",
        "price_per_day >= :p3",
        "price_per_day <= :p4",
    ]
    assert built.params == ["%Toronto%", "active", 20.0, 50.0]


def test_inverted_ranges_match_swapped_input():
    swapped = build_where(parse_filter({"minPrice": "50", "maxPrice": "20", "yearMin": "2022", "yearMax": "2015"}))
    ordered = build_where(parse_filter({"minPrice": "20", "maxPrice": "50", "yearMin": "2015", "yearMax": "2022"}))
    assert swapped == ordered


def test_unparseable_numbers_degrade_to_absent():
    f = parse_filter({"seats": "many", "yearMin": "x", "maxPrice": "", "limit": "lots"})
    assert f.seats is None and f.year_min is None and f.max_price is None and f.limit is None
    assert build_where(f).clauses == ["deleted_at IS NULL", "status = :p1"]


def test_has_image_true_false_and_other():
    built = build_where(parse_filter({"hasImage": "true"}))
    assert "has_image = :p2 AND COALESCE(image_public, :p2) = :p2" in built.clauses
    assert built.params[-1] is True

    built = build_where(parse_filter({"hasImage": "false"}))
    assert "COALESCE(has_image, :p2) = :p2" in built.clauses
    assert built.params[-1] is False

    assert len(build_where(parse_filter({"hasImage": "yes"})).clauses) == 2


def test_search_term_uses_one_placeholder():
    built = build_where(parse_filter({"q": "  corolla "}))
    term_clause = built.clauses[-1]
    assert term_clause.count(":p2") == 5
    assert ":p3" not in term_clause
    assert built.params == ["active", "%corolla%"]


def test_client_text_never_reaches_clause_text():
    hostile = "x'); DROP TABLE listings; --"
    built = build_where(parse_filter({"city": hostile, "country": hostile, "q": hostile}))
    assert all(hostile not in clause for clause in built.clauses)
    assert f"%{hostile}%" in built.params


def test_exact_fields_and_aliases():
    f = parse_filter({"country": "CA", "type": "suv", "transmission": "manual", "fuel": "ev", "seats": "5"})
    assert (f.country, f.vehicle_type, f.transmission, f.fuel_type, f.seats) == ("CA", "suv", "manual", "ev", 5)
    built = build_where(f)
    assert "country_code = :p1" in built.clauses
    assert "vehicle_type = :p2" in built.clauses
    assert "seats = :p6" in built.clauses


def test_unknown_sort_falls_back_to_popular():
    assert parse_filter({"sort": "cheapest"}).sort == "popular"
    assert parse_filter({}).sort == "popular"
    assert parse_filter({"sort": "price_asc"}).sort == "price_asc"


def test_builder_numbers_placeholders_in_order():
    b = PredicateBuilder().add("a = {}", 1).add("b BETWEEN {} AND {}", 2, 3)
    assert b.build().clauses == ["a = :p1", "b BETWEEN :p2 AND :p3"]
    assert b.bind(4) == ":p4"


def test_out_of_range_seats_and_years_are_bounded():
    lo, hi = year_range()
    f = parse_filter({"seats": "1e30", "yearMin": "1e30", "yearMax": "-1e30"})
    assert f.seats is None
    assert (f.year_min, f.year_max) == (lo, hi)
    assert parse_filter({"seats": "150"}).seats is None
    assert parse_filter({"seats": "0"}).seats is None
    assert parse_filter({"yearMin": "1900", "yearMax": "2020"}).year_min == lo
