from __future__ import annotations

from bearmaps.locations import Location, LocationIndex


def _index() -> LocationIndex:
    index = LocationIndex()
    index.add(1, -122.25, 37.87, "Cheese Board")
    index.add(2, -122.26, 37.86, "Top Dog")
    index.add(3, -122.24, 37.85, "Top Dog")
    index.add(4, -122.23, 37.84, "Topaz Cafe!")
    index.add(5, -122.22, 37.83, "TOP DOG")
    index.add(6, -122.21, 37.82, "1234")
    index.finalize()
    return index


def test_blank_cleaned_names_are_skipped() -> None:
    index = _index()
    assert len(index) == 5
    assert index.get_locations("1234") == []


def test_prefix_search_returns_distinct_full_names() -> None:
    index = _index()

    assert index.prefix_search("top") == ["TOP DOG", "Top Dog", "Topaz Cafe!"]
    assert index.prefix_search("TOP D") == ["TOP DOG", "Top Dog"]
    assert index.prefix_search("ch") == ["Cheese Board"]
    assert index.prefix_search("zzz") == []
    assert index.prefix_search("!!") == []


def test_prefix_search_limit() -> None:
    index = _index()
    assert index.prefix_search("top", limit=2) == ["TOP DOG", "Top Dog"]
    assert index.prefix_search("", limit=2) == []


def test_get_locations_matches_cleaned_name() -> None:
    index = _index()

    rows = index.get_locations("top dog")

    assert [row["id"] for row in rows] == [2, 3, 5]
    assert rows[0] == {"id": 2, "lon": -122.26, "lat": 37.86, "name": "Top Dog"}
    assert index.get_locations("Top Do") == []


def test_index_accepts_additions_after_search() -> None:
    index = _index()
    assert index.prefix_search("bear") == []
    index.add(7, -122.2, 37.8, "Bear's Lair")
    assert index.prefix_search("bear") == ["Bear's Lair"]
    assert Location(7, -122.2, 37.8, "Bear's Lair").as_dict()["name"] == "Bear's Lair"
