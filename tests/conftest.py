"""
Shared fixtures: a small category tree and a tiny on-disk dataset.

Taxonomy used throughout:

    root
    ├── A (Food)
    │   ├── A1 (Pizza)
    │   └── A2 (Sushi)
    └── B (Arts)
        └── B1 (Museum)
"""

import csv
import json
import sys
from pathlib import Path

import pytest

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from core import CategoryTaxonomy, User, Venue


CATEGORY_RECORDS = [
    {
        "id": "A",
        "name": "Food",
        "pluralName": "Food",
        "shortName": "Food",
        "icon": {"prefix": "https://ss3.4sqi.net/img/categories_v2/food/default_", "suffix": ".png"},
        "categories": [
            {"id": "A1", "name": "Pizza Place", "pluralName": "Pizza Places",
             "shortName": "Pizza", "categories": []},
            {"id": "A2", "name": "Sushi Restaurant", "pluralName": "Sushi Restaurants",
             "shortName": "Sushi", "categories": []},
        ],
    },
    {
        "id": "B",
        "name": "Arts & Entertainment",
        "pluralName": "Arts & Entertainment",
        "shortName": "Arts",
        "categories": [
            {"id": "B1", "name": "Museum", "pluralName": "Museums",
             "shortName": "Museum", "categories": []},
        ],
    },
]


def venue_record(venue_id, category_ids, likes=0, name=None, city="Springfield"):
    """Raw venue record as returned by the venue provider."""
    return {
        "id": venue_id,
        "name": name or f"Venue {venue_id}",
        "categories": [{"id": cid, "name": cid, "icon": {}} for cid in category_ids],
        "likes": {"count": likes},
        "location": {"city": city, "country": "United States", "lat": 39.78, "lng": -89.65},
        "stats": {"checkinsCount": likes * 3},
        "rating": 8.1,
        "canonicalUrl": f"https://foursquare.com/v/{venue_id}",
    }


@pytest.fixture
def category_records():
    return json.loads(json.dumps(CATEGORY_RECORDS))


@pytest.fixture
def taxonomy(category_records):
    return CategoryTaxonomy.from_records(category_records)


@pytest.fixture
def make_venue():
    def _make(venue_id, *category_ids, likes=0):
        return Venue(venue_id=venue_id, name=f"Venue {venue_id}",
                     categories={cid: cid for cid in category_ids}, likes=likes)
    return _make


@pytest.fixture
def make_user():
    def _make(user_id="u1", **ratings):
        return User(user_id=user_id, venue_ratings=dict(ratings))
    return _make


@pytest.fixture
def dataset_dir(tmp_path, category_records):
    """Two contexts and two users, laid out the way run_suggester expects."""
    venues_dir = tmp_path / "venues"
    cities_dir = tmp_path / "cities"
    venues_dir.mkdir()
    cities_dir.mkdir()

    local = {
        "Springfield": [
            ("s1", ["A1"], 50), ("s2", ["A2"], 40), ("s3", ["B1"], 30),
            ("s4", ["A1"], 20), ("s5", ["B"], 10), ("s6", ["A"], 5),
        ],
        "Shelbyville": [
            ("t1", ["B1"], 9), ("t2", ["A2"], 7), ("t3", ["A1"], 3),
        ],
    }
    rated = [("r1", ["A1"], 100), ("r2", ["B1"], 80), ("r3", ["A2"], 60)]

    for city, venues in local.items():
        with open(cities_dir / f"{city}.ids.filtered", "w", encoding="utf-8") as f:
            for venue_id, categories, likes in venues:
                f.write(venue_id + "\n")
                with open(venues_dir / venue_id, "w", encoding="utf-8") as vf:
                    json.dump(venue_record(venue_id, categories, likes, city=city), vf)
    for venue_id, categories, likes in rated:
        with open(venues_dir / venue_id, "w", encoding="utf-8") as vf:
            json.dump(venue_record(venue_id, categories, likes, city="Elsewhere"), vf)

    with open(tmp_path / "categories.json", "w", encoding="utf-8") as f:
        json.dump({"meta": {"code": 200}, "response": {"categories": category_records}}, f)

    with open(tmp_path / "example2venue.csv", "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerows([["e1", "r1"], ["e2", "r2"], ["e3", "r3"]])

    with open(tmp_path / "profiles.csv", "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["userId", "exampleId", "attraction", "rating"])
        writer.writerows([
            ["700", "e1", "x", "4"],
            ["700", "e2", "x", "1"],
            ["700", "e3", "x", "-1"],
            ["701", "e2", "x", "4"],
            ["701", "e3", "x", "3"],
        ])

    with open(tmp_path / "contexts.csv", "w", encoding="utf-8", newline="") as f:
        writer = csv.writer(f)
        writer.writerow(["id", "name", "state", "lat", "lon"])
        writer.writerows([
            ["101", "Springfield", "IL", "39.78", "-89.65"],
            ["102", "Shelbyville", "IL", "39.40", "-88.79"],
        ])

    return tmp_path


@pytest.fixture
def suggester_argv(dataset_dir):
    """Minimal run_suggester argument list over ``dataset_dir``."""
    return [
        "--venues", str(dataset_dir / "venues"),
        "--categories", str(dataset_dir / "categories.json"),
        "--profiles", str(dataset_dir / "profiles.csv"),
        "--example-to-venue", str(dataset_dir / "example2venue.csv"),
        "--contexts", str(dataset_dir / "contexts.csv"),
        "--venues-per-city", str(dataset_dir / "cities"),
        "--output", str(dataset_dir / "out" / "suggestions.txt"),
        "--no-category-filter",
        "--quiet",
    ]
