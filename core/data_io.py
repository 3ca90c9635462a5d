"""
Shared data I/O utilities for the contextual bundle suggestion system.

This module loads the inputs of a suggestion run into the in-memory models:
the category taxonomy, venue records (one JSON file per venue), user
profiles, contexts and per-context venue id lists.
"""

import csv
import json
import logging
from pathlib import Path
from typing import Any, AbstractSet, Dict, Iterable, List, Optional

from .constants import PROFILE_RATING_COLUMN, RATING_SCALE
from .models import Context, User, Venue
from .taxonomy import CategoryTaxonomy


def load_category_taxonomy(json_path: Path) -> CategoryTaxonomy:
    """Load the category taxonomy from a JSON file.

    Accepts the bare list of top-level categories as well as the API
    envelope ``{"response": {"categories": [...]}}`` or ``{"categories": [...]}``.

    Example:
        taxonomy = load_category_taxonomy(Path("data/categories.json"))
        print(f"{len(taxonomy)} categories")
    """
    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, dict):
        data = data.get("response", data).get("categories")
    if not isinstance(data, list):
        raise ValueError(f"Invalid category file format: {json_path}")

    return CategoryTaxonomy.from_records(data)


def parse_venue_record(record: Dict[str, Any]) -> Venue:
    """Convert a raw venue record into a Venue."""
    location = record.get("location") or {}
    stats = record.get("stats") or {}
    likes = record.get("likes") or {}

    return Venue(
        venue_id=record["id"],
        name=record.get("name", ""),
        categories={c["id"]: c.get("name", "") for c in record.get("categories", [])},
        likes=int(likes.get("count", 0)),
        city=location.get("city", ""),
        country=location.get("country", ""),
        latitude=location.get("lat"),
        longitude=location.get("lng"),
        rating=record.get("rating"),
        checkins_count=int(stats.get("checkinsCount", -1)),
        url=record.get("url") or record.get("canonicalUrl", ""),
    )


def is_blacklisted_venue(venue: Venue, blacklist: AbstractSet[str]) -> bool:
    """True when every category of the venue is blacklisted.

    A venue without any category counts as blacklisted.
    """
    return all(category_id in blacklist for category_id in venue.categories)


def load_venues(
    venue_dir: Path,
    venue_ids: Iterable[str],
    category_blacklist: Optional[AbstractSet[str]] = None,
) -> Dict[str, Venue]:
    """Load venue records stored as ``<venue_dir>/<venue_id>`` JSON files.

    Args:
        venue_dir: Directory of fetched venue records
        venue_ids: Ids to load; the result keeps this order
        category_blacklist: If given, drop venues whose categories are all
                            in this set

    Returns:
        Dict mapping venue_id to Venue. Ids without a record file are skipped.
    """
    venues: Dict[str, Venue] = {}
    for venue_id in venue_ids:
        venue_path = venue_dir / venue_id
        if not venue_id or not venue_path.is_file():
            continue

        try:
            with open(venue_path, "r", encoding="utf-8") as f:
                venue = parse_venue_record(json.load(f))
        except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
            logging.warning(f"Skipping malformed venue record {venue_path}: {e}")
            continue

        if category_blacklist is not None and is_blacklisted_venue(venue, category_blacklist):
            continue
        venues[venue.venue_id] = venue

    return venues


def load_located_ids(ids_path: Path) -> List[str]:
    """Load ids listed one per line, ignoring blank lines."""
    with open(ids_path, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip()]


def load_example_to_venue_ids(csv_path: Path) -> Dict[str, str]:
    """Load the ``exampleId,venueId`` mapping (no header)."""
    mapping = {}
    with open(csv_path, "r", encoding="utf-8", newline="") as f:
        for row in csv.reader(f):
            if len(row) >= 2:
                mapping[row[0].strip()] = row[1].strip()
    return mapping


def load_users(profile_csv: Path, example_to_venue_csv: Path) -> Dict[str, User]:
    """Load user profiles.

    Each profile row holds the user id, a sample (example) venue id and the
    user's 0..4 rating in column PROFILE_RATING_COLUMN. Ratings are divided by
    RATING_SCALE; rows whose example id has no venue mapping are dropped.

    Returns:
        Dict mapping user_id to User, in file order
    """
    example_to_venue = load_example_to_venue_ids(example_to_venue_csv)

    users: Dict[str, User] = {}
    with open(profile_csv, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.reader(f)
        next(reader, None)  # header
        for row in reader:
            if len(row) <= PROFILE_RATING_COLUMN:
                continue
            user_id = row[0].strip()
            venue_id = example_to_venue.get(row[1].strip())
            if venue_id is None:
                continue

            rating = int(row[PROFILE_RATING_COLUMN]) / RATING_SCALE
            users.setdefault(user_id, User(user_id)).venue_ratings[venue_id] = rating

    return users


def load_contexts(contexts_csv: Path) -> Dict[str, Context]:
    """Load contexts from ``id,name,state,lat,lon`` rows (with header)."""
    contexts: Dict[str, Context] = {}
    with open(contexts_csv, "r", encoding="utf-8-sig", newline="") as f:
        reader = csv.reader(f)
        next(reader, None)  # header
        for row in reader:
            if len(row) < 5:
                continue
            contexts[row[0].strip()] = Context(
                context_id=row[0].strip(),
                name=row[1].strip(),
                latitude=float(row[3]),
                longitude=float(row[4]),
            )
    return contexts


def load_ids_file(json_path: Path) -> List[str]:
    """Load ids from a JSON file (expects ``[...]`` or ``{"ids": [...]}``)."""
    with open(json_path, "r", encoding="utf-8") as f:
        data = json.load(f)

    if isinstance(data, list):
        return [str(i) for i in data]
    elif isinstance(data, dict) and "ids" in data:
        return [str(i) for i in data["ids"]]
    else:
        raise ValueError("Invalid JSON format. Expected list or dict with 'ids' key.")
