"""
Core shared utilities for the contextual bundle suggestion system.

This package provides the shared data models, constants, category taxonomy
and I/O utilities used across the suggestion pipeline modules.

Usage:
    from core import Venue, User, Bundle, CategoryTaxonomy
    from core import load_category_taxonomy, load_venues, load_users
    from core import DEFAULT_CATEGORY_BLACKLIST, C_EAPP
"""

from .models import Bundle, CategoryNode, Context, User, Venue
from .taxonomy import CategoryTaxonomy, UnknownCategoryError
from .data_io import (
    is_blacklisted_venue,
    load_category_taxonomy,
    load_contexts,
    load_example_to_venue_ids,
    load_ids_file,
    load_located_ids,
    load_users,
    load_venues,
    parse_venue_record,
)
from .constants import (
    C_EAPP,
    C_OPOP,
    C_TCOH,
    DEFAULT_BUNDLES_TO_RETURN,
    DEFAULT_CATEGORY_BLACKLIST,
    DEFAULT_CREATE_FACTOR,
    DEFAULT_VENUES_PER_BUNDLE,
    PIVOT_SIMILARITY_WEIGHT,
    RATING_SCALE,
    RELEVANT_RATINGS,
)

__all__ = [
    # Models
    "Bundle",
    "CategoryNode",
    "Context",
    "User",
    "Venue",
    # Taxonomy
    "CategoryTaxonomy",
    "UnknownCategoryError",
    # Data I/O
    "is_blacklisted_venue",
    "load_category_taxonomy",
    "load_contexts",
    "load_example_to_venue_ids",
    "load_ids_file",
    "load_located_ids",
    "load_users",
    "load_venues",
    "parse_venue_record",
    # Constants
    "C_EAPP",
    "C_OPOP",
    "C_TCOH",
    "DEFAULT_BUNDLES_TO_RETURN",
    "DEFAULT_CATEGORY_BLACKLIST",
    "DEFAULT_CREATE_FACTOR",
    "DEFAULT_VENUES_PER_BUNDLE",
    "PIVOT_SIMILARITY_WEIGHT",
    "RATING_SCALE",
    "RELEVANT_RATINGS",
]
