"""
Shared data models for the contextual bundle suggestion system.

This module contains the core data classes used throughout the pipeline:
category nodes of the venue taxonomy, venues, users (profiles), contexts
and bundles of venues.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple


@dataclass(eq=False)
class CategoryNode:
    """A node of the venue category taxonomy.

    Identity is defined by the category id; parent/child links are excluded
    from repr to keep it readable and non-recursive.
    """
    category_id: str
    name: str
    plural_name: str = ""
    short_name: str = ""
    icon: Optional[Tuple[str, str]] = None
    parent: Optional["CategoryNode"] = field(default=None, repr=False)
    children: List["CategoryNode"] = field(default_factory=list, repr=False)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CategoryNode):
            return other.category_id == self.category_id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.category_id)

    @property
    def is_root(self) -> bool:
        return self.parent is None

    def path_to_root(self) -> List["CategoryNode"]:
        """Nodes from this one up to the root, both included."""
        path = [self]
        node = self
        while node.parent is not None:
            node = node.parent
            path.append(node)
        return path


@dataclass(eq=False)
class Venue:
    """A venue record as parsed from the venue provider.

    Only ``venue_id``, ``categories`` and ``likes`` take part in scoring;
    the remaining fields are descriptive.
    """
    venue_id: str
    name: str = ""
    categories: Dict[str, str] = field(default_factory=dict)  # category_id -> name
    likes: int = 0
    city: str = ""
    country: str = ""
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    rating: Optional[float] = None
    checkins_count: int = -1
    url: str = ""

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Venue):
            return other.venue_id == self.venue_id
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self.venue_id)


@dataclass
class User:
    """A user profile: normalized ratings of previously visited venues.

    Ratings lie in [-0.25, 1.0]; a negative rating means "unable to rate".
    """
    user_id: str
    venue_ratings: Dict[str, float] = field(default_factory=dict)

    def eligible_ratings(self) -> Dict[str, float]:
        """Ratings that are actual judgments (>= 0)."""
        return {vid: r for vid, r in self.venue_ratings.items() if r >= 0}


@dataclass
class Context:
    """A geographic context (city) for which bundles are suggested."""
    context_id: str
    name: str
    latitude: float
    longitude: float


@dataclass
class Bundle:
    """An ordered group of venues suggested together.

    Order is insertion order: the pivot first, then venues in the order they
    were picked. A venue appears at most once.
    """
    venues: List[Venue] = field(default_factory=list)

    def __post_init__(self):
        ids = [v.venue_id for v in self.venues]
        if len(ids) != len(set(ids)):
            raise ValueError(f"Duplicate venue in bundle: {ids}")

    def __len__(self) -> int:
        return len(self.venues)

    def __iter__(self) -> Iterator[Venue]:
        return iter(self.venues)

    def __contains__(self, venue: object) -> bool:
        return venue in self.venues

    @property
    def venue_ids(self) -> List[str]:
        return [v.venue_id for v in self.venues]

    def add(self, venue: Venue) -> None:
        if venue in self.venues:
            raise ValueError(f"Venue already in bundle: {venue.venue_id}")
        self.venues.append(venue)
