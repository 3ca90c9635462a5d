"""
Contextual Bundle Builder Module - Suggest bundles of venues for a user in a context.

This module builds small, coherent bundles of venues located in a context and
ranks them for a given user by combining:
1. Overall popularity (opop): likes of a venue normalized by the local maximum
2. Topical coherence (tcoh): taxonomy-based similarity inside the bundle
3. Estimated appreciation (eapp): the user's past ratings, weighted by the
   topical similarity of the rated venues

Design Philosophy:
- Bundles are grown greedily around popular pivot venues ("bobo": bundles
  one-by-one), then the best-scoring bundles are kept
- Every suggested venue can be explained by highly rated venues of the same
  category from the user's history
- Scoring is a pure function of a bundle's members; iteration order over the
  local venues is fixed, so identical inputs give identical suggestions
"""

import dataclasses
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

import numpy as np

from core.constants import (
    C_EAPP,
    C_OPOP,
    C_TCOH,
    DEFAULT_BUNDLES_TO_RETURN,
    DEFAULT_CREATE_FACTOR,
    DEFAULT_VENUES_PER_BUNDLE,
    PIVOT_SIMILARITY_WEIGHT,
    RELEVANT_RATINGS,
)
from core.models import Bundle, User, Venue
from core.taxonomy import CategoryTaxonomy


# ============================================================================
# Data Classes
# ============================================================================

@dataclass(frozen=True)
class ScoringWeights:
    """Exponents of the weighted geometric mean used as bundle score."""
    opop: float = C_OPOP
    tcoh: float = C_TCOH
    eapp: float = C_EAPP

    def __post_init__(self):
        if min(self.opop, self.tcoh, self.eapp) < 0:
            raise ValueError(f"Scoring weights must be non-negative: {self}")
        if self.total <= 0:
            raise ValueError("At least one scoring weight must be positive")

    @property
    def total(self) -> float:
        return self.opop + self.tcoh + self.eapp

    def combine(self, opop: float, tcoh: float, eapp: float) -> float:
        """Weighted geometric mean of the three component scores.

        Components are clamped at 0, so a zero (or negative) component with a
        positive weight gives a score of 0.
        """
        components = np.clip([opop, tcoh, eapp], 0.0, None)
        weights = np.array([self.opop, self.tcoh, self.eapp])
        product = float(np.prod(np.power(components, weights)))
        return product ** (1.0 / self.total)


@dataclass
class SuggestedVenue:
    """A venue within a suggested bundle."""
    venue_id: str
    venue_name: str
    rank: int
    similar_venue_ids: List[str] = field(default_factory=list)  # explanation


@dataclass
class SuggestedBundle:
    """A ranked bundle with its score."""
    rank: int
    score: float
    venues: List[SuggestedVenue] = field(default_factory=list)


@dataclass
class BundleSuggestions:
    """Complete suggestions for one (user, context) pair."""
    user_id: str
    context_id: str
    bundles: List[SuggestedBundle] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)


# ============================================================================
# Topical Similarity
# ============================================================================

class TopicalSimilarity:
    """Taxonomy-based similarity between sets of categories.

    Two categories at tree distance d have similarity 1 / (1 + d); two venues
    take the best similarity over all pairs of their categories.
    """

    def __init__(self, taxonomy: CategoryTaxonomy):
        self.taxonomy = taxonomy

    def category_similarity(self, category_id1: str, category_id2: str) -> float:
        return 1.0 / (1 + self.taxonomy.distance(category_id1, category_id2))

    def tsim(self, categories1: Iterable[str], categories2: Iterable[str]) -> float:
        """Maximum pairwise category similarity; 0.0 if either side is empty.

        Raises:
            UnknownCategoryError: If a category id is not in the taxonomy
        """
        categories2 = list(categories2)
        max_similarity = 0.0
        for category_id1 in categories1:
            for category_id2 in categories2:
                similarity = self.category_similarity(category_id1, category_id2)
                if similarity > max_similarity:
                    max_similarity = similarity
        return max_similarity

    def shares_category(self, categories1: Iterable[str], categories2: Iterable[str]) -> bool:
        """True when some pair of categories is at distance 0 (tsim == 1)."""
        categories2 = list(categories2)
        return any(
            self.taxonomy.distance(c1, c2) == 0
            for c1 in categories1
            for c2 in categories2
        )


# ============================================================================
# Scoring
# ============================================================================

class BundleScorer:
    """Popularity, appreciation and coherence scores for venues and bundles.

    Venue categories are resolved against the taxonomy once: unknown ids are
    dropped with a warning and venues left without any category are excluded.
    The caller's maps are never modified.
    """

    def __init__(
        self,
        taxonomy: CategoryTaxonomy,
        user: User,
        local_venues: Dict[str, Venue],
        rated_venues: Dict[str, Venue],
        weights: Optional[ScoringWeights] = None,
    ):
        """Initialize the scorer.

        Args:
            taxonomy: Category taxonomy shared by all pairs (read-only)
            user: User whose ratings drive the appreciation estimate
            local_venues: Venues of the current context, in a fixed order
            rated_venues: Venues rated by the user
            weights: Exponents of the bundle score (default: 1, 1, 10)
        """
        self.similarity = TopicalSimilarity(taxonomy)
        self.taxonomy = taxonomy
        self.user = user
        self.weights = weights or ScoringWeights()

        self.local_venues = self._resolve_venues(local_venues, "local")
        self.rated_venues = self._resolve_venues(rated_venues, "rated")
        self.max_likes = max([1] + [v.likes for v in self.local_venues.values()])
        self.eligible_ratings = self._collect_eligible_ratings()

        self._tsim_cache: Dict[Tuple[str, str], float] = {}
        self._eapp_cache: Dict[str, float] = {}

    def _resolve_venues(self, venues: Dict[str, Venue], kind: str) -> Dict[str, Venue]:
        resolved = {}
        for venue_id, venue in venues.items():
            known = {cid: name for cid, name in venue.categories.items() if cid in self.taxonomy}
            unknown = [cid for cid in venue.categories if cid not in known]
            if unknown:
                logging.warning(
                    f"Venue {venue_id} ({kind}) references categories missing from the taxonomy: {unknown}"
                )
            if not known:
                logging.warning(f"Excluding {kind} venue {venue_id}: no resolvable category")
                continue
            resolved[venue_id] = venue if not unknown else dataclasses.replace(venue, categories=known)
        return resolved

    def _collect_eligible_ratings(self) -> List[Tuple[Venue, float]]:
        eligible = []
        for venue_id, rating in self.user.eligible_ratings().items():
            rated_venue = self.rated_venues.get(venue_id)
            if rated_venue is None:
                logging.warning(f"User {self.user.user_id}: no usable record for rated venue {venue_id}")
                continue
            eligible.append((rated_venue, rating))
        return eligible

    def tsim(self, venue1: Venue, venue2: Venue) -> float:
        key = (venue1.venue_id, venue2.venue_id)
        if key not in self._tsim_cache:
            similarity = self.similarity.tsim(venue1.categories, venue2.categories)
            self._tsim_cache[key] = similarity
            self._tsim_cache[(venue2.venue_id, venue1.venue_id)] = similarity
        return self._tsim_cache[key]

    def venue_opop(self, venue: Venue) -> float:
        return venue.likes / self.max_likes

    def bundle_opop(self, bundle: Bundle) -> float:
        _require_venues(bundle)
        return float(np.mean([self.venue_opop(v) for v in bundle]))

    def venue_eapp(self, venue: Venue) -> float:
        """Similarity-weighted average of the user's eligible ratings.

        Defined as 0.0 when the total similarity weight is zero.
        """
        if venue.venue_id in self._eapp_cache:
            return self._eapp_cache[venue.venue_id]

        weighted_sum = 0.0
        total_weight = 0.0
        for rated_venue, rating in self.eligible_ratings:
            similarity = self.tsim(venue, rated_venue)
            weighted_sum += rating * similarity
            total_weight += similarity

        eapp = weighted_sum / total_weight if total_weight > 0 else 0.0
        self._eapp_cache[venue.venue_id] = eapp
        return eapp

    def bundle_eapp(self, bundle: Bundle) -> float:
        _require_venues(bundle)
        return float(np.mean([self.venue_eapp(v) for v in bundle]))

    def tcoh(self, bundle: Bundle) -> float:
        """Mean similarity over all n x n ordered pairs, self-pairs included."""
        _require_venues(bundle)
        matrix = np.array([[self.tsim(v1, v2) for v2 in bundle] for v1 in bundle])
        return float(matrix.mean())

    def score(self, bundle: Bundle) -> float:
        return self.weights.combine(
            self.bundle_opop(bundle),
            self.tcoh(bundle),
            self.bundle_eapp(bundle),
        )


def _require_venues(bundle: Bundle) -> None:
    if len(bundle) == 0:
        raise ValueError("Cannot score an empty bundle")


# ============================================================================
# Contextual Bundle Builder
# ============================================================================

class ContextualBundleBuilder:
    """Greedy bundle construction and selection for one (user, context) pair.

    Example:
        builder = ContextualBundleBuilder(taxonomy, user, local_venues, rated_venues)
        suggestions = builder.suggest(venues_per_bundle=5, bundles_to_return=10)
    """

    def __init__(
        self,
        taxonomy: CategoryTaxonomy,
        user: User,
        local_venues: Dict[str, Venue],
        rated_venues: Dict[str, Venue],
        weights: Optional[ScoringWeights] = None,
        context_id: str = "",
    ):
        self.scorer = BundleScorer(taxonomy, user, local_venues, rated_venues, weights)
        self.user = user
        self.context_id = context_id

    def bobo(self, max_venues_per_bundle: int, bundle_count: int) -> List[Bundle]:
        """Build up to ``bundle_count`` candidate bundles, one by one.

        Local venues are taken as pivots by decreasing popularity. Each bundle
        is grown around its pivot from the venues not used yet; a venue used in
        a bundle is neither reused nor taken as a later pivot.
        """
        if max_venues_per_bundle < 1:
            raise ValueError(f"max_venues_per_bundle must be >= 1, got {max_venues_per_bundle}")

        pool: Dict[str, Venue] = dict(self.scorer.local_venues)
        pivots = sorted(pool.values(), key=self.scorer.venue_opop, reverse=True)
        used_ids: Set[str] = set()

        candidates: List[Bundle] = []
        for pivot in pivots:
            if len(candidates) >= bundle_count:
                break
            if pivot.venue_id in used_ids:
                continue

            del pool[pivot.venue_id]
            bundle = self.pick_bundle(pivot, pool, max_venues_per_bundle)
            for venue in bundle:
                pool.pop(venue.venue_id, None)
                used_ids.add(venue.venue_id)
            candidates.append(bundle)

        return candidates

    def pick_bundle(
        self,
        pivot: Venue,
        pool: Dict[str, Venue],
        max_venues_per_bundle: int,
    ) -> Bundle:
        """Grow a bundle from ``pivot`` with the best companions in ``pool``.

        ``pool`` itself is left untouched.
        """
        bundle = Bundle([pivot])
        active = {vid: v for vid, v in pool.items() if vid != pivot.venue_id}

        while len(bundle) < max_venues_per_bundle and active:
            companion = self._find_best_companion(pivot, active)
            del active[companion.venue_id]
            bundle.add(companion)

        return bundle

    def _find_best_companion(self, pivot: Venue, active: Dict[str, Venue]) -> Venue:
        # Ties keep the first venue in pool order
        best_value = -1.0
        best_venue = None
        for venue in active.values():
            value = (
                PIVOT_SIMILARITY_WEIGHT * self.scorer.tsim(pivot, venue)
                + self.scorer.venue_eapp(venue)
            ) / (PIVOT_SIMILARITY_WEIGHT + 1)
            if value > best_value:
                best_value = value
                best_venue = venue
        return best_venue

    def choose_bundles(self, candidates: List[Bundle], bundle_count: int) -> List[Bundle]:
        """Pick the ``bundle_count`` best-scoring candidates, best first.

        Scores are recomputed on every pass; ties keep the earlier candidate.
        """
        active = list(candidates)
        chosen: List[Bundle] = []

        while len(chosen) < bundle_count and active:
            best_index = 0
            best_score = -1.0
            for index, bundle in enumerate(active):
                score = self.scorer.score(bundle)
                if score > best_score:
                    best_index = index
                    best_score = score
            chosen.append(active.pop(best_index))

        return chosen

    def find_similar_relevant_venues(self, venue: Venue) -> List[Venue]:
        """Rated venues sharing a category with ``venue`` and rated 0.75 or 1.0.

        Ordered by decreasing estimated appreciation.
        """
        matches = []
        for rated_id, rating in self.user.venue_ratings.items():
            rated_venue = self.scorer.rated_venues.get(rated_id)
            if rated_venue is None or rating not in RELEVANT_RATINGS:
                continue
            if self.scorer.similarity.shares_category(venue.categories, rated_venue.categories):
                matches.append(rated_venue)

        return sorted(matches, key=self.scorer.venue_eapp, reverse=True)

    def suggest(
        self,
        venues_per_bundle: int = DEFAULT_VENUES_PER_BUNDLE,
        bundles_to_create: Optional[int] = None,
        bundles_to_return: int = DEFAULT_BUNDLES_TO_RETURN,
    ) -> BundleSuggestions:
        """Build, rank and explain bundles for this pair.

        Args:
            venues_per_bundle: Maximum number of venues in a bundle
            bundles_to_create: Size of the candidate pool
                               (default: DEFAULT_CREATE_FACTOR * bundles_to_return)
            bundles_to_return: Number of bundles to keep

        Returns:
            BundleSuggestions object
        """
        if bundles_to_create is None:
            bundles_to_create = DEFAULT_CREATE_FACTOR * bundles_to_return

        candidates = self.bobo(venues_per_bundle, bundles_to_create)
        chosen = self.choose_bundles(candidates, bundles_to_return)

        bundles = []
        for bundle_rank, bundle in enumerate(chosen, 1):
            bundles.append(SuggestedBundle(
                rank=bundle_rank,
                score=self.scorer.score(bundle),
                venues=[
                    SuggestedVenue(
                        venue_id=venue.venue_id,
                        venue_name=venue.name,
                        rank=venue_rank,
                        similar_venue_ids=[
                            v.venue_id for v in self.find_similar_relevant_venues(venue)
                        ],
                    )
                    for venue_rank, venue in enumerate(bundle, 1)
                ],
            ))

        return BundleSuggestions(
            user_id=self.user.user_id,
            context_id=self.context_id,
            bundles=bundles,
            metadata={
                "local_venues": len(self.scorer.local_venues),
                "rated_venues": len(self.scorer.rated_venues),
                "eligible_ratings": len(self.scorer.eligible_ratings),
                "max_likes": self.scorer.max_likes,
                "candidate_bundles": len(candidates),
                "venues_per_bundle": venues_per_bundle,
                "weights": dataclasses.asdict(self.scorer.weights),
            },
        )


# ============================================================================
# Utility Functions
# ============================================================================

def format_suggestion_line(
    user_id: str,
    context_id: str,
    bundle_rank: int,
    venue_rank: int,
    venue_id: str,
    bundle_score: float,
    similar_venue_ids: List[str],
) -> str:
    """Format one output line.

    ``<userId>_<contextId> <bundleRank>.<venueRank> <venueId> <bundleScore> [id1#id2#...]``
    """
    line = f"{user_id}_{context_id} {bundle_rank}.{venue_rank} {venue_id} {float(bundle_score)!r}"
    if similar_venue_ids:
        line += " " + "#".join(similar_venue_ids)
    return line


def suggestions_to_lines(suggestions: BundleSuggestions) -> List[str]:
    """One line per venue, by bundle rank then venue rank."""
    return [
        format_suggestion_line(
            suggestions.user_id,
            suggestions.context_id,
            bundle.rank,
            venue.rank,
            venue.venue_id,
            bundle.score,
            venue.similar_venue_ids,
        )
        for bundle in suggestions.bundles
        for venue in bundle.venues
    ]


def suggestions_to_dict(suggestions: BundleSuggestions) -> Dict[str, Any]:
    """Convert BundleSuggestions to dictionary."""
    return dataclasses.asdict(suggestions)


def save_suggestions_json(suggestions: List[BundleSuggestions], output_path: Path) -> None:
    """Save suggestions to JSON file."""
    data = [suggestions_to_dict(s) for s in suggestions]
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def print_suggestions(suggestions: BundleSuggestions) -> None:
    """Print suggestions in a human-readable format."""
    print("\n" + "=" * 70)
    print(f"Suggestions: user {suggestions.user_id}, context {suggestions.context_id}")
    print("=" * 70)

    for bundle in suggestions.bundles:
        print(f"\n[Bundle {bundle.rank}] score={bundle.score:.4f}")
        for venue in bundle.venues:
            because = f"  (like {', '.join(venue.similar_venue_ids)})" if venue.similar_venue_ids else ""
            print(f"    {bundle.rank}.{venue.rank} {venue.venue_name or venue.venue_id}{because}")

    print("\n" + "-" * 70)
    print(f"Local venues: {suggestions.metadata.get('local_venues', 0)}")
    print(f"Candidate bundles: {suggestions.metadata.get('candidate_bundles', 0)}")
    print(f"Eligible ratings: {suggestions.metadata.get('eligible_ratings', 0)}")
