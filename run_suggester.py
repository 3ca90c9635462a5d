#!/usr/bin/env python3
"""
Contextual Bundle Suggestion Script.

Suggest ranked bundles of venues for every (user, context) pair and write one
line per suggested venue.

Usage:
    # All users in all contexts
    python run_suggester.py --venues data/venues --categories data/categories.json \\
        --profiles data/profiles.csv --example-to-venue data/example2venue.csv \\
        --contexts data/contexts.csv --venues-per-city data/cities \\
        --output output/suggestions.txt

    # Selected users and contexts
    python run_suggester.py ... --profile-ids 700 701 --context-ids 101

    # Larger bundles, fewer of them
    python run_suggester.py ... --venues-per-bundle 8 --bundles-to-return 3
"""

import argparse
import json
import logging
import sys
import time
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

from tqdm import tqdm

from bundle_builder import (
    BundleSuggestions,
    ContextualBundleBuilder,
    ScoringWeights,
    print_suggestions,
    save_suggestions_json,
    suggestions_to_lines,
)
from core import (
    C_EAPP,
    C_OPOP,
    C_TCOH,
    DEFAULT_BUNDLES_TO_RETURN,
    DEFAULT_CATEGORY_BLACKLIST,
    DEFAULT_CREATE_FACTOR,
    DEFAULT_VENUES_PER_BUNDLE,
    Venue,
    load_category_taxonomy,
    load_contexts,
    load_ids_file,
    load_located_ids,
    load_users,
    load_venues,
)


LOCAL_IDS_SUFFIX = ".ids.filtered"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Suggest contextual bundles of venues to users.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Output line format:
  <userId>_<contextId> <bundleRank>.<venueRank> <venueId> <bundleScore> [id1#id2#...]

The trailing ids are previously rated venues of the same category that
explain the suggestion.
        """
    )

    # Data paths
    parser.add_argument("--venues", type=Path, required=True,
                        help="Directory of venue records, one JSON file per venue id")
    parser.add_argument("--categories", type=Path, required=True,
                        help="Category taxonomy JSON file")
    parser.add_argument("--profiles", type=Path, required=True,
                        help="User profiles CSV (user, example, ..., rating 0-4)")
    parser.add_argument("--example-to-venue", type=Path, required=True,
                        help="CSV mapping example ids to venue ids")
    parser.add_argument("--contexts", type=Path, required=True,
                        help="Contexts CSV (id, name, state, lat, lon)")
    parser.add_argument("--venues-per-city", type=Path, required=True,
                        help=f"Directory of <city name>{LOCAL_IDS_SUFFIX} venue id lists")

    # Output options
    parser.add_argument("--output", type=Path, required=True,
                        help="Suggestion output file")
    parser.add_argument("--append", action="store_true",
                        help="Append to the output file instead of overwriting it")
    parser.add_argument("--json-output", type=Path, default=None,
                        help="Also save the suggestions as JSON")
    parser.add_argument("--quiet", action="store_true",
                        help="Suppress console output")

    # Bundle parameters
    parser.add_argument("--bundles-to-return", type=int, default=DEFAULT_BUNDLES_TO_RETURN,
                        help=f"Bundles suggested per pair (default: {DEFAULT_BUNDLES_TO_RETURN})")
    parser.add_argument("--venues-per-bundle", type=int, default=DEFAULT_VENUES_PER_BUNDLE,
                        help=f"Maximum venues per bundle (default: {DEFAULT_VENUES_PER_BUNDLE})")
    parser.add_argument("--bundles-to-create", type=int, default=None,
                        help=f"Candidate bundles built per pair "
                             f"(default: {DEFAULT_CREATE_FACTOR} x bundles to return)")

    # Selection
    profile_group = parser.add_mutually_exclusive_group()
    profile_group.add_argument("--profile-ids", nargs="+",
                               help="Only these user ids (default: all)")
    profile_group.add_argument("--profile-ids-json", type=Path,
                               help='JSON file with user ids ([...] or {"ids": [...]})')
    context_group = parser.add_mutually_exclusive_group()
    context_group.add_argument("--context-ids", nargs="+",
                               help="Only these context ids (default: all)")
    context_group.add_argument("--context-ids-json", type=Path,
                               help='JSON file with context ids ([...] or {"ids": [...]})')

    # Category filter
    filter_group = parser.add_mutually_exclusive_group()
    filter_group.add_argument("--blacklist-file", type=Path, default=None,
                              help="Category ids to filter out, one per line "
                                   "(default: built-in non-touristic categories)")
    filter_group.add_argument("--no-category-filter", action="store_true",
                              help="Keep venues of every category")

    # Scoring weights
    parser.add_argument("--weight-opop", type=float, default=C_OPOP,
                        help=f"Weight of overall popularity (default: {C_OPOP})")
    parser.add_argument("--weight-tcoh", type=float, default=C_TCOH,
                        help=f"Weight of topical coherence (default: {C_TCOH})")
    parser.add_argument("--weight-eapp", type=float, default=C_EAPP,
                        help=f"Weight of estimated appreciation (default: {C_EAPP})")

    args = parser.parse_args(argv)

    if args.bundles_to_return < 1:
        parser.error("--bundles-to-return must be at least 1")
    if args.venues_per_bundle < 1:
        parser.error("--venues-per-bundle must be at least 1")
    if args.bundles_to_create is None:
        args.bundles_to_create = DEFAULT_CREATE_FACTOR * args.bundles_to_return
    elif args.bundles_to_create < args.bundles_to_return:
        parser.error("--bundles-to-create must be >= --bundles-to-return")

    try:
        args.weights = ScoringWeights(args.weight_opop, args.weight_tcoh, args.weight_eapp)
    except ValueError as e:
        parser.error(str(e))

    return args


def select_ids(available: Dict[str, object], requested: Optional[List[str]], kind: str) -> List[str]:
    """Requested ids that exist (all ids when none requested), in file order."""
    if not requested:
        return list(available)

    requested_set = set(requested)
    for missing in sorted(requested_set - set(available)):
        logging.warning(f"Unknown {kind} id: {missing}")
    return [i for i in available if i in requested_set]


def save_run_metadata(
    metadata_path: Path,
    args: argparse.Namespace,
    user_ids: List[str],
    context_ids: List[str],
    succeeded: int,
    failed: List[str],
    elapsed: float,
) -> None:
    """Save metadata about the suggestion run."""
    metadata = {
        "timestamp": datetime.now().isoformat(),
        "inputs": {
            "venues": str(args.venues),
            "categories": str(args.categories),
            "profiles": str(args.profiles),
            "example_to_venue": str(args.example_to_venue),
            "contexts": str(args.contexts),
            "venues_per_city": str(args.venues_per_city),
        },
        "parameters": {
            "bundles_to_return": args.bundles_to_return,
            "venues_per_bundle": args.venues_per_bundle,
            "bundles_to_create": args.bundles_to_create,
            "weights": {
                "opop": args.weights.opop,
                "tcoh": args.weights.tcoh,
                "eapp": args.weights.eapp,
            },
            "category_filter": (
                "none" if args.no_category_filter
                else str(args.blacklist_file) if args.blacklist_file
                else "default"
            ),
        },
        "users": len(user_ids),
        "contexts": len(context_ids),
        "pairs_succeeded": succeeded,
        "pairs_failed": failed,
        "elapsed_seconds": round(elapsed, 3),
    }

    with open(metadata_path, "w", encoding="utf-8") as f:
        json.dump(metadata, f, ensure_ascii=False, indent=2)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    start = time.time()

    # Validate paths
    for path in (args.categories, args.profiles, args.example_to_venue, args.contexts):
        if not path.is_file():
            print(f"Error: Input file not found: {path}", file=sys.stderr)
            return 1
    for path in (args.venues, args.venues_per_city):
        if not path.is_dir():
            print(f"Error: Input directory not found: {path}", file=sys.stderr)
            return 1
    if args.blacklist_file and not args.blacklist_file.is_file():
        print(f"Error: Blacklist file not found: {args.blacklist_file}", file=sys.stderr)
        return 1

    if args.no_category_filter:
        blacklist = None
    elif args.blacklist_file:
        blacklist = frozenset(load_located_ids(args.blacklist_file))
    else:
        blacklist = DEFAULT_CATEGORY_BLACKLIST

    if not args.quiet:
        print(f"Loading categories from {args.categories}...")
    taxonomy = load_category_taxonomy(args.categories)
    users = load_users(args.profiles, args.example_to_venue)
    contexts = load_contexts(args.contexts)
    if not args.quiet:
        print(f"Loaded {len(taxonomy)} categories, {len(users)} users, {len(contexts)} contexts")

    try:
        requested_users = load_ids_file(args.profile_ids_json) if args.profile_ids_json else args.profile_ids
        requested_contexts = load_ids_file(args.context_ids_json) if args.context_ids_json else args.context_ids
    except (OSError, ValueError) as e:
        print(f"Error: Cannot read id list: {e}", file=sys.stderr)
        return 1

    user_ids = select_ids(users, requested_users, "profile")
    context_ids = select_ids(contexts, requested_contexts, "context")

    if not args.quiet:
        print(f"\nSuggesting bundles for {len(user_ids)} users in {len(context_ids)} contexts...")
        print(f"Parameters: {args.bundles_to_return} bundles of up to {args.venues_per_bundle} venues "
              f"(from {args.bundles_to_create} candidates)")
        print(f"Weights: opop={args.weights.opop}, tcoh={args.weights.tcoh}, eapp={args.weights.eapp}")

    args.output.parent.mkdir(parents=True, exist_ok=True)
    rated_venues_by_user: Dict[str, Dict[str, Venue]] = {}
    results: List[BundleSuggestions] = []
    succeeded = 0
    failed: List[str] = []

    progress = tqdm(total=len(user_ids) * len(context_ids), desc="Suggesting", disable=args.quiet)
    with open(args.output, "a" if args.append else "w", encoding="utf-8") as out:
        for context_id in context_ids:
            context = contexts[context_id]
            local_ids_path = args.venues_per_city / f"{context.name}{LOCAL_IDS_SUFFIX}"
            try:
                local_venues = load_venues(args.venues, load_located_ids(local_ids_path), blacklist)
            except OSError as e:
                logging.warning(f"Context {context_id}: cannot load local venues: {e}")
                failed.extend(f"{user_id}_{context_id}" for user_id in user_ids)
                progress.update(len(user_ids))
                continue

            for user_id in user_ids:
                user = users[user_id]
                try:
                    if user_id not in rated_venues_by_user:
                        rated_venues_by_user[user_id] = load_venues(args.venues, user.venue_ratings)
                    builder = ContextualBundleBuilder(
                        taxonomy,
                        user,
                        local_venues,
                        rated_venues_by_user[user_id],
                        weights=args.weights,
                        context_id=context_id,
                    )
                    suggestions = builder.suggest(
                        venues_per_bundle=args.venues_per_bundle,
                        bundles_to_create=args.bundles_to_create,
                        bundles_to_return=args.bundles_to_return,
                    )
                except Exception as e:
                    logging.warning(f"Pair {user_id}_{context_id} failed: {e!r}")
                    failed.append(f"{user_id}_{context_id}")
                else:
                    for line in suggestions_to_lines(suggestions):
                        out.write(line + "\n")
                    succeeded += 1
                    if args.json_output:
                        results.append(suggestions)
                    if not args.quiet and len(user_ids) * len(context_ids) == 1:
                        print_suggestions(suggestions)
                finally:
                    progress.update(1)
    progress.close()

    metadata_path = args.output.with_name(f"{args.output.stem}.metadata.json")
    save_run_metadata(metadata_path, args, user_ids, context_ids, succeeded, failed, time.time() - start)

    if args.json_output:
        args.json_output.parent.mkdir(parents=True, exist_ok=True)
        save_suggestions_json(results, args.json_output)

    if not succeeded:
        print("No suggestions generated!", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"\nSaved suggestions: {args.output}")
        print(f"Saved metadata: {metadata_path}")
        if failed:
            print(f"Failed pairs: {len(failed)}")
        print(f"\nDone! {succeeded} pairs in {time.time() - start:.1f}s")

    return 0


if __name__ == "__main__":
    sys.exit(main())
