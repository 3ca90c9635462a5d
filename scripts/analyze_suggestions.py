#!/usr/bin/env python
"""
Suggestion Analytics - summarize a bundle suggestion output file.

Reports:
1. Coverage: (user, context) pairs, users, contexts, distinct venues
2. Bundles: bundles per pair, mean bundle size, bundle score distribution
3. Explanations: share of suggested venues backed by similar rated venues

Usage:
    python scripts/analyze_suggestions.py output/suggestions.txt
    python scripts/analyze_suggestions.py output/suggestions.txt --json
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict

import pandas as pd


COLUMNS = ["pair", "rank", "venue_id", "score", "similar"]
FRAME_COLUMNS = [
    "pair", "user_id", "context_id", "bundle_rank", "venue_rank",
    "venue_id", "score", "similar_venue_ids",
]


def load_suggestion_frame(path: Path) -> pd.DataFrame:
    """Load suggestion lines into a DataFrame, one row per suggested venue."""
    try:
        df = pd.read_csv(
            path,
            sep=" ",
            header=None,
            names=COLUMNS,
            dtype=str,
            keep_default_na=False,
        )
    except pd.errors.EmptyDataError:
        df = pd.DataFrame(columns=COLUMNS, dtype=str)
    if df.empty:
        return pd.DataFrame(columns=FRAME_COLUMNS)

    ids = df["pair"].str.rsplit("_", n=1, expand=True).reindex(columns=[0, 1])
    ranks = df["rank"].str.split(".", n=1, expand=True).reindex(columns=[0, 1])

    return pd.DataFrame({
        "pair": df["pair"],
        "user_id": ids[0],
        "context_id": ids[1],
        "bundle_rank": pd.to_numeric(ranks[0]).astype("Int64"),
        "venue_rank": pd.to_numeric(ranks[1]).astype("Int64"),
        "venue_id": df["venue_id"],
        "score": pd.to_numeric(df["score"]).astype(float),
        "similar_venue_ids": df["similar"].fillna("").map(lambda s: s.split("#") if s else []),
    })


def summarize_suggestions(df: pd.DataFrame) -> Dict[str, Any]:
    """Per-run statistics of a suggestion frame."""
    if df.empty:
        return {
            "pairs": 0,
            "users": 0,
            "contexts": 0,
            "suggested_venues": 0,
            "distinct_venues": 0,
            "bundles": 0,
            "bundles_per_pair": 0.0,
            "mean_bundle_size": 0.0,
            "score": {"min": 0.0, "mean": 0.0, "median": 0.0, "max": 0.0},
            "explained_share": 0.0,
        }

    bundle_sizes = df.groupby(["pair", "bundle_rank"]).size()
    bundle_scores = df.groupby(["pair", "bundle_rank"])["score"].first()
    bundles_per_pair = bundle_sizes.groupby(level="pair").size()

    return {
        "pairs": int(df["pair"].nunique()),
        "users": int(df["user_id"].nunique()),
        "contexts": int(df["context_id"].nunique()),
        "suggested_venues": int(len(df)),
        "distinct_venues": int(df["venue_id"].nunique()),
        "bundles": int(len(bundle_sizes)),
        "bundles_per_pair": float(bundles_per_pair.mean()),
        "mean_bundle_size": float(bundle_sizes.mean()),
        "score": {
            "min": float(bundle_scores.min()),
            "mean": float(bundle_scores.mean()),
            "median": float(bundle_scores.median()),
            "max": float(bundle_scores.max()),
        },
        "explained_share": float((df["similar_venue_ids"].str.len() > 0).mean()),
    }


def print_summary(summary: Dict[str, Any]) -> None:
    print("=" * 60)
    print("SUGGESTION SUMMARY")
    print("=" * 60)
    print(f"Pairs: {summary['pairs']} ({summary['users']} users, {summary['contexts']} contexts)")
    print(f"Suggested venues: {summary['suggested_venues']} ({summary['distinct_venues']} distinct)")
    print(f"Bundles: {summary['bundles']} ({summary['bundles_per_pair']:.2f} per pair, "
          f"{summary['mean_bundle_size']:.2f} venues each)")
    score = summary["score"]
    print(f"Bundle score: min={score['min']:.4f} mean={score['mean']:.4f} "
          f"median={score['median']:.4f} max={score['max']:.4f}")
    print(f"Venues with explanations: {summary['explained_share']:.1%}")


def main() -> int:
    parser = argparse.ArgumentParser(description="Summarize a bundle suggestion output file")
    parser.add_argument("path", type=Path, help="Suggestion output file")
    parser.add_argument("--json", action="store_true", help="Print the summary as JSON")
    args = parser.parse_args()

    if not args.path.is_file():
        print(f"Error: File not found: {args.path}", file=sys.stderr)
        return 1

    summary = summarize_suggestions(load_suggestion_frame(args.path))
    if args.json:
        print(json.dumps(summary, ensure_ascii=False, indent=2))
    else:
        print_summary(summary)
    return 0


if __name__ == "__main__":
    sys.exit(main())
