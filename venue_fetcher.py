"""
Venue Fetcher Module - Download raw venue records from the Foursquare v2 API.

Each record is stored as ``<output_dir>/<venue_id>`` holding the JSON of
``response.venue``, which is the layout read back by ``core.load_venues``.

Features:
- Automatic retry with linear back-off for transport errors, 5xx and 429
- Skips venues already fetched, so interrupted runs can resume
- Progress tracking with tqdm
"""

import json
import time
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

import requests
from tqdm import tqdm

from core.constants import FOURSQUARE_API_URL, FOURSQUARE_TIMEOUT, MAX_RETRIES, RETRY_DELAY


class VenueFetchError(Exception):
    """Raised when a venue record cannot be retrieved."""

    def __init__(self, venue_id: str, reason: str):
        super().__init__(f"Failed to fetch venue {venue_id}: {reason}")
        self.venue_id = venue_id
        self.reason = reason


@dataclass
class FetchSummary:
    """Outcome of a batch fetch."""
    fetched: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)  # venue_id -> reason


def _is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class FoursquareVenueFetcher:
    """Client for the Foursquare venue details endpoint (userless auth).

    Example:
        fetcher = FoursquareVenueFetcher(client_id, client_secret)
        summary = fetcher.fetch_to_directory(venue_ids, Path("data/venues"))
    """

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        api_version: Optional[str] = None,
        timeout: float = FOURSQUARE_TIMEOUT,
    ):
        """Initialize the fetcher.

        Args:
            client_id: Foursquare client id
            client_secret: Foursquare client secret
            api_version: ``v`` parameter as YYYYMMDD (default: today)
            timeout: Request timeout in seconds
        """
        if not client_id or not client_secret:
            raise ValueError("Foursquare client id and secret are required")
        self.client_id = client_id
        self.client_secret = client_secret
        self.api_version = api_version or date.today().strftime("%Y%m%d")
        self.timeout = timeout

    def _make_request(self, venue_id: str, retries: int = MAX_RETRIES) -> Dict[str, Any]:
        """Request one venue with retry logic.

        Raises:
            VenueFetchError: On a non-retryable HTTP error, an unexpected body,
                             or once all retries are exhausted
        """
        params = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "v": self.api_version,
        }

        try:
            response = requests.get(
                f"{FOURSQUARE_API_URL}/{venue_id}",
                params=params,
                timeout=self.timeout,
            )
            response.raise_for_status()
        except requests.exceptions.HTTPError as e:
            status = e.response.status_code if e.response is not None else None
            if status is not None and not _is_retryable_status(status):
                raise VenueFetchError(venue_id, f"HTTP {status}") from e
            error = e
        except requests.exceptions.RequestException as e:
            error = e
        else:
            return _extract_venue(venue_id, response)

        if retries > 0:
            time.sleep(RETRY_DELAY * (MAX_RETRIES - retries + 1))
            return self._make_request(venue_id, retries - 1)
        raise VenueFetchError(venue_id, f"request failed after {MAX_RETRIES} retries: {error}") from error

    def fetch_venue(self, venue_id: str) -> Dict[str, Any]:
        """Fetch the raw record of a single venue."""
        return self._make_request(venue_id)

    def fetch_to_directory(
        self,
        venue_ids: Iterable[str],
        output_dir: Path,
        skip_existing: bool = True,
        delay_seconds: float = 0.0,
        show_progress: bool = True,
    ) -> FetchSummary:
        """Fetch venues and store each one as ``<output_dir>/<venue_id>``.

        A failing venue is recorded in the summary and the batch continues.

        Args:
            venue_ids: Venue ids to fetch
            output_dir: Destination directory (created if missing)
            skip_existing: Leave already fetched venues untouched
            delay_seconds: Pause between requests (rate limit)
            show_progress: Whether to show a progress bar

        Returns:
            FetchSummary with fetched, skipped and failed ids
        """
        output_dir.mkdir(parents=True, exist_ok=True)
        summary = FetchSummary()

        venue_ids = list(venue_ids)
        iterator = venue_ids
        if show_progress:
            iterator = tqdm(venue_ids, desc="Fetching venues")

        for venue_id in iterator:
            venue_path = output_dir / venue_id
            if skip_existing and venue_path.exists():
                summary.skipped.append(venue_id)
                continue

            try:
                venue = self.fetch_venue(venue_id)
            except VenueFetchError as e:
                summary.failed[venue_id] = e.reason
                continue

            with open(venue_path, "w", encoding="utf-8") as f:
                json.dump(venue, f, ensure_ascii=False)
            summary.fetched.append(venue_id)

            if delay_seconds > 0:
                time.sleep(delay_seconds)

        return summary


def _extract_venue(venue_id: str, response: requests.Response) -> Dict[str, Any]:
    try:
        data = response.json()
    except ValueError as e:
        raise VenueFetchError(venue_id, "response is not JSON") from e

    venue = (data.get("response") or {}).get("venue") if isinstance(data, dict) else None
    if not isinstance(venue, dict):
        raise VenueFetchError(venue_id, "response has no venue")
    return venue
