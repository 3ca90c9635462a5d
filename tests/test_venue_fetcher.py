#!/usr/bin/env python3
"""
Venue Fetcher Test Suite

Tests for the Foursquare venue fetcher with mocked HTTP:
1. Request parameters and response unwrapping
2. Retry on transport errors, 5xx and 429
3. Immediate failure on other HTTP errors and unexpected bodies
4. Batch fetch to a directory (skip existing, failures recorded)
5. Command-line wrapper
"""

import json
import sys
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
import requests

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import run_venue_fetcher
from core import load_venues
from core.constants import FOURSQUARE_API_URL, MAX_RETRIES
from venue_fetcher import FoursquareVenueFetcher, VenueFetchError


# =============================================================================
# Fixtures
# =============================================================================


def make_response(status_code=200, payload=None):
    """Build a mocked requests.Response."""
    response = MagicMock(spec=requests.Response)
    response.status_code = status_code
    response.json.return_value = payload if payload is not None else {}
    if status_code >= 400:
        response.raise_for_status.side_effect = requests.exceptions.HTTPError(
            f"{status_code} Error", response=response
        )
    else:
        response.raise_for_status.return_value = None
    return response


def venue_payload(venue_id):
    return {
        "meta": {"code": 200},
        "response": {
            "venue": {
                "id": venue_id,
                "name": f"Venue {venue_id}",
                "categories": [{"id": "A1", "name": "Pizza Place"}],
                "likes": {"count": 7},
            }
        },
    }


@pytest.fixture
def fetcher():
    return FoursquareVenueFetcher("my-id", "my-secret", api_version="20140806")


@pytest.fixture
def no_sleep():
    with patch("venue_fetcher.time.sleep") as sleep:
        yield sleep


# =============================================================================
# Unit Tests: Single Venue
# =============================================================================


class TestFetchVenue:
    """Tests for fetching one venue."""

    def test_request_and_unwrap(self, fetcher):
        with patch("venue_fetcher.requests.get", return_value=make_response(200, venue_payload("v1"))) as get:
            venue = fetcher.fetch_venue("v1")

        assert venue["id"] == "v1"
        assert venue["likes"]["count"] == 7
        args, kwargs = get.call_args
        assert args[0] == f"{FOURSQUARE_API_URL}/v1"
        assert kwargs["params"] == {"client_id": "my-id", "client_secret": "my-secret", "v": "20140806"}
        assert kwargs["timeout"] == 20

    def test_default_api_version_is_a_date(self):
        fetcher = FoursquareVenueFetcher("id", "secret")
        assert len(fetcher.api_version) == 8
        assert fetcher.api_version.isdigit()

    def test_credentials_required(self):
        with pytest.raises(ValueError):
            FoursquareVenueFetcher("", "secret")

    def test_retries_transport_errors(self, fetcher, no_sleep):
        responses = [
            requests.exceptions.ConnectionError("reset"),
            requests.exceptions.Timeout("slow"),
            make_response(200, venue_payload("v1")),
        ]
        with patch("venue_fetcher.requests.get", side_effect=responses) as get:
            venue = fetcher.fetch_venue("v1")

        assert venue["id"] == "v1"
        assert get.call_count == 3
        assert no_sleep.call_count == 2

    def test_retries_server_errors_and_rate_limit(self, fetcher, no_sleep):
        responses = [make_response(503), make_response(429), make_response(200, venue_payload("v1"))]
        with patch("venue_fetcher.requests.get", side_effect=responses) as get:
            fetcher.fetch_venue("v1")
        assert get.call_count == 3

    def test_gives_up_after_max_retries(self, fetcher, no_sleep):
        with patch("venue_fetcher.requests.get", return_value=make_response(500)) as get:
            with pytest.raises(VenueFetchError) as exc_info:
                fetcher.fetch_venue("v1")

        assert get.call_count == MAX_RETRIES + 1
        assert exc_info.value.venue_id == "v1"

    def test_client_error_not_retried(self, fetcher, no_sleep):
        with patch("venue_fetcher.requests.get", return_value=make_response(404)) as get:
            with pytest.raises(VenueFetchError) as exc_info:
                fetcher.fetch_venue("v1")

        assert get.call_count == 1
        assert "404" in exc_info.value.reason
        no_sleep.assert_not_called()

    def test_body_without_venue(self, fetcher):
        with patch("venue_fetcher.requests.get", return_value=make_response(200, {"response": {}})):
            with pytest.raises(VenueFetchError):
                fetcher.fetch_venue("v1")

    def test_body_not_json(self, fetcher):
        response = make_response(200)
        response.json.side_effect = ValueError("no json")
        with patch("venue_fetcher.requests.get", return_value=response):
            with pytest.raises(VenueFetchError):
                fetcher.fetch_venue("v1")


# =============================================================================
# Integration Tests: Batch Fetch
# =============================================================================


def fake_get(url, params=None, timeout=None):
    venue_id = url.rsplit("/", 1)[1]
    if venue_id == "gone":
        return make_response(404)
    return make_response(200, venue_payload(venue_id))


class TestFetchToDirectory:
    """Tests for writing fetched venues to disk."""

    def test_writes_records_readable_by_loader(self, fetcher, tmp_path):
        output_dir = tmp_path / "venues"
        with patch("venue_fetcher.requests.get", side_effect=fake_get):
            summary = fetcher.fetch_to_directory(["v1", "v2"], output_dir, show_progress=False)

        assert summary.fetched == ["v1", "v2"]
        venues = load_venues(output_dir, ["v1", "v2"])
        assert venues["v2"].likes == 7
        assert venues["v2"].categories == {"A1": "Pizza Place"}

    def test_skip_existing(self, fetcher, tmp_path):
        (tmp_path / "v1").write_text(json.dumps({"id": "v1"}), encoding="utf-8")
        with patch("venue_fetcher.requests.get", side_effect=fake_get) as get:
            summary = fetcher.fetch_to_directory(["v1", "v2"], tmp_path, show_progress=False)

        assert summary.skipped == ["v1"]
        assert summary.fetched == ["v2"]
        assert get.call_count == 1
        assert json.loads((tmp_path / "v1").read_text(encoding="utf-8")) == {"id": "v1"}

    def test_refetch_when_not_skipping(self, fetcher, tmp_path):
        (tmp_path / "v1").write_text(json.dumps({"id": "v1"}), encoding="utf-8")
        with patch("venue_fetcher.requests.get", side_effect=fake_get):
            summary = fetcher.fetch_to_directory(["v1"], tmp_path, skip_existing=False, show_progress=False)

        assert summary.fetched == ["v1"]
        assert json.loads((tmp_path / "v1").read_text(encoding="utf-8"))["name"] == "Venue v1"

    def test_failures_recorded_and_batch_continues(self, fetcher, tmp_path):
        with patch("venue_fetcher.requests.get", side_effect=fake_get):
            summary = fetcher.fetch_to_directory(["gone", "v2"], tmp_path, show_progress=False)

        assert list(summary.failed) == ["gone"]
        assert summary.fetched == ["v2"]
        assert not (tmp_path / "gone").exists()

    def test_delay_between_requests(self, fetcher, tmp_path, no_sleep):
        with patch("venue_fetcher.requests.get", side_effect=fake_get):
            fetcher.fetch_to_directory(["v1", "v2"], tmp_path, delay_seconds=0.5, show_progress=False)
        assert no_sleep.call_count == 2


# =============================================================================
# CLI
# =============================================================================


class TestVenueFetcherCli:
    """Tests for run_venue_fetcher.main."""

    @pytest.fixture
    def id_file(self, tmp_path):
        path = tmp_path / "ids.txt"
        path.write_text("v1\nv2\n", encoding="utf-8")
        return path

    def test_fetches_with_env_credentials(self, id_file, tmp_path, monkeypatch):
        monkeypatch.setenv("FOURSQUARE_CLIENT_ID", "env-id")
        monkeypatch.setenv("FOURSQUARE_CLIENT_SECRET", "env-secret")
        output_dir = tmp_path / "out"

        with patch("venue_fetcher.requests.get", side_effect=fake_get) as get:
            code = run_venue_fetcher.main([
                "--venue-id-file", str(id_file), "--output-dir", str(output_dir), "--quiet",
            ])

        assert code == 0
        assert (output_dir / "v1").exists()
        assert get.call_args.kwargs["params"]["client_id"] == "env-id"

    def test_missing_credentials(self, id_file, tmp_path, monkeypatch):
        monkeypatch.delenv("FOURSQUARE_CLIENT_ID", raising=False)
        monkeypatch.delenv("FOURSQUARE_CLIENT_SECRET", raising=False)
        with patch("run_venue_fetcher.load_dotenv"):
            code = run_venue_fetcher.main([
                "--venue-id-file", str(id_file), "--output-dir", str(tmp_path / "out"), "--quiet",
            ])
        assert code == 1
