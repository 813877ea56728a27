"""Tests for the HTTP reference feed."""

import http.client
import io
import socket
from unittest.mock import MagicMock, patch
from urllib.error import HTTPError, URLError

import orjson
import pytest

from mapbot_app.errors import (
    ConfigurationError,
    ExternalDataUnavailableError,
    MalformedReferenceDataError,
)
from mapbot_app.prices.feed import DEFAULT_SOURCES, CategorySource, HttpReferenceFeed, parse_records

CURRENCY = CategorySource(name="Currency", endpoint="currencyoverview", item_type="Currency",
                          name_field="currencyTypeName", value_field="chaosEquivalent")
MAPS = CategorySource(name="Map", endpoint="itemoverview", item_type="Map")


def response_with(body: bytes) -> MagicMock:
    response = MagicMock()
    response.read.return_value = body
    response.__enter__.return_value = response
    return response


class TestParseRecords:
    """Test record extraction from category documents."""

    def test_currency_fields(self):
        payload = {"lines": [
            {"currencyTypeName": "Divine Orb", "chaosEquivalent": 150.5},
            {"currencyTypeName": "Chaos Orb"},
            {"chaosEquivalent": 3.0},
        ]}
        records = parse_records(payload, CURRENCY)
        assert [(r.name, r.value) for r in records] == [("Divine Orb", 150.5), ("Chaos Orb", 0.0)]

    def test_non_numeric_values_skipped(self):
        payload = {"lines": [{"name": "Strand Map", "chaosValue": "cheap"}, {"name": "Tower Map", "chaosValue": 2}]}
        assert [r.name for r in parse_records(payload, MAPS)] == ["Tower Map"]

    def test_missing_lines_is_malformed(self):
        with pytest.raises(MalformedReferenceDataError) as exc_info:
            parse_records({"items": []}, MAPS)
        assert exc_info.value.category == "Map"


class TestHttpReferenceFeed:
    """Test fetching categories over HTTP."""

    def test_url_includes_league_and_type(self):
        feed = HttpReferenceFeed("https://poe.ninja/api/data/", "Hardcore Settlers")
        url = feed.url_for(CURRENCY)
        assert url == "https://poe.ninja/api/data/currencyoverview?league=Hardcore+Settlers&type=Currency"

    def test_default_sources_cover_categories(self):
        names = {source.name for source in DEFAULT_SOURCES}
        assert {"Currency", "Fragment", "DivinationCard", "Map", "UniqueWeapon", "UniqueJewel"} <= names

    def test_invalid_url_rejected(self):
        with pytest.raises(ConfigurationError):
            HttpReferenceFeed("not a url", "Standard")

    @patch("mapbot_app.prices.feed.urlopen")
    def test_fetch_decodes_json(self, mock_urlopen):
        body = orjson.dumps({"lines": [{"name": "Strand Map", "chaosValue": 4.0}]})
        mock_urlopen.return_value = response_with(body)

        records = HttpReferenceFeed("https://example.test/api", "Standard").fetch(MAPS)

        assert [(r.name, r.value) for r in records] == [("Strand Map", 4.0)]

    @patch("mapbot_app.prices.feed.urlopen")
    def test_invalid_json(self, mock_urlopen):
        mock_urlopen.return_value = response_with(b"<html>maintenance</html>")
        with pytest.raises(MalformedReferenceDataError):
            HttpReferenceFeed("https://example.test/api", "Standard").fetch(MAPS)

    @patch("mapbot_app.prices.feed.urlopen")
    def test_http_error(self, mock_urlopen):
        mock_urlopen.side_effect = HTTPError("https://example.test", 503, "Unavailable", {}, io.BytesIO())
        with pytest.raises(ExternalDataUnavailableError) as exc_info:
            HttpReferenceFeed("https://example.test/api", "Standard").fetch(MAPS)
        assert exc_info.value.status_code == 503

    @patch("mapbot_app.prices.feed.urlopen")
    def test_network_errors(self, mock_urlopen):
        feed = HttpReferenceFeed("https://example.test/api", "Standard")

        mock_urlopen.side_effect = URLError("name resolution failed")
        with pytest.raises(ExternalDataUnavailableError):
            feed.fetch(MAPS)

        mock_urlopen.side_effect = socket.timeout("timed out")
        with pytest.raises(ExternalDataUnavailableError):
            feed.fetch(MAPS)

    @patch("mapbot_app.prices.feed.urlopen")
    def test_dropped_connections(self, mock_urlopen):
        feed = HttpReferenceFeed("https://example.test/api", "Standard")

        mock_urlopen.side_effect = http.client.RemoteDisconnected("closed without response")
        with pytest.raises(ExternalDataUnavailableError):
            feed.fetch(MAPS)

        mock_urlopen.side_effect = ConnectionResetError("connection reset by peer")
        with pytest.raises(ExternalDataUnavailableError):
            feed.fetch(MAPS)

    @patch("mapbot_app.prices.feed.urlopen")
    def test_truncated_body(self, mock_urlopen):
        response = response_with(b"")
        response.read.side_effect = http.client.IncompleteRead(b'{"lines": [', 120)
        mock_urlopen.side_effect = None
        mock_urlopen.return_value = response

        with pytest.raises(ExternalDataUnavailableError) as exc_info:
            HttpReferenceFeed("https://example.test/api", "Standard").fetch(MAPS)
        assert exc_info.value.category == "Map"
