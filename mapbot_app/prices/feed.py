"""
Reference price feed.

Prices are published per category as JSON documents with a ``lines`` array.
Currency-like categories name their records with ``currencyTypeName`` and
``chaosEquivalent``; item categories use ``name`` and ``chaosValue``.
"""

import http.client
import socket
from dataclasses import dataclass
from typing import Any, Protocol
from urllib.error import HTTPError, URLError
from urllib.parse import urlencode, urlparse
from urllib.request import Request, urlopen

import orjson
import structlog

from ..errors import (
    ConfigurationError,
    ExternalDataUnavailableError,
    MalformedReferenceDataError,
)
from .models import PriceRecord

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class CategorySource:
    """Where and how to read one category of reference prices."""
    name: str                        # Category label, unique per source
    endpoint: str                    # Path below the feed base URL
    item_type: str                   # Value of the ``type`` query parameter
    name_field: str = "name"
    value_field: str = "chaosValue"


_CURRENCY = {"endpoint": "currencyoverview", "name_field": "currencyTypeName",
             "value_field": "chaosEquivalent"}
_ITEMS = {"endpoint": "itemoverview", "name_field": "name", "value_field": "chaosValue"}

DEFAULT_SOURCES: tuple[CategorySource, ...] = (
    CategorySource(name="Currency", item_type="Currency", **_CURRENCY),
    CategorySource(name="Fragment", item_type="Fragment", **_CURRENCY),
    CategorySource(name="DivinationCard", item_type="DivinationCard", **_ITEMS),
    CategorySource(name="UniqueWeapon", item_type="UniqueWeapon", **_ITEMS),
    CategorySource(name="UniqueArmour", item_type="UniqueArmour", **_ITEMS),
    CategorySource(name="UniqueAccessory", item_type="UniqueAccessory", **_ITEMS),
    CategorySource(name="UniqueFlask", item_type="UniqueFlask", **_ITEMS),
    CategorySource(name="UniqueJewel", item_type="UniqueJewel", **_ITEMS),
    CategorySource(name="Map", item_type="Map", **_ITEMS),
)


class ReferenceFeed(Protocol):
    """Source of categorized reference prices."""

    def fetch(self, source: CategorySource) -> list[PriceRecord]:
        """
        Fetch every record of one category.

        Raises:
            ExternalDataUnavailableError: The category could not be fetched
            MalformedReferenceDataError: The payload has an unexpected shape
        """
        ...


def parse_records(payload: Any, source: CategorySource) -> list[PriceRecord]:
    """
    Extract price records from a decoded category document.

    Records without a name are skipped; a missing value counts as zero.
    """
    if not isinstance(payload, dict) or not isinstance(payload.get("lines"), list):
        raise MalformedReferenceDataError(
            f"Expected an object with a 'lines' array for {source.name}",
            expected_format="{'lines': [...]}",
            category=source.name,
        )

    records = []
    for line in payload["lines"]:
        if not isinstance(line, dict):
            continue

        name = line.get(source.name_field)
        if not name or not isinstance(name, str):
            continue

        value = line.get(source.value_field)
        if value is None:
            value = 0.0
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.debug("Skipping record with non-numeric value", category=source.name, name=name)
            continue

        records.append(PriceRecord(name=name, value=float(value)))

    return records


class HttpReferenceFeed:
    """Reads reference price categories over HTTP."""

    def __init__(self, base_url: str, league: str, timeout: float = 10.0):
        parsed = urlparse(base_url)
        if not parsed.scheme or not parsed.netloc:
            raise ConfigurationError(f"Invalid reference feed URL: {base_url}")

        self.base_url = base_url.rstrip("/")
        self.league = league
        self.timeout = timeout

    def url_for(self, source: CategorySource) -> str:
        query = urlencode({"league": self.league, "type": source.item_type})
        return f"{self.base_url}/{source.endpoint}?{query}"

    def fetch(self, source: CategorySource) -> list[PriceRecord]:
        url = self.url_for(source)
        body = self._get(url, source)

        try:
            payload = orjson.loads(body)
        except orjson.JSONDecodeError as e:
            raise MalformedReferenceDataError(
                f"Invalid JSON for {source.name}: {e}",
                raw_data=body[:200].decode("utf-8", errors="replace"),
                expected_format="JSON",
                category=source.name,
            ) from e

        records = parse_records(payload, source)
        logger.debug("Fetched reference prices", category=source.name, count=len(records))
        return records

    def _get(self, url: str, source: CategorySource) -> bytes:
        request = Request(url, headers={
            "Accept": "application/json",
            "User-Agent": "mapbot/0.1",
        })

        try:
            with urlopen(request, timeout=self.timeout) as response:
                return response.read()

        except HTTPError as e:
            raise ExternalDataUnavailableError(
                f"HTTP {e.code}: {e.reason}",
                url=url,
                status_code=e.code,
                category=source.name,
            ) from e

        except URLError as e:
            raise ExternalDataUnavailableError(
                f"URL error: {e.reason}",
                url=url,
                category=source.name,
            ) from e

        except socket.timeout as e:
            raise ExternalDataUnavailableError(
                f"Request timeout after {self.timeout}s",
                url=url,
                category=source.name,
            ) from e

        except (http.client.HTTPException, OSError) as e:
            raise ExternalDataUnavailableError(
                f"Connection error: {e}",
                url=url,
                category=source.name,
            ) from e
