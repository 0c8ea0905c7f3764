"""
HERE Geocoder — Single-Item Geocoder
=====================================
Point lookups for interactive use: address → coordinates, free-text query →
coordinates, coordinates → address, and autocomplete suggestions.

Query lookups and suggestions are read through :class:`LookupCache`
instances; structured address lookups and reverse lookups always go to the
provider.  A lookup that finds nothing returns ``None`` (or ``[]``); only
transport and provider failures raise.

Usage::

    from here_geocoder import GeoCoder, HereSearchClient, EnvironmentApiKeyProvider

    geocoder = GeoCoder(HereSearchClient(EnvironmentApiKeyProvider()))
    geocoder.coordinates_from_query("350 5th Ave, New York")
"""

from __future__ import annotations

import logging
from typing import Any

from shared.python.exceptions import InputValidationError, ProviderError
from shared.python.validators import Validators

from here_geocoder.cache import DEFAULT_CACHE_CAPACITY, LookupCache
from here_geocoder.models import Address, Coordinates
from here_geocoder.search import HereSearchClient
from here_geocoder.settings import DEFAULT_COUNTRY_CODE

logger = logging.getLogger("geocodehub.here_geocoder.geocoder")

SUGGESTION_LIMIT = 5


class GeoCoder:
    """Single-item geocoder backed by HERE search APIs.

    Args:
        search: Provider client.
        coordinates_cache: Cache for :meth:`coordinates_from_query`.  Pass a
                           shared instance to share it between geocoders.
        suggestions_cache: Cache for :meth:`suggestions_from_query`.
        cache_capacity: Capacity of caches created here when not injected.
        country_code: ISO 3166 alpha-3 code that autocomplete is restricted to.
    """

    def __init__(
        self,
        search: HereSearchClient,
        *,
        coordinates_cache: LookupCache[str, Coordinates] | None = None,
        suggestions_cache: LookupCache[str, list[str]] | None = None,
        cache_capacity: int = DEFAULT_CACHE_CAPACITY,
        country_code: str = DEFAULT_COUNTRY_CODE,
    ) -> None:
        Validators.assert_required(search, "search")
        self.search = search
        self.country_code = country_code
        self.coordinates_cache: LookupCache[str, Coordinates] = (
            coordinates_cache
            if coordinates_cache is not None
            else LookupCache(cache_capacity, name="coordinates")
        )
        self.suggestions_cache: LookupCache[str, list[str]] = (
            suggestions_cache
            if suggestions_cache is not None
            else LookupCache(cache_capacity, name="suggestions")
        )

    def coordinates_from_address(self, address: Address) -> Coordinates | None:
        """Geocode a structured *address*.  Not cached.

        Returns:
            Coordinates of the first match, or ``None`` when nothing matched.
        """
        Validators.assert_required(address, "address")
        qualified = _qualified_query(address)
        if not qualified:
            raise InputValidationError("'address' has no non-empty fields to geocode.")

        items = self.search.geocode(qualified_query=qualified)
        if not items:
            logger.info("No match for address %s", qualified)
            return None
        return _position(items[0])

    def coordinates_from_query(self, query: str) -> Coordinates | None:
        """Geocode a free-text *query*, reading through the coordinates cache.

        Only non-empty results are cached, so a query that found nothing is
        asked again next time.
        """
        Validators.assert_not_blank(query, "query")
        return self.coordinates_cache.get_or_load(
            query,
            lambda: self._lookup_query(query),
            should_store=lambda value: not Coordinates.is_null_or_empty(value),
        )

    def address_from_coordinates(self, coordinates: Coordinates) -> Address | None:
        """Reverse geocode *coordinates* to the nearest address.

        Raises:
            InputValidationError: If *coordinates* is ``None`` or empty.
        """
        if Coordinates.is_null_or_empty(coordinates):
            state = "None" if coordinates is None else "empty"
            raise InputValidationError(f"Coordinates must not be {state}.")

        items = self.search.reverse_geocode(coordinates.latitude, coordinates.longitude)
        if not items:
            logger.info("No address found at (%.6f, %.6f)", coordinates.latitude, coordinates.longitude)
            return None
        return _address(items[0])

    def suggestions_from_query(self, query: str) -> list[str]:
        """Autocomplete suggestions for a partial *query*.

        Results, including an empty list, are cached per query.
        """
        Validators.assert_not_blank(query, "query")

        def load() -> list[str]:
            items = self.search.autocomplete(
                query, country_code=self.country_code, limit=SUGGESTION_LIMIT
            )
            return [item["address"]["label"] for item in items if item.get("address", {}).get("label")]

        return list(self.suggestions_cache.get_or_load(query, load))

    def _lookup_query(self, query: str) -> Coordinates | None:
        items = self.search.geocode(query)
        if not items:
            logger.info("No match for query %r", query)
            return None
        return _position(items[0])


# ---------------------------------------------------------------------------
# Private helpers
# ---------------------------------------------------------------------------


def _qualified_query(address: Address) -> str:
    parts = [
        ("street", address.street),
        ("city", address.city),
        ("state", address.region),
        ("postalCode", address.postal_code),
        ("country", address.country),
    ]
    return ";".join(f"{key}={value.strip()}" for key, value in parts if value and value.strip())


def _position(item: dict[str, Any]) -> Coordinates | None:
    try:
        position = item["position"]
        coordinates = Coordinates(float(position["lat"]), float(position["lng"]))
    except (KeyError, TypeError, ValueError) as exc:
        raise ProviderError(f"Match has no usable position: {item!r}") from exc
    return None if coordinates.is_empty else coordinates


def _address(item: dict[str, Any]) -> Address:
    fields = item.get("address") or {}
    street = f"{fields.get('houseNumber', '')} {fields.get('street', '')}".strip()
    return Address(
        street=street,
        city=fields.get("city", ""),
        region=fields.get("state", ""),
        postal_code=fields.get("postalCode", ""),
        country=fields.get("countryName", ""),
        label=fields.get("label"),
        coordinates=_position(item) if "position" in item else None,
    )
