"""
HERE Geocoder — Search API Client
==================================
Thin wrapper over the HERE Geocoding & Search v7 endpoints used for single
lookups: forward geocode, reverse geocode and autocomplete.  Each method
returns the response's ``items`` list unchanged.

Reference:
    https://developer.here.com/documentation/geocoding-search-api/dev_guide/index.html
"""

from __future__ import annotations

import logging
from typing import Any

import requests

from shared.python.exceptions import ProviderError
from shared.python.validators import Validators

from here_geocoder.settings import ApiKeyProvider, HereEndpoints
from here_geocoder.transport import DEFAULT_TIMEOUT, send

logger = logging.getLogger("geocodehub.here_geocoder.search")


class HereSearchClient:
    """Forward, reverse and autocomplete lookups against HERE.

    Args:
        api_keys: Source of the HERE API key, queried on every request.
        session: ``requests.Session`` to reuse; created when omitted.
        endpoints: Service URLs.
        timeout: Per-request HTTP timeout in seconds.
    """

    def __init__(
        self,
        api_keys: ApiKeyProvider,
        *,
        session: requests.Session | None = None,
        endpoints: HereEndpoints | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        Validators.assert_required(api_keys, "api_keys")
        self.api_keys = api_keys
        self.endpoints = endpoints or HereEndpoints()
        self.timeout = timeout
        self._owns_session = session is None
        self._session = session or requests.Session()

    def geocode(
        self,
        query: str | None = None,
        *,
        qualified_query: str | None = None,
    ) -> list[dict[str, Any]]:
        """Forward geocode a free-form *query* or a *qualified_query* (``qq``).

        Exactly one of the two must be given.
        """
        if (query is None) == (qualified_query is None):
            raise ValueError("Pass exactly one of query or qualified_query")
        params = {"q": query} if query is not None else {"qq": qualified_query}
        return self._items(self.endpoints.geocode, params)

    def reverse_geocode(self, latitude: float, longitude: float) -> list[dict[str, Any]]:
        """Addresses nearest to the given position, best match first."""
        return self._items(self.endpoints.reverse_geocode, {"at": f"{latitude},{longitude}"})

    def autocomplete(self, query: str, *, country_code: str, limit: int) -> list[dict[str, Any]]:
        """Completion candidates for a partial address typed by a user."""
        params = {"q": query, "limit": limit, "in": f"countryCode:{country_code}"}
        return self._items(self.endpoints.autocomplete, params)

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> HereSearchClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def _items(self, url: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        params = {"apiKey": self.api_keys.get_api_key(), **params}
        response = send(self._session, "GET", url, params=params, timeout=self.timeout)
        with response:
            try:
                data = response.json()
            except ValueError as exc:
                raise ProviderError(f"Response from {url} is not valid JSON") from exc

        if not isinstance(data, dict):
            raise ProviderError(f"Unexpected response shape from {url}: {type(data).__name__}")
        items = data.get("items") or []
        logger.debug("%s returned %d item(s)", url, len(items))
        return items
