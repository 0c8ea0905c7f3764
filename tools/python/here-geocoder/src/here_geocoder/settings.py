"""
HERE Geocoder — Settings
=========================
Endpoint configuration and API-key providers.

The API key is read through an :class:`ApiKeyProvider` once per operation
instead of being captured at construction time, so a rotated key is picked
up by the next call.
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass

from shared.python.exceptions import ConfigurationError

API_KEY_ENV_VAR = "HERE_API_KEY"
DEFAULT_COUNTRY_CODE = "CAN"


@dataclass(frozen=True)
class HereEndpoints:
    """Base URLs of the HERE services used by this package.

    Override for a proxy or a test double.
    """

    batch: str = "https://batch.geocoder.ls.hereapi.com/6.2/jobs"
    geocode: str = "https://geocode.search.hereapi.com/v1/geocode"
    reverse_geocode: str = "https://revgeocode.search.hereapi.com/v1/revgeocode"
    autocomplete: str = "https://autocomplete.search.hereapi.com/v1/autocomplete"


class ApiKeyProvider(ABC):
    """Supplies the HERE API key on demand."""

    @abstractmethod
    def get_api_key(self) -> str:
        """Return the current API key.

        Raises:
            ConfigurationError: If no key is available.
        """


class StaticApiKeyProvider(ApiKeyProvider):
    """Always returns the key it was constructed with."""

    def __init__(self, api_key: str) -> None:
        if not api_key or not api_key.strip():
            raise ConfigurationError("HERE API key must be a non-empty string.")
        self._api_key = api_key

    def get_api_key(self) -> str:
        return self._api_key

    def __repr__(self) -> str:
        return "StaticApiKeyProvider(api_key='***')"


class EnvironmentApiKeyProvider(ApiKeyProvider):
    """Reads the key from an environment variable on every call.

    Args:
        variable: Environment variable name.  Defaults to ``HERE_API_KEY``.
    """

    def __init__(self, variable: str = API_KEY_ENV_VAR) -> None:
        self.variable = variable

    def get_api_key(self) -> str:
        value = os.environ.get(self.variable, "").strip()
        if not value:
            raise ConfigurationError(
                f"HERE API key not configured: set the {self.variable} environment variable."
            )
        return value
