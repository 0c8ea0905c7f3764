"""Shared fixtures for the HERE Geocoder tests."""

from __future__ import annotations

import pytest

from here_geocoder.settings import StaticApiKeyProvider


@pytest.fixture()
def api_keys() -> StaticApiKeyProvider:
    """Key provider returning a fixed test key."""
    return StaticApiKeyProvider("test-key")
