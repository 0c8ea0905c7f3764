"""
HERE Geocoder
==============
Single-item and batch geocoding against the HERE APIs.

Public API::

    from here_geocoder import BatchGeoCoder, BatchJobClient, GeoCoder, HereSearchClient
"""

from here_geocoder.batch import BatchGeoCoder
from here_geocoder.cache import LookupCache
from here_geocoder.decoding import DecodedRow, decode_results
from here_geocoder.encoding import encode_addresses
from here_geocoder.geocoder import GeoCoder
from here_geocoder.jobs import BatchJobClient
from here_geocoder.models import Address, BatchJob, BatchOutcome, Coordinates, JobStatus
from here_geocoder.search import HereSearchClient
from here_geocoder.settings import (
    ApiKeyProvider,
    EnvironmentApiKeyProvider,
    HereEndpoints,
    StaticApiKeyProvider,
)

__all__ = [
    "Address",
    "ApiKeyProvider",
    "BatchGeoCoder",
    "BatchJob",
    "BatchJobClient",
    "BatchOutcome",
    "Coordinates",
    "DecodedRow",
    "EnvironmentApiKeyProvider",
    "GeoCoder",
    "HereEndpoints",
    "HereSearchClient",
    "JobStatus",
    "LookupCache",
    "StaticApiKeyProvider",
    "decode_results",
    "encode_addresses",
]
__version__ = "1.0.0"
