"""
GeocodeHub — Shared Python Package
===================================
Re-exports the shared base class, exception hierarchy, and validator
utilities so individual tools can import from a single location::

    from shared.python import GeoTool, Validators
    from shared.python.exceptions import TransportError
"""

from shared.python.base_tool import GeoTool, configure_console_logging
from shared.python.exceptions import (
    BatchJobFailedError,
    BatchJobInterruptedError,
    ColumnNotFoundError,
    ConfigurationError,
    GeocodeHubError,
    GeocodingError,
    GeocodingRateLimitError,
    InputValidationError,
    MalformedResultError,
    OutputWriteError,
    ProviderError,
    TransportError,
)
from shared.python.validators import Validators

__all__ = [
    "GeoTool",
    "Validators",
    "configure_console_logging",
    "GeocodeHubError",
    "InputValidationError",
    "ColumnNotFoundError",
    "ConfigurationError",
    "GeocodingError",
    "TransportError",
    "GeocodingRateLimitError",
    "ProviderError",
    "MalformedResultError",
    "BatchJobInterruptedError",
    "BatchJobFailedError",
    "OutputWriteError",
]
