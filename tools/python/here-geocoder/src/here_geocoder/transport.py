"""
HERE Geocoder — HTTP Transport Helpers
=======================================
Maps ``requests`` failures onto :class:`~shared.python.exceptions.TransportError`
and provides the fixed-delay retry used for batch submission and download.
"""

from __future__ import annotations

import logging
import time
from typing import Any

import requests

from shared.python.exceptions import GeocodingRateLimitError, TransportError

logger = logging.getLogger("geocodehub.here_geocoder.transport")

PROVIDER_NAME = "HERE"
DEFAULT_TIMEOUT = 30.0
DEFAULT_MAX_RETRIES = 5
DEFAULT_RETRY_DELAY = 0.6


def is_transient_status(status_code: int) -> bool:
    """HTTP 408 and every 5xx are worth retrying."""
    return status_code == 408 or status_code >= 500


def send(
    session: requests.Session,
    method: str,
    url: str,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    **kwargs: Any,
) -> requests.Response:
    """Send one request and return the response if its status is a success.

    Args:
        session: Session providing connection reuse.
        method: HTTP verb.
        url: Endpoint without query string; parameters go in ``params``.
        timeout: Seconds before the request is abandoned.
        **kwargs: Passed through to :meth:`requests.Session.request`.

    Raises:
        GeocodingRateLimitError: On HTTP 429.
        TransportError: On connection failure, timeout or any other
            non-success status.
    """
    try:
        response = session.request(method, url, timeout=timeout, **kwargs)
    except (requests.ConnectionError, requests.Timeout) as exc:
        raise TransportError(
            f"{method} {url} failed: {exc}", url=url, transient=True
        ) from exc
    except requests.RequestException as exc:
        raise TransportError(f"{method} {url} failed: {exc}", url=url) from exc

    if response.status_code == 429:
        retry_after = _retry_after_seconds(response)
        response.close()
        raise GeocodingRateLimitError(PROVIDER_NAME, retry_after=retry_after, url=url)

    if not response.ok:
        status = response.status_code
        response.close()
        raise TransportError(
            f"{method} {url} returned HTTP {status}",
            url=url,
            status_code=status,
            transient=is_transient_status(status),
        )

    return response


def send_with_retry(
    session: requests.Session,
    method: str,
    url: str,
    *,
    max_retries: int = DEFAULT_MAX_RETRIES,
    retry_delay: float = DEFAULT_RETRY_DELAY,
    **kwargs: Any,
) -> requests.Response:
    """Like :func:`send`, retrying transient failures with a fixed delay.

    Args:
        max_retries: Retries after the first attempt.
        retry_delay: Seconds to sleep between attempts.

    Raises:
        TransportError: The last failure once retries are exhausted, or the
            first non-transient failure.
    """
    attempts = max_retries + 1
    for attempt in range(1, attempts + 1):
        try:
            return send(session, method, url, **kwargs)
        except TransportError as exc:
            if not exc.transient or attempt == attempts:
                raise
            logger.warning(
                "%s %s attempt %d/%d failed: %s", method, url, attempt, attempts, exc.message
            )
            time.sleep(retry_delay)
    raise AssertionError("unreachable")  # pragma: no cover


def _retry_after_seconds(response: requests.Response) -> int | None:
    value = response.headers.get("Retry-After")
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        return None
