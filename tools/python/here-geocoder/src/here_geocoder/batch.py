"""
HERE Geocoder — Batch Geocoder
===============================
Bulk entry point: geocodes a mapping of request id → address with one HERE
batch job and reports each id back through caller-supplied callbacks.

Outcome for every input id when the job completes:

* ``on_resolved(request_id, coordinates)`` once per resolved row, in result
  order, each call finishing before the next row is read;
* every other id is passed to ``on_unresolved`` in a single call, even when
  there are none.

A job that ends ``failed``, ``cancelled`` or ``deleted`` invokes neither
callback; the returned :class:`BatchOutcome` carries that status.

Usage::

    client = BatchJobClient(EnvironmentApiKeyProvider())
    outcome = BatchGeoCoder(client).geocode_addresses(
        {"a1": Address(street="123 Main St", city="Springfield", country="USA")},
        on_resolved=lambda rid, coords: store(rid, coords),
        on_unresolved=lambda ids: flag_for_review(ids),
    )
    outcome.raise_for_status()
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Mapping, Sequence

from shared.python.exceptions import InputValidationError
from shared.python.validators import Validators

from here_geocoder.decoding import DEFAULT_OUTPUT_DELIMITER, decode_results
from here_geocoder.encoding import DEFAULT_INPUT_DELIMITER, encode_addresses
from here_geocoder.jobs import BatchJobClient
from here_geocoder.models import (
    Address,
    BatchJob,
    BatchOutcome,
    Coordinates,
    JobStatus,
    RequestId,
)

logger = logging.getLogger("geocodehub.here_geocoder.batch")

ResolvedCallback = Callable[[RequestId, Coordinates], object]
UnresolvedCallback = Callable[[Sequence[RequestId]], object]


class BatchGeoCoder:
    """Facade combining the input encoder, job client and result decoder.

    Args:
        client: Job client used for submission, polling and download.
        input_delimiter: Field separator of the submitted table.
        output_delimiter: Field separator requested for the result table.
    """

    def __init__(
        self,
        client: BatchJobClient,
        *,
        input_delimiter: str = DEFAULT_INPUT_DELIMITER,
        output_delimiter: str = DEFAULT_OUTPUT_DELIMITER,
    ) -> None:
        Validators.assert_required(client, "client")
        Validators.assert_single_character(input_delimiter, "input_delimiter")
        Validators.assert_single_character(output_delimiter, "output_delimiter")
        self.client = client
        self.input_delimiter = input_delimiter
        self.output_delimiter = output_delimiter

    def geocode_addresses(
        self,
        addresses: Mapping[RequestId, Address],
        on_resolved: ResolvedCallback,
        on_unresolved: UnresolvedCallback,
        *,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> BatchOutcome:
        """Geocode *addresses* in one batch job.

        Args:
            addresses: Request id → address.  Ids must be unique by ``str()``.
            on_resolved: Called once per resolved id with its coordinates.
            on_unresolved: Called once with all ids that did not resolve.
            cancel_event: Set it to abandon waiting for the job.
            timeout: Maximum seconds to wait for the job, ``None`` for no limit.

        Returns:
            A :class:`BatchOutcome`; check ``completed`` or call
            ``raise_for_status()`` to detect a job-level failure.

        Raises:
            InputValidationError: Missing arguments or ambiguous ids, before
                any request is sent.
            TransportError: Submission, status or download request failed.
            ProviderError: A provider response could not be interpreted.
            MalformedResultError: A result row had the wrong number of fields.
            BatchJobInterruptedError: Waiting was cancelled or timed out.
        """
        Validators.assert_required(addresses, "addresses")
        Validators.assert_callable(on_resolved, "on_resolved")
        Validators.assert_callable(on_unresolved, "on_unresolved")

        if not addresses:
            logger.info("Zero addresses were supplied. Won't proceed.")
            return BatchOutcome(job_id=None, status=JobStatus.COMPLETED)

        ids_by_text = _index_request_ids(addresses, (self.input_delimiter, self.output_delimiter))

        logger.info("Geocoding %d addresses", len(addresses))
        payload = encode_addresses(addresses, self.input_delimiter)
        job = self.client.submit(
            payload,
            input_delimiter=self.input_delimiter,
            output_delimiter=self.output_delimiter,
        )

        status = self.client.await_completion(job, cancel_event=cancel_event, timeout=timeout)
        if status is not JobStatus.COMPLETED:
            logger.error("Job %s failed: %s", job.job_id, status.value)
            return BatchOutcome(job_id=job.job_id, status=status)

        resolved = self._dispatch_results(job, ids_by_text, on_resolved)
        resolved_set = set(resolved)
        unresolved = [request_id for request_id in addresses if request_id not in resolved_set]

        logger.info(
            "Original number of requests: %d. Processed results: %d. Failed count: %d",
            len(addresses), len(resolved), len(unresolved),
        )
        on_unresolved(unresolved)
        logger.info("Done.")

        return BatchOutcome(
            job_id=job.job_id,
            status=status,
            resolved=tuple(resolved),
            unresolved=tuple(unresolved),
        )

    def _dispatch_results(
        self,
        job: BatchJob,
        ids_by_text: dict[str, RequestId],
        on_resolved: ResolvedCallback,
    ) -> list[RequestId]:
        resolved: list[RequestId] = []
        seen: set[str] = set()

        with self.client.fetch_result(job) as stream:
            for row in decode_results(stream, self.output_delimiter):
                request_id = ids_by_text.get(row.request_id)
                if request_id is None:
                    logger.warning("Job %s returned unknown request id %r", job.job_id, row.request_id)
                    continue
                if row.request_id in seen:
                    logger.warning("Job %s returned request id %r more than once", job.job_id, row.request_id)
                    continue
                seen.add(row.request_id)

                if row.coordinates is None:
                    continue
                on_resolved(request_id, row.coordinates)
                resolved.append(request_id)

        logger.info("Processed %d results", len(resolved))
        return resolved


def _index_request_ids(
    addresses: Mapping[RequestId, Address],
    delimiters: tuple[str, ...],
) -> dict[str, RequestId]:
    ids_by_text: dict[str, RequestId] = {}
    for request_id, address in addresses.items():
        Validators.assert_required(address, f"addresses[{request_id!r}]")
        text = str(request_id)
        if not text.strip() or text != text.strip() or "\n" in text or any(d in text for d in delimiters):
            raise InputValidationError(
                f"Request id {request_id!r} must be non-blank, unpadded and free of "
                f"{' '.join(delimiters)!r} and line breaks."
            )
        if text in ids_by_text:
            raise InputValidationError(
                f"Request ids {ids_by_text[text]!r} and {request_id!r} serialise to the same value {text!r}."
            )
        ids_by_text[text] = request_id
    return ids_by_text
