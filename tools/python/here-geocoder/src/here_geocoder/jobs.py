"""
HERE Geocoder — Batch Job Client
=================================
Drives one HERE batch geocoding job through its lifecycle::

    submitted → running → completed | failed | cancelled | deleted

* :meth:`BatchJobClient.submit` — POST the encoded addresses, read ``<RequestId>``.
* :meth:`BatchJobClient.poll_status` — one status request, read ``<Status>``.
* :meth:`BatchJobClient.await_completion` — poll on a fixed interval until a
  terminal status, a cancellation signal, or an optional timeout.
* :meth:`BatchJobClient.fetch_result` — download the zipped result and expose
  its single table as a text stream.

Submission and download retry transient HTTP failures (5 retries, 0.6 s
apart).  Status polls do not: a failed poll raises immediately.

Reference:
    https://developer.here.com/documentation/batch-geocoder/dev_guide/topics/introduction.html
"""

from __future__ import annotations

import contextlib
import io
import logging
import threading
import time
import xml.etree.ElementTree as ET
import zipfile
from typing import IO, Any, Callable, Iterator, TextIO

import requests

from shared.python.exceptions import BatchJobInterruptedError, ProviderError
from shared.python.validators import Validators

from here_geocoder.decoding import DEFAULT_OUTPUT_DELIMITER
from here_geocoder.encoding import DEFAULT_INPUT_DELIMITER
from here_geocoder.models import BatchJob, JobStatus
from here_geocoder.settings import ApiKeyProvider, HereEndpoints
from here_geocoder.transport import (
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_DELAY,
    DEFAULT_TIMEOUT,
    send,
    send_with_retry,
)

logger = logging.getLogger("geocodehub.here_geocoder.jobs")

DEFAULT_POLL_INTERVAL = 5.0
OUTPUT_COLUMNS = "latitude,longitude"


class BatchJobClient:
    """HTTP client for the HERE batch geocoding job API.

    Args:
        api_keys: Source of the HERE API key, queried once per operation.
        session: ``requests.Session`` to reuse.  A new one is created (and
                 closed by :meth:`close`) when omitted.
        endpoints: Service URLs.
        poll_interval: Seconds between status polls.
        max_retries: Retries for transient submission / download failures.
        retry_delay: Seconds between those retries.
        timeout: Per-request HTTP timeout in seconds.
        language: Language of the returned address data.
    """

    def __init__(
        self,
        api_keys: ApiKeyProvider,
        *,
        session: requests.Session | None = None,
        endpoints: HereEndpoints | None = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
        language: str = "en",
    ) -> None:
        Validators.assert_required(api_keys, "api_keys")
        self.api_keys = api_keys
        self.endpoints = endpoints or HereEndpoints()
        self.poll_interval = poll_interval
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout
        self.language = language
        self._owns_session = session is None
        self._session = session or requests.Session()

    # ------------------------------------------------------------------
    # Job lifecycle
    # ------------------------------------------------------------------

    def submit(
        self,
        payload: bytes,
        *,
        input_delimiter: str = DEFAULT_INPUT_DELIMITER,
        output_delimiter: str = DEFAULT_OUTPUT_DELIMITER,
    ) -> BatchJob:
        """Create and start a batch job for *payload*.

        Args:
            payload: Output of :func:`~here_geocoder.encoding.encode_addresses`.
            input_delimiter: Field separator used in *payload*.
            output_delimiter: Field separator requested for the result table.

        Returns:
            A :class:`BatchJob` in the ``submitted`` state.

        Raises:
            TransportError: If the request fails after retries.
            ProviderError: If the response carries no ``<RequestId>``.
        """
        params = {
            "apiKey": self.api_keys.get_api_key(),
            "action": "run",
            "header": "true",
            "inDelim": input_delimiter,
            "outDelim": output_delimiter,
            "outCols": OUTPUT_COLUMNS,
            "outputcombined": "true",
            "language": self.language,
        }
        response = send_with_retry(
            self._session,
            "POST",
            self.endpoints.batch,
            params=params,
            data=payload,
            headers={"Content-Type": "text/plain; charset=utf-8"},
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            timeout=self.timeout,
        )
        with response:
            job_id = _find_element_text(response.content, "RequestId")

        logger.info("Job %s was submitted and started", job_id)
        return BatchJob(job_id=job_id)

    def poll_status(self, job: BatchJob) -> JobStatus:
        """Fetch the current status of *job* once and record it on the job.

        Raises:
            TransportError: Immediately on any HTTP failure (no retry).
            ProviderError: If the response carries no ``<Status>``.
        """
        return self._poll(job, self.api_keys.get_api_key())

    def await_completion(
        self,
        job: BatchJob,
        *,
        cancel_event: threading.Event | None = None,
        timeout: float | None = None,
    ) -> JobStatus:
        """Poll *job* until it reaches a terminal status.

        Without *cancel_event* or *timeout* this waits for as long as the
        provider reports the job as running.

        Args:
            job: Job returned by :meth:`submit`.
            cancel_event: Setting this event stops the wait at once.
            timeout: Maximum seconds to wait, ``None`` for no limit.

        Returns:
            The terminal :class:`JobStatus`.

        Raises:
            BatchJobInterruptedError: When cancelled or timed out.
            TransportError: When a status request fails.
            ProviderError: When a status response cannot be read.
        """
        Validators.assert_required(job, "job")
        stop = cancel_event or threading.Event()
        deadline = None if timeout is None else time.monotonic() + timeout
        api_key = self.api_keys.get_api_key()

        while True:
            if stop.is_set():
                raise BatchJobInterruptedError(job.job_id, "cancelled")

            logger.info("Waiting for job %s to complete", job.job_id)
            status = self._poll(job, api_key)
            if status is JobStatus.COMPLETED:
                logger.info("Job %s completed successfully", job.job_id)
                return status
            if status.is_terminal:
                logger.info("Job %s finished but not completed: %s", job.job_id, status.value)
                return status

            wait = self.poll_interval
            if deadline is not None:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    raise BatchJobInterruptedError(job.job_id, "timed out")
                wait = min(wait, remaining)

            if stop.wait(wait):
                raise BatchJobInterruptedError(job.job_id, "cancelled")

    @contextlib.contextmanager
    def fetch_result(self, job: BatchJob) -> Iterator[TextIO]:
        """Download the result of a completed *job*.

        Yields a text stream over the single table inside the result archive.
        The archive is closed when the ``with`` block exits, however it exits.

        Example::

            with client.fetch_result(job) as stream:
                for row in decode_results(stream):
                    ...

        Raises:
            TransportError: If the download fails after retries.
            ProviderError: If the body is not a zip archive or has no file in it,
                or, while reading the stream, if the table is not UTF-8 or
                fails its CRC check.
        """
        url = f"{self.endpoints.batch}/{job.job_id}/result"
        logger.info("Downloading result of job %s", job.job_id)
        response = send_with_retry(
            self._session,
            "GET",
            url,
            params={"apiKey": self.api_keys.get_api_key()},
            max_retries=self.max_retries,
            retry_delay=self.retry_delay,
            timeout=self.timeout,
        )
        with response:
            content = response.content
        logger.debug("Downloaded %d bytes for job %s", len(content), job.job_id)

        try:
            archive = zipfile.ZipFile(io.BytesIO(content))
        except zipfile.BadZipFile as exc:
            raise ProviderError(f"Result of job {job.job_id} is not a zip archive") from exc

        with archive:
            entries = [info for info in archive.infolist() if not info.is_dir()]
            if not entries:
                raise ProviderError(f"Can't find a file inside the result archive of job {job.job_id}")
            if len(entries) > 1:
                logger.warning(
                    "Result archive of job %s has %d files, reading %s",
                    job.job_id, len(entries), entries[0].filename,
                )
            with archive.open(entries[0]) as raw, _ResultText(raw, job_id=job.job_id) as text:
                yield text

    # ------------------------------------------------------------------
    # Session handling
    # ------------------------------------------------------------------

    def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> BatchJobClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _poll(self, job: BatchJob, api_key: str) -> JobStatus:
        url = f"{self.endpoints.batch}/{job.job_id}"
        response = send(
            self._session,
            "GET",
            url,
            params={"apiKey": api_key, "action": "status"},
            timeout=self.timeout,
        )
        with response:
            raw_status = _find_element_text(response.content, "Status")

        job.status = JobStatus.from_provider(raw_status)
        if not job.is_terminal:
            logger.info("Job %s is still in progress: %s", job.job_id, raw_status)
        return job.status


def _find_element_text(document: bytes, tag: str) -> str:
    """Return the text of the first element named *tag*, ignoring namespaces."""
    try:
        root = ET.fromstring(document)
    except ET.ParseError as exc:
        raise ProviderError(f"Provider response is not valid XML: {exc}") from exc

    for element in root.iter():
        if element.tag.rsplit("}", 1)[-1] == tag and element.text and element.text.strip():
            return element.text.strip()
    raise ProviderError(f"Provider response has no <{tag}> element")


class _ResultText(io.TextIOWrapper):
    """UTF-8 view of a result table entry.

    Bytes that do not decode, or an entry failing its CRC check, raise
    :class:`ProviderError` from whichever read hits them.
    """

    def __init__(self, raw: IO[bytes], *, job_id: str) -> None:
        super().__init__(raw, encoding="utf-8-sig")
        self.job_id = job_id

    def read(self, size: int | None = -1) -> str:
        return self._guard(super().read, size)

    def readline(self, size: int = -1) -> str:
        return self._guard(super().readline, size)

    def __next__(self) -> str:
        return self._guard(super().__next__)

    def _guard(self, read: Callable[..., str], *args: Any) -> str:
        try:
            return read(*args)
        except (UnicodeDecodeError, zipfile.BadZipFile) as exc:
            raise ProviderError(f"Result of job {self.job_id} cannot be read: {exc}") from exc
