"""
Tests — Batch Geocoder
=======================
Unit tests for :class:`~here_geocoder.batch.BatchGeoCoder`.

Most tests drive the facade with a ``MagicMock`` job client; the tests at
the bottom run the full submit → poll → download cycle against HTTP
responses mocked via ``responses``.
"""

from __future__ import annotations

import contextlib
import io
import uuid
from unittest.mock import MagicMock

import pytest
import responses as rsps_lib

from here_geocoder.batch import BatchGeoCoder
from here_geocoder.jobs import BatchJobClient
from here_geocoder.models import Address, BatchJob, Coordinates, JobStatus
from here_geocoder.settings import ApiKeyProvider
from payloads import (
    BATCH_URL,
    JOB_ID,
    RESULT_HEADER,
    RESULT_URL,
    STATUS_URL,
    result_zip,
    status_xml,
    submit_xml,
)
from shared.python.exceptions import (
    BatchJobFailedError,
    BatchJobInterruptedError,
    InputValidationError,
    MalformedResultError,
    TransportError,
)


def _addresses(*ids) -> dict:
    return {rid: Address(street=f"{i} Main St", city="Springfield", country="USA") for i, rid in enumerate(ids, 1)}


def _client(*rows: str, status: JobStatus = JobStatus.COMPLETED) -> MagicMock:
    """Job client mock whose result table holds *rows*."""
    client = MagicMock(spec=BatchJobClient)
    client.submit.return_value = BatchJob(JOB_ID)
    client.await_completion.return_value = status
    table = "".join(f"{line}\n" for line in (RESULT_HEADER, *rows))
    client.fetch_result.return_value = contextlib.nullcontext(io.StringIO(table))
    return client


class Recorder:
    """Collects callback invocations."""

    def __init__(self) -> None:
        self.resolved: list[tuple] = []
        self.unresolved: list[list] = []

    def on_resolved(self, request_id, coordinates) -> None:
        self.resolved.append((request_id, coordinates))

    def on_unresolved(self, request_ids) -> None:
        self.unresolved.append(list(request_ids))


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class TestDispatch:
    def test_resolved_and_unresolved_partition_input(self) -> None:
        client = _client("a,1,1,1.0,2.0", "c,1,1,3.0,4.0")
        calls = Recorder()
        outcome = BatchGeoCoder(client).geocode_addresses(
            _addresses("a", "b", "c", "d"), calls.on_resolved, calls.on_unresolved
        )

        assert calls.resolved == [("a", Coordinates(1.0, 2.0)), ("c", Coordinates(3.0, 4.0))]
        assert calls.unresolved == [["b", "d"]]
        assert outcome.resolved == ("a", "c")
        assert outcome.unresolved == ("b", "d")
        assert outcome.completed
        assert outcome.job_id == JOB_ID

    def test_resolved_in_result_order(self) -> None:
        client = _client("b,1,1,1.0,1.0", "a,1,1,2.0,2.0")
        calls = Recorder()
        BatchGeoCoder(client).geocode_addresses(_addresses("a", "b"), calls.on_resolved, calls.on_unresolved)
        assert [rid for rid, _ in calls.resolved] == ["b", "a"]

    def test_all_resolved_still_calls_unresolved_with_empty_list(self) -> None:
        client = _client("a,1,1,1.0,2.0")
        calls = Recorder()
        BatchGeoCoder(client).geocode_addresses(_addresses("a"), calls.on_resolved, calls.on_unresolved)
        assert calls.unresolved == [[]]

    def test_non_numeric_coordinates_are_unresolved(self) -> None:
        client = _client("a,1,1,abc,-75.0", "b,1,1,45.0,-75.0")
        calls = Recorder()
        BatchGeoCoder(client).geocode_addresses(_addresses("a", "b"), calls.on_resolved, calls.on_unresolved)
        assert calls.resolved == [("b", Coordinates(45.0, -75.0))]
        assert calls.unresolved == [["a"]]

    def test_unknown_ids_are_ignored(self) -> None:
        client = _client("zzz,1,1,1.0,2.0", "a,1,1,1.0,2.0")
        calls = Recorder()
        outcome = BatchGeoCoder(client).geocode_addresses(
            _addresses("a"), calls.on_resolved, calls.on_unresolved
        )
        assert outcome.resolved == ("a",)

    def test_duplicate_rows_dispatch_once(self) -> None:
        client = _client("a,1,2,1.0,2.0", "a,2,2,5.0,6.0")
        calls = Recorder()
        BatchGeoCoder(client).geocode_addresses(_addresses("a"), calls.on_resolved, calls.on_unresolved)
        assert calls.resolved == [("a", Coordinates(1.0, 2.0))]

    def test_non_string_ids_are_mapped_back(self) -> None:
        first, second = uuid.uuid4(), uuid.uuid4()
        client = _client(f"{second},1,1,1.0,2.0")
        calls = Recorder()
        BatchGeoCoder(client).geocode_addresses(
            _addresses(first, second), calls.on_resolved, calls.on_unresolved
        )
        assert calls.resolved == [(second, Coordinates(1.0, 2.0))]
        assert calls.unresolved == [[first]]

    def test_integer_ids_are_mapped_back(self) -> None:
        client = _client("1,1,1,1.0,2.0")
        calls = Recorder()
        BatchGeoCoder(client).geocode_addresses(_addresses(1, 2), calls.on_resolved, calls.on_unresolved)
        assert calls.resolved == [(1, Coordinates(1.0, 2.0))]
        assert calls.unresolved == [[2]]

    def test_submits_encoded_payload_with_delimiters(self) -> None:
        client = _client()
        BatchGeoCoder(client, input_delimiter=";", output_delimiter=",").geocode_addresses(
            _addresses("a"), Recorder().on_resolved, Recorder().on_unresolved
        )
        payload = client.submit.call_args.args[0]
        assert payload.decode("utf-8").splitlines()[1] == "a;1 Main St;Springfield;;;USA"
        assert client.submit.call_args.kwargs == {"input_delimiter": ";", "output_delimiter": ","}

    def test_cancel_and_timeout_forwarded(self) -> None:
        client = _client()
        cancel = MagicMock()
        BatchGeoCoder(client).geocode_addresses(
            _addresses("a"), Recorder().on_resolved, Recorder().on_unresolved,
            cancel_event=cancel, timeout=12.5,
        )
        client.await_completion.assert_called_once_with(
            client.submit.return_value, cancel_event=cancel, timeout=12.5
        )


# ---------------------------------------------------------------------------
# Job-level failures
# ---------------------------------------------------------------------------


class TestJobFailures:
    @pytest.mark.parametrize("status", [JobStatus.FAILED, JobStatus.CANCELLED, JobStatus.DELETED])
    def test_failed_job_invokes_no_callbacks(self, status: JobStatus) -> None:
        client = _client(status=status)
        calls = Recorder()
        outcome = BatchGeoCoder(client).geocode_addresses(
            _addresses("a", "b"), calls.on_resolved, calls.on_unresolved
        )
        assert outcome.status is status
        assert not outcome.completed
        assert calls.resolved == []
        assert calls.unresolved == []
        client.fetch_result.assert_not_called()

    def test_raise_for_status(self) -> None:
        outcome = BatchGeoCoder(_client(status=JobStatus.FAILED)).geocode_addresses(
            _addresses("a"), Recorder().on_resolved, Recorder().on_unresolved
        )
        with pytest.raises(BatchJobFailedError) as excinfo:
            outcome.raise_for_status()
        assert excinfo.value.job_id == JOB_ID

    def test_malformed_row_stops_dispatch(self) -> None:
        client = _client("a,1,1,1.0,2.0", "b,1,1", "c,1,1,3.0,4.0")
        calls = Recorder()
        with pytest.raises(MalformedResultError):
            BatchGeoCoder(client).geocode_addresses(
                _addresses("a", "b", "c"), calls.on_resolved, calls.on_unresolved
            )
        assert calls.resolved == [("a", Coordinates(1.0, 2.0))]
        assert calls.unresolved == []

    def test_callback_exception_propagates(self) -> None:
        client = _client("a,1,1,1.0,2.0")

        def explode(request_id, coordinates) -> None:
            raise RuntimeError("store unavailable")

        with pytest.raises(RuntimeError):
            BatchGeoCoder(client).geocode_addresses(_addresses("a"), explode, Recorder().on_unresolved)


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_empty_input_makes_no_calls(self) -> None:
        client = _client()
        calls = Recorder()
        outcome = BatchGeoCoder(client).geocode_addresses({}, calls.on_resolved, calls.on_unresolved)
        assert outcome.job_id is None
        assert outcome.completed
        assert calls.resolved == [] and calls.unresolved == []
        client.submit.assert_not_called()

    def test_none_addresses_raise(self) -> None:
        with pytest.raises(InputValidationError):
            BatchGeoCoder(_client()).geocode_addresses(None, Recorder().on_resolved, Recorder().on_unresolved)  # type: ignore[arg-type]

    @pytest.mark.parametrize("which", ["on_resolved", "on_unresolved"])
    def test_missing_callback_raises(self, which: str) -> None:
        client = _client()
        callbacks = {"on_resolved": Recorder().on_resolved, "on_unresolved": Recorder().on_unresolved}
        callbacks[which] = None
        with pytest.raises(InputValidationError):
            BatchGeoCoder(client).geocode_addresses(_addresses("a"), **callbacks)
        client.submit.assert_not_called()

    @pytest.mark.parametrize("bad_id", ["a|b", "a,b", " a", "", "a\nb"])
    def test_unusable_ids_rejected_before_submission(self, bad_id: str) -> None:
        client = _client()
        with pytest.raises(InputValidationError):
            BatchGeoCoder(client).geocode_addresses(
                _addresses(bad_id), Recorder().on_resolved, Recorder().on_unresolved
            )
        client.submit.assert_not_called()

    def test_ids_colliding_as_text_rejected(self) -> None:
        client = _client()
        with pytest.raises(InputValidationError):
            BatchGeoCoder(client).geocode_addresses(
                _addresses(1, "1"), Recorder().on_resolved, Recorder().on_unresolved
            )
        client.submit.assert_not_called()

    def test_none_address_rejected(self) -> None:
        with pytest.raises(InputValidationError):
            BatchGeoCoder(_client()).geocode_addresses(
                {"a": None}, Recorder().on_resolved, Recorder().on_unresolved  # type: ignore[dict-item]
            )

    def test_multi_character_delimiter_rejected(self) -> None:
        with pytest.raises(InputValidationError):
            BatchGeoCoder(_client(), input_delimiter="||")


# ---------------------------------------------------------------------------
# Full job cycle (mocked HTTP)
# ---------------------------------------------------------------------------


class TestFullCycle:
    @rsps_lib.activate
    def test_two_polls_then_single_download(self, api_keys: ApiKeyProvider) -> None:
        rsps_lib.add(rsps_lib.POST, BATCH_URL, body=submit_xml(), status=200)
        for status in ("running", "running", "completed"):
            rsps_lib.add(rsps_lib.GET, STATUS_URL, body=status_xml(status))
        rsps_lib.add(rsps_lib.GET, RESULT_URL, body=result_zip("a,1,1,42.0,-71.0", "b,0,0,,"), status=200)

        calls = Recorder()
        client = BatchJobClient(api_keys, poll_interval=0, retry_delay=0)
        outcome = BatchGeoCoder(client).geocode_addresses(
            _addresses("a", "b"), calls.on_resolved, calls.on_unresolved
        )

        assert calls.resolved == [("a", Coordinates(42.0, -71.0))]
        assert calls.unresolved == [["b"]]
        assert outcome.completed
        assert [c.request.method for c in rsps_lib.calls] == ["POST", "GET", "GET", "GET", "GET"]
        assert sum(1 for c in rsps_lib.calls if "/result" in c.request.url) == 1

    @rsps_lib.activate
    def test_failed_job_never_downloads(self, api_keys: ApiKeyProvider) -> None:
        rsps_lib.add(rsps_lib.POST, BATCH_URL, body=submit_xml(), status=200)
        rsps_lib.add(rsps_lib.GET, STATUS_URL, body=status_xml("running"))
        rsps_lib.add(rsps_lib.GET, STATUS_URL, body=status_xml("failed"))

        calls = Recorder()
        client = BatchJobClient(api_keys, poll_interval=0, retry_delay=0)
        outcome = BatchGeoCoder(client).geocode_addresses(
            _addresses("a"), calls.on_resolved, calls.on_unresolved
        )

        assert outcome.status is JobStatus.FAILED
        assert calls.resolved == [] and calls.unresolved == []
        assert not any("/result" in c.request.url for c in rsps_lib.calls)

    @rsps_lib.activate
    def test_submission_error_propagates(self, api_keys: ApiKeyProvider) -> None:
        rsps_lib.add(rsps_lib.POST, BATCH_URL, status=403)
        client = BatchJobClient(api_keys, retry_delay=0)
        with pytest.raises(TransportError):
            BatchGeoCoder(client).geocode_addresses(
                _addresses("a"), Recorder().on_resolved, Recorder().on_unresolved
            )

    @rsps_lib.activate
    def test_timeout_interrupts_wait(self, api_keys: ApiKeyProvider) -> None:
        rsps_lib.add(rsps_lib.POST, BATCH_URL, body=submit_xml(), status=200)
        rsps_lib.add(rsps_lib.GET, STATUS_URL, body=status_xml("running"))
        client = BatchJobClient(api_keys, poll_interval=0, retry_delay=0)
        with pytest.raises(BatchJobInterruptedError):
            BatchGeoCoder(client).geocode_addresses(
                _addresses("a"), Recorder().on_resolved, Recorder().on_unresolved, timeout=0
            )
