"""
Tests — CSV Batch Tool
=======================
Unit tests for :class:`~here_geocoder.csv_tool.CsvBatchGeocoder`.

The batch geocoder is replaced by a ``MagicMock`` that invokes the
callbacks the way a completed job would.
"""

from __future__ import annotations

import json
from pathlib import Path
from unittest.mock import MagicMock

import pandas as pd
import pytest

from here_geocoder.batch import BatchGeoCoder
from here_geocoder.csv_tool import CsvBatchGeocoder, CsvColumns
from here_geocoder.models import Address, BatchOutcome, Coordinates, JobStatus
from shared.python.exceptions import (
    BatchJobFailedError,
    ColumnNotFoundError,
    InputValidationError,
)


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def listings_csv(tmp_path: Path) -> Path:
    """Write a small CSV with two listings, the second one unresolvable."""
    path = tmp_path / "listings.csv"
    pd.DataFrame(
        {
            "id": ["L-001", "L-002"],
            "street": ["111 Wellington St", "Nowhere Rd"],
            "city": ["Ottawa", "Atlantis"],
            "region": ["ON", ""],
            "postal_code": ["K1A 0A9", ""],
            "country": ["CAN", "CAN"],
        }
    ).to_csv(path, index=False)
    return path


def _geocoder(resolved: dict[str, Coordinates], status: JobStatus = JobStatus.COMPLETED) -> MagicMock:
    """Batch geocoder mock resolving the ids in *resolved*."""

    def geocode_addresses(addresses, on_resolved, on_unresolved, *, cancel_event=None, timeout=None):
        if status is not JobStatus.COMPLETED:
            return BatchOutcome("job-1", status)
        for request_id, coordinates in resolved.items():
            on_resolved(request_id, coordinates)
        unresolved = [rid for rid in addresses if rid not in resolved]
        on_unresolved(unresolved)
        return BatchOutcome("job-1", status, tuple(resolved), tuple(unresolved))

    geocoder = MagicMock(spec=BatchGeoCoder)
    geocoder.geocode_addresses.side_effect = geocode_addresses
    return geocoder


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------


class TestValidation:
    def test_missing_file_raises(self, tmp_path: Path) -> None:
        tool = CsvBatchGeocoder(tmp_path / "missing.csv", tmp_path / "out.geojson", _geocoder({}))
        with pytest.raises(InputValidationError):
            tool.run()

    def test_wrong_extension_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "listings.txt"
        path.write_text("id\n1\n", encoding="utf-8")
        tool = CsvBatchGeocoder(path, tmp_path / "out.geojson", _geocoder({}))
        with pytest.raises(InputValidationError):
            tool.run()

    def test_missing_column_raises(self, listings_csv: Path, tmp_path: Path) -> None:
        geocoder = _geocoder({})
        tool = CsvBatchGeocoder(
            listings_csv, tmp_path / "out.geojson", geocoder, CsvColumns(postal_code="zip")
        )
        with pytest.raises(ColumnNotFoundError):
            tool.run()
        geocoder.geocode_addresses.assert_not_called()

    def test_duplicate_ids_raise(self, tmp_path: Path) -> None:
        path = tmp_path / "dupes.csv"
        pd.DataFrame(
            {c: ["x", "x"] for c in CsvColumns().all()}
        ).to_csv(path, index=False)
        geocoder = _geocoder({})
        with pytest.raises(InputValidationError):
            CsvBatchGeocoder(path, tmp_path / "out.geojson", geocoder).run()
        geocoder.geocode_addresses.assert_not_called()


# ---------------------------------------------------------------------------
# Processing
# ---------------------------------------------------------------------------


class TestProcess:
    def test_builds_addresses_from_rows(self, listings_csv: Path, tmp_path: Path) -> None:
        geocoder = _geocoder({})
        CsvBatchGeocoder(listings_csv, tmp_path / "out.geojson", geocoder).run()
        addresses = geocoder.geocode_addresses.call_args.args[0]
        assert addresses["L-001"] == Address(
            street="111 Wellington St", city="Ottawa", region="ON", postal_code="K1A 0A9", country="CAN"
        )
        assert addresses["L-002"].region == ""

    def test_writes_feature_collection(self, listings_csv: Path, tmp_path: Path) -> None:
        out = tmp_path / "out.geojson"
        tool = CsvBatchGeocoder(listings_csv, out, _geocoder({"L-001": Coordinates(45.4236, -75.7009)}))
        tool.run()

        data = json.loads(out.read_text(encoding="utf-8"))
        assert data["type"] == "FeatureCollection"
        assert len(data["features"]) == 2

        first, second = data["features"]
        assert first["geometry"] == {"type": "Point", "coordinates": [-75.7009, 45.4236]}
        assert first["properties"]["id"] == "L-001"
        assert first["properties"]["geocode_success"] is True
        assert second["geometry"] is None
        assert second["properties"]["geocode_success"] is False

        assert tool.outcome is not None
        assert tool.outcome.unresolved == ("L-002",)

    def test_output_directory_created(self, listings_csv: Path, tmp_path: Path) -> None:
        out = tmp_path / "nested" / "dir" / "out.geojson"
        CsvBatchGeocoder(listings_csv, out, _geocoder({})).run()
        assert out.exists()

    def test_custom_columns(self, tmp_path: Path) -> None:
        path = tmp_path / "custom.csv"
        pd.DataFrame(
            {
                "listing": ["A"],
                "addr": ["1 King St"],
                "town": ["Toronto"],
                "prov": ["ON"],
                "zip": ["M5H 1A1"],
                "nation": ["CAN"],
            }
        ).to_csv(path, index=False)
        columns = CsvColumns(
            id="listing", street="addr", city="town", region="prov", postal_code="zip", country="nation"
        )
        out = tmp_path / "out.geojson"
        CsvBatchGeocoder(path, out, _geocoder({"A": Coordinates(43.6, -79.3)}), columns).run()
        feature = json.loads(out.read_text(encoding="utf-8"))["features"][0]
        assert feature["properties"]["listing"] == "A"
        assert feature["properties"]["geocode_success"] is True

    def test_failed_job_raises_and_writes_nothing(self, listings_csv: Path, tmp_path: Path) -> None:
        out = tmp_path / "out.geojson"
        tool = CsvBatchGeocoder(listings_csv, out, _geocoder({}, status=JobStatus.FAILED))
        with pytest.raises(BatchJobFailedError):
            tool.run()
        assert not out.exists()

    def test_cancel_event_forwarded(self, listings_csv: Path, tmp_path: Path) -> None:
        cancel = MagicMock()
        geocoder = _geocoder({})
        CsvBatchGeocoder(listings_csv, tmp_path / "out.geojson", geocoder, cancel_event=cancel).run()
        assert geocoder.geocode_addresses.call_args.kwargs["cancel_event"] is cancel

    def test_repr(self, listings_csv: Path, tmp_path: Path) -> None:
        tool = CsvBatchGeocoder(listings_csv, tmp_path / "out.geojson", _geocoder({}))
        assert repr(tool).startswith("CsvBatchGeocoder(")
