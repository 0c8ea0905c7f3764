"""
HERE Geocoder — CSV Batch Tool
===============================
Geocodes every row of an address CSV with one HERE batch job and writes a
GeoJSON FeatureCollection.  Rows that do not resolve are kept with ``null``
geometry and ``geocode_success: false`` so no input is lost.

Expected CSV columns (names configurable via :class:`CsvColumns`)::

    id,street,city,region,postal_code,country

Usage::

    from pathlib import Path
    from here_geocoder import BatchGeoCoder, BatchJobClient, EnvironmentApiKeyProvider
    from here_geocoder.csv_tool import CsvBatchGeocoder

    CsvBatchGeocoder(
        input_path=Path("data/listings.csv"),
        output_path=Path("output/listings.geojson"),
        geocoder=BatchGeoCoder(BatchJobClient(EnvironmentApiKeyProvider())),
    ).run()
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd

from shared.python.base_tool import GeoTool
from shared.python.exceptions import InputValidationError, OutputWriteError
from shared.python.validators import Validators

from here_geocoder.batch import BatchGeoCoder
from here_geocoder.models import Address, BatchOutcome, Coordinates

logger = logging.getLogger("geocodehub.here_geocoder.csv_tool")


@dataclass(frozen=True)
class CsvColumns:
    """Mapping from :class:`Address` fields to CSV column names."""

    id: str = "id"
    street: str = "street"
    city: str = "city"
    region: str = "region"
    postal_code: str = "postal_code"
    country: str = "country"

    def all(self) -> list[str]:
        return [self.id, self.street, self.city, self.region, self.postal_code, self.country]


class CsvBatchGeocoder(GeoTool):
    """Batch-geocode an address CSV into GeoJSON.

    Args:
        input_path: Path to the input CSV file.
        output_path: Path for the output GeoJSON file.
        geocoder: Configured :class:`BatchGeoCoder`.
        columns: Column names to read the id and address fields from.
        cancel_event: Optional event that abandons the job wait when set.
        verbose: Enable DEBUG-level logging.
    """

    def __init__(
        self,
        input_path: Path,
        output_path: Path,
        geocoder: BatchGeoCoder,
        columns: CsvColumns | None = None,
        *,
        cancel_event: threading.Event | None = None,
        verbose: bool = False,
    ) -> None:
        super().__init__(input_path, output_path, verbose=verbose)
        self.geocoder = geocoder
        self.columns = columns or CsvColumns()
        self.cancel_event = cancel_event

        self._outcome: BatchOutcome | None = None
        self._coordinates: dict[str, Coordinates] = {}

    # ------------------------------------------------------------------
    # GeoTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Check the CSV exists, has the expected columns and unique ids.

        Raises:
            InputValidationError: Missing file, wrong extension, duplicate ids.
            ColumnNotFoundError: A configured column is absent.
            OutputWriteError: The output directory cannot be created.
        """
        Validators.assert_file_exists(self.input_path)
        Validators.assert_supported_extension(self.input_path, [".csv"])
        Validators.assert_output_dir_writable(self.output_path)

        df_peek = pd.read_csv(self.input_path, nrows=0)
        Validators.assert_columns_exist(df_peek, self.columns.all())
        logger.debug("Inputs validated successfully.")

    def process(self) -> None:
        """Submit all rows as one batch job and write the GeoJSON output.

        Raises:
            BatchJobFailedError: If the job ends without completing.
            OutputWriteError: If writing the output file fails.
        """
        df = pd.read_csv(self.input_path, dtype=str, keep_default_na=False)
        duplicated = df[self.columns.id][df[self.columns.id].duplicated()].tolist()
        if duplicated:
            raise InputValidationError(f"Duplicate ids in '{self.columns.id}': {duplicated[:10]}")

        addresses = {
            row[self.columns.id]: Address(
                street=row[self.columns.street],
                city=row[self.columns.city],
                region=row[self.columns.region],
                postal_code=row[self.columns.postal_code],
                country=row[self.columns.country],
            )
            for _, row in df.iterrows()
        }
        logger.info("Read %d addresses from %s", len(addresses), self.input_path)

        self._coordinates = {}
        outcome = self.geocoder.geocode_addresses(
            addresses,
            on_resolved=self._on_resolved,
            on_unresolved=self._on_unresolved,
            cancel_event=self.cancel_event,
        )
        outcome.raise_for_status()
        self._outcome = outcome

        self._write_geojson(df)

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _on_resolved(self, request_id: str, coordinates: Coordinates) -> None:
        self._coordinates[request_id] = coordinates

    def _on_unresolved(self, request_ids: list[str]) -> None:
        for request_id in request_ids:
            logger.warning("  ✗ Not geocoded: %s", request_id)

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _write_geojson(self, df: pd.DataFrame) -> None:
        features = []
        for _, row in df.iterrows():
            request_id = row[self.columns.id]
            coordinates = self._coordinates.get(request_id)
            properties: dict[str, Any] = {col: row[col] for col in df.columns}
            properties["geocode_success"] = coordinates is not None
            features.append(
                {
                    "type": "Feature",
                    "geometry": coordinates.to_geojson_point() if coordinates else None,
                    "properties": properties,
                }
            )

        geojson: dict[str, Any] = {"type": "FeatureCollection", "features": features}
        try:
            with open(self.output_path, "w", encoding="utf-8") as fh:
                json.dump(geojson, fh, indent=2, default=str)
        except OSError as exc:
            raise OutputWriteError(str(self.output_path), str(exc)) from exc

    @property
    def outcome(self) -> BatchOutcome | None:
        """The :class:`BatchOutcome` of the last run, or ``None``."""
        return self._outcome
