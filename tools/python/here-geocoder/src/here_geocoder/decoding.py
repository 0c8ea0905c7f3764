"""
HERE Geocoder — Batch Result Decoder
=====================================
Parses the delimited table inside a downloaded batch result archive.

With ``outCols=latitude,longitude`` and ``outputcombined=true`` every data
row has five fields::

    recId,SeqNumber,seqLength,latitude,longitude

Rows whose coordinates cannot be parsed are yielded as unresolved.  Rows
with the wrong number of fields abort the decode: that means the result
schema itself changed.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Iterator, NamedTuple, NoReturn

from shared.python.exceptions import MalformedResultError
from shared.python.validators import Validators

from here_geocoder.models import Coordinates

logger = logging.getLogger("geocodehub.here_geocoder.decoding")

DEFAULT_OUTPUT_DELIMITER = ","
EXPECTED_FIELD_COUNT = 5
_ID_FIELD = 0
_LATITUDE_FIELD = 3
_LONGITUDE_FIELD = 4


class DecodedRow(NamedTuple):
    """One result row; ``coordinates`` is ``None`` when the row did not resolve."""

    request_id: str
    coordinates: Coordinates | None

    @property
    def resolved(self) -> bool:
        return self.coordinates is not None


def decode_results(
    lines: Iterable[str],
    delimiter: str = DEFAULT_OUTPUT_DELIMITER,
) -> Iterator[DecodedRow]:
    """Lazily decode result *lines*, skipping the header.

    The returned iterator is single-pass: it consumes *lines* as it goes.

    Args:
        lines: Text lines of the result file (e.g. an open text stream).
        delimiter: Single-character field separator used by the provider.

    Returns:
        Iterator of :class:`DecodedRow`, one per data line, in file order.

    Raises:
        InputValidationError: Immediately, if *delimiter* is not one character.
        MalformedResultError: While iterating, on the first line that does
            not split into exactly five fields.  Rows before it have already
            been yielded.
    """
    Validators.assert_single_character(delimiter, "delimiter")
    return _iter_rows(iter(lines), delimiter)


def _iter_rows(iterator: Iterator[str], delimiter: str) -> Iterator[DecodedRow]:
    header = next(iterator, None)
    if header is None:
        logger.warning("Result file is empty (no header line).")
        return
    logger.debug("Result header: %s", header.rstrip("\r\n"))

    for line_number, raw in enumerate(iterator, start=2):
        line = raw.rstrip("\r\n")
        if not line.strip():
            continue

        fields = line.split(delimiter)
        if len(fields) != EXPECTED_FIELD_COUNT:
            _reject_malformed_row(line_number, line, len(fields))

        request_id = fields[_ID_FIELD].strip()
        coordinates = _parse_coordinates(fields[_LATITUDE_FIELD], fields[_LONGITUDE_FIELD])
        if coordinates is None:
            logger.warning("No coordinates for request %s: %s", request_id, line)
        yield DecodedRow(request_id, coordinates)


def _reject_malformed_row(line_number: int, line: str, field_count: int) -> NoReturn:
    # Every wrong-shape row ends up here; change this to tolerate such rows.
    raise MalformedResultError(line_number, line, field_count, EXPECTED_FIELD_COUNT)


def _parse_coordinates(latitude: str, longitude: str) -> Coordinates | None:
    try:
        lat = float(latitude)
        lon = float(longitude)
    except ValueError:
        return None

    if not (math.isfinite(lat) and math.isfinite(lon)):
        return None

    coordinates = Coordinates(lat, lon)
    return None if coordinates.is_empty else coordinates
