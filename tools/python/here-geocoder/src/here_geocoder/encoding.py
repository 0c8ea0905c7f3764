"""
HERE Geocoder — Batch Input Encoder
====================================
Serialises request-id → address mappings into the delimited table the
HERE batch endpoint accepts as a POST body.

Field values are written verbatim.  A delimiter character inside an address
field is NOT escaped and will shift the row's columns on the provider side.
"""

from __future__ import annotations

from typing import Mapping

from shared.python.validators import Validators

from here_geocoder.models import Address, RequestId

INPUT_COLUMNS = ("recId", "street", "city", "state", "postalCode", "country")
DEFAULT_INPUT_DELIMITER = "|"


def encode_addresses(
    addresses: Mapping[RequestId, Address],
    delimiter: str = DEFAULT_INPUT_DELIMITER,
) -> bytes:
    """Encode *addresses* as a header row plus one row per entry.

    Rows follow the iteration order of *addresses*; every row carries its own
    request id so order has no effect on correlation.

    Args:
        addresses: Request id → :class:`Address`.  Ids are written with ``str()``.
        delimiter: Single-character field separator.

    Returns:
        UTF-8 encoded payload, each row terminated by ``\\n``.

    Raises:
        InputValidationError: If *addresses* is ``None`` or *delimiter* is
            not a single character.
    """
    Validators.assert_required(addresses, "addresses")
    Validators.assert_single_character(delimiter, "delimiter")

    lines = [delimiter.join(INPUT_COLUMNS)]
    for request_id, address in addresses.items():
        lines.append(
            delimiter.join(
                (
                    str(request_id),
                    address.street,
                    address.city,
                    address.region,
                    address.postal_code,
                    address.country,
                )
            )
        )
    return "".join(f"{line}\n" for line in lines).encode("utf-8")
