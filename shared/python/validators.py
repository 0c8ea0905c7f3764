"""
GeocodeHub — Shared Input Validators
=====================================
Static utility methods used across GeocodeHub tools to validate common
preconditions before any network or file activity begins.

A failed check raises from :mod:`shared.python.exceptions`; nothing is
returned, so checks read as a flat list at the top of a method::

    def geocode_addresses(self, addresses, on_resolved, on_unresolved):
        Validators.assert_required(addresses, "addresses")
        Validators.assert_callable(on_resolved, "on_resolved")
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from shared.python.exceptions import (
    ColumnNotFoundError,
    InputValidationError,
    OutputWriteError,
)


class Validators:
    """Namespace of static precondition checks; never instantiated."""

    # ------------------------------------------------------------------
    # Argument checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_required(value: Any, name: str) -> None:
        """Assert that a required argument was supplied (is not ``None``).

        Args:
            value: The argument value.
            name: Argument name used in the error message.

        Raises:
            InputValidationError: If *value* is ``None``.
        """
        if value is None:
            raise InputValidationError(f"'{name}' is required and must not be None.")

    @staticmethod
    def assert_callable(value: Any, name: str) -> None:
        """Assert that *value* is a callable (e.g. a result callback).

        Raises:
            InputValidationError: If *value* is ``None`` or not callable.
        """
        if value is None or not callable(value):
            raise InputValidationError(f"'{name}' must be a callable, got {value!r}.")

    @staticmethod
    def assert_not_blank(value: str | None, name: str) -> None:
        """Assert that a string argument is present and not only whitespace.

        Raises:
            InputValidationError: If *value* is ``None``, empty or blank.
        """
        if value is None or not str(value).strip():
            raise InputValidationError(f"'{name}' must be a non-empty string.")

    @staticmethod
    def assert_single_character(value: str, name: str) -> None:
        """Assert that *value* is exactly one character, as field delimiters must be.

        Example::

            Validators.assert_single_character("|", "delimiter")
        """
        if not isinstance(value, str) or len(value) != 1:
            raise InputValidationError(
                f"'{name}' must be a single character, got {value!r}."
            )

    @staticmethod
    def assert_positive(value: float, name: str) -> None:
        """Assert that a numeric setting is strictly greater than zero."""
        if value <= 0:
            raise InputValidationError(f"'{name}' must be > 0, got {value!r}.")

    # ------------------------------------------------------------------
    # CSV tool file checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_file_exists(path: Path) -> None:
        """Assert that the address table at *path* can be opened.

        Raises:
            InputValidationError: Missing path, or a directory given where
                a file is expected.
        """
        candidate = Path(path)
        if candidate.is_dir():
            raise InputValidationError(f"'{candidate}' is a directory, not an address file.")
        if not candidate.is_file():
            raise InputValidationError(f"Address file '{candidate}' does not exist.")

    @staticmethod
    def assert_output_dir_writable(output_path: Path) -> None:
        """Make sure the folder that will receive *output_path* exists.

        Missing parent folders are created.

        Raises:
            OutputWriteError: If a parent folder cannot be created.
        """
        try:
            Path(output_path).parent.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(output_path), str(exc)) from exc

    @staticmethod
    def assert_supported_extension(path: Path, extensions: Sequence[str]) -> None:
        """Assert that *path* ends in one of *extensions* (case-insensitive).

        Example::

            Validators.assert_supported_extension(Path("listings.CSV"), [".csv"])
        """
        suffix = Path(path).suffix.lower()
        accepted = {ext.lower() for ext in extensions}
        if suffix not in accepted:
            raise InputValidationError(
                f"'{Path(path).name}' has extension {suffix or '(none)'!r}; "
                f"expected one of {sorted(accepted)}."
            )

    # ------------------------------------------------------------------
    # Tabular data checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_columns_exist(
        df: object,  # pandas.DataFrame
        required_columns: Sequence[str],
    ) -> None:
        """Assert that all *required_columns* are present in *df*.

        Raises:
            ColumnNotFoundError: On the first missing column found.

        Example::

            Validators.assert_columns_exist(df, ["id", "street", "city"])
        """
        available = list(df.columns)  # type: ignore[union-attr]
        for col in required_columns:
            if col not in available:
                raise ColumnNotFoundError(col, available)
