"""
GeocodeHub — Shared Base Tool
==============================
Abstract base class for file-driven GeocodeHub tools.

``GeoTool.run`` always validates before it processes and reports the
elapsed time afterwards; subclasses only implement the two steps.

Usage::

    from shared.python.base_tool import GeoTool

    class MyTool(GeoTool):
        def validate_inputs(self) -> None:
            ...
        def process(self) -> None:
            ...
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path

# Each module logs through a child of this logger,
# e.g. ``geocodehub.here_geocoder.batch``.
logger = logging.getLogger("geocodehub")

LOG_FORMAT = "[%(asctime)s] %(levelname)-8s %(name)s — %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"


def configure_console_logging(*, verbose: bool = False) -> None:
    """Attach a console handler to the ``geocodehub`` logger once.

    Args:
        verbose: Use DEBUG level when ``True``, otherwise INFO.
    """
    if not logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(handler)

    logger.setLevel(logging.DEBUG if verbose else logging.INFO)


class GeoTool(ABC):
    """File-in, file-out job such as the CSV batch geocoder.

    :meth:`run` is the only entry point callers need; subclasses supply the
    checks and the work.

    Attributes:
        input_path: File the tool reads.
        output_path: File the tool writes.
        verbose: Log at DEBUG instead of INFO.
    """

    def __init__(self, input_path: Path, output_path: Path, *, verbose: bool = False) -> None:
        self.input_path = Path(input_path)
        self.output_path = Path(output_path)
        self.verbose = verbose
        configure_console_logging(verbose=verbose)

    # ------------------------------------------------------------------
    # Abstract interface
    # ------------------------------------------------------------------

    @abstractmethod
    def validate_inputs(self) -> None:
        """Check files, columns and settings; must not contact any service.

        Raises:
            InputValidationError: On the first failed check.
        """

    @abstractmethod
    def process(self) -> None:
        """Do the work and write :attr:`output_path`."""

    # ------------------------------------------------------------------
    # Template method
    # ------------------------------------------------------------------

    def run(self) -> None:
        """Validate, then process, then log the elapsed time.

        Errors from either step are not caught here.
        """
        name = type(self).__name__
        logger.info("%s: reading %s", name, self.input_path)
        started = time.perf_counter()
        self.validate_inputs()
        self.process()
        self._report_success(time.perf_counter() - started)

    def _report_success(self, elapsed: float) -> None:
        logger.info("%s: wrote %s in %.2fs", type(self).__name__, self.output_path, elapsed)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(input_path={self.input_path!r}, output_path={self.output_path!r})"
