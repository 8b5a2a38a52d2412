"""
Landforms — Custom Exception Hierarchy
======================================
Every precondition failure in the landform tools raises an exception from
this module so callers can catch them at the right level of granularity.

Per-pixel problems (masked elevation, flat neighbourhoods, composites with
no table entry) are never exceptions; they surface as ``NaN`` cells.

Hierarchy::

    LandformsError                       ← catch-all base
    ├── InputValidationError             ← bad files, shapes, parameters
    │   └── KernelRadiusError            ← non-positive / unordered radii
    ├── CRSError                         ← invalid / unknown CRS string
    ├── RasterError                      ← rasterio / numpy raster issues
    │   └── BandIndexError               ← requested band does not exist
    └── OutputWriteError                 ← cannot write to output path

Usage::

    from shared.python.exceptions import KernelRadiusError

    raise KernelRadiusError(radius, "radius must be a positive integer")
"""

from __future__ import annotations


# ---------------------------------------------------------------------------
# Root
# ---------------------------------------------------------------------------


class LandformsError(Exception):
    """Base exception for all landform tools.

    Args:
        message: Human-readable description of the error.
    """

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message: str = message

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}({self.message!r})"


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------


class InputValidationError(LandformsError):
    """Raised when a tool's inputs fail pre-processing validation.

    This is the parent class for more specific input problems.
    """


class KernelRadiusError(InputValidationError):
    """Raised when a neighbourhood radius cannot be used.

    Args:
        radius: The offending radius (or tuple of radii).
        reason: Short explanation of what is wrong with it.

    Example::

        raise KernelRadiusError(0, "radius must be >= 1")
    """

    def __init__(self, radius: object, reason: str) -> None:
        super().__init__(f"Invalid kernel radius {radius!r}: {reason}")
        self.radius: object = radius
        self.reason: str = reason


# ---------------------------------------------------------------------------
# CRS
# ---------------------------------------------------------------------------


class CRSError(LandformsError):
    """Raised when a coordinate reference system string cannot be parsed.

    Args:
        crs_string: The raw CRS string that caused the error
                    (e.g. ``"EPSG:99999"``).
    """

    def __init__(self, crs_string: str) -> None:
        super().__init__(
            f"Invalid or unrecognised CRS: '{crs_string}'. "
            "Use an EPSG code (e.g. 'EPSG:32611') or a valid WKT/PROJ string."
        )
        self.crs_string: str = crs_string


# ---------------------------------------------------------------------------
# Raster
# ---------------------------------------------------------------------------


class RasterError(LandformsError):
    """Raised for general raster processing failures (rasterio / numpy)."""


class BandIndexError(RasterError):
    """Raised when a requested raster band index does not exist.

    Args:
        band_index: The 1-based band number that was requested.
        total_bands: Total number of bands in the raster file.

    Example::

        raise BandIndexError(band_index=2, total_bands=1)
    """

    def __init__(self, band_index: int, total_bands: int) -> None:
        super().__init__(
            f"Band {band_index} does not exist. "
            f"This raster has {total_bands} band(s) (1-indexed)."
        )
        self.band_index: int = band_index
        self.total_bands: int = total_bands


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


class OutputWriteError(LandformsError):
    """Raised when a tool cannot write its output to disk.

    Args:
        output_path: String representation of the path that failed.
        reason: Underlying OS or library error message.
    """

    def __init__(self, output_path: str, reason: str) -> None:
        super().__init__(
            f"Failed to write output to '{output_path}': {reason}"
        )
        self.output_path: str = output_path
        self.reason: str = reason
