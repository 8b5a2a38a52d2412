"""
Landforms — Shared Input Validators
===================================
Static precondition checks used by the landform tools before any raster
math runs.

All methods raise an exception from :mod:`shared.python.exceptions`
rather than returning booleans, so ``validate_inputs`` implementations
read as a flat list of assertions::

    class LandformClassifier(GeoTool):
        def validate_inputs(self) -> None:
            Validators.assert_file_exists(self.input_path)
            Validators.assert_supported_extension(self.input_path, [".tif"])
            Validators.assert_increasing_radii(self.config.radii)
"""

from __future__ import annotations

from numbers import Integral
from pathlib import Path
from typing import Sequence

# pyproj is imported lazily inside assert_crs_valid.

from shared.python.exceptions import (
    BandIndexError,
    CRSError,
    InputValidationError,
    KernelRadiusError,
    OutputWriteError,
)


class Validators:
    """Collection of static precondition checks shared across the tools.

    All methods are ``@staticmethod``; the class is only a namespace.
    """

    # ------------------------------------------------------------------
    # File-system checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_file_exists(path: Path) -> None:
        """Assert that *path* points to an existing regular file.

        Raises:
            InputValidationError: If *path* does not exist or is a
                directory rather than a file.
        """
        path = Path(path)
        if not path.exists():
            raise InputValidationError(
                f"Input file not found: '{path}'. "
                "Check that the path is correct and the file exists."
            )
        if path.is_dir():
            raise InputValidationError(
                f"Expected a file but got a directory: '{path}'."
            )

    @staticmethod
    def assert_output_dir_writable(output_path: Path) -> None:
        """Create *output_path* as a directory if needed.

        Raises:
            OutputWriteError: If the directory cannot be created.
        """
        try:
            Path(output_path).mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise OutputWriteError(str(output_path), str(exc)) from exc

    @staticmethod
    def assert_supported_extension(path: Path, extensions: Sequence[str]) -> None:
        """Assert that *path* has one of the allowed file extensions.

        Args:
            path: File path to check.
            extensions: Allowed extensions, each starting with a dot
                        (e.g. ``[".tif", ".tiff"]``).

        Raises:
            InputValidationError: If the file extension is not allowed.
        """
        path = Path(path)
        suffix = path.suffix.lower()
        allowed = [ext.lower() for ext in extensions]
        if suffix not in allowed:
            raise InputValidationError(
                f"Unsupported file extension '{suffix}' for '{path.name}'. "
                f"Accepted extensions: {', '.join(allowed)}"
            )

    # ------------------------------------------------------------------
    # CRS checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_crs_valid(crs_string: str) -> None:
        """Assert that *crs_string* can be parsed by :mod:`pyproj`.

        Raises:
            CRSError: If *crs_string* is not recognised.

        Example::

            Validators.assert_crs_valid("EPSG:32611")
        """
        try:
            from pyproj import CRS  # noqa: PLC0415

            CRS.from_user_input(crs_string)
        except Exception as exc:
            raise CRSError(str(crs_string)) from exc

    # ------------------------------------------------------------------
    # Raster checks
    # ------------------------------------------------------------------

    @staticmethod
    def assert_band_index_valid(band_index: int, total_bands: int) -> None:
        """Assert that *band_index* is within ``1..total_bands``.

        Raises:
            BandIndexError: If *band_index* is out of range.
        """
        if band_index < 1 or band_index > total_bands:
            raise BandIndexError(band_index, total_bands)

    @staticmethod
    def assert_raster_shapes_match(
        shape_a: tuple[int, ...],
        shape_b: tuple[int, ...],
        label_a: str = "Raster A",
        label_b: str = "Raster B",
    ) -> None:
        """Assert that two raster arrays have identical shapes.

        Required before any pixel-wise combination of derived rasters.

        Raises:
            InputValidationError: If the shapes do not match.

        Example::

            Validators.assert_raster_shapes_match(
                elevation.shape, slope.shape, "elevation", "slope"
            )
        """
        if tuple(shape_a) != tuple(shape_b):
            raise InputValidationError(
                f"Raster shape mismatch: {label_a} is {tuple(shape_a)} but "
                f"{label_b} is {tuple(shape_b)}. "
                "All inputs must be pixel-aligned."
            )

    @staticmethod
    def assert_two_dimensional(shape: tuple[int, ...], label: str = "raster") -> None:
        """Assert that an array shape describes a single 2-D grid.

        Raises:
            InputValidationError: If the shape is not ``(rows, cols)``.
        """
        if len(shape) != 2:
            raise InputValidationError(
                f"Expected a 2-D {label} but got an array of shape {tuple(shape)}."
            )

    @staticmethod
    def assert_positive_cell_size(cell_size: tuple[float, float]) -> None:
        """Assert both cell dimensions are finite and strictly positive.

        Raises:
            InputValidationError: On a zero, negative or non-finite size.
        """
        for value in cell_size:
            if not value > 0 or value == float("inf"):
                raise InputValidationError(
                    f"Cell size must be positive and finite, got {tuple(cell_size)}."
                )

    # ------------------------------------------------------------------
    # Kernel / resampling parameters
    # ------------------------------------------------------------------

    @staticmethod
    def assert_positive_radius(radius: object) -> None:
        """Assert *radius* is an integer of at least one cell.

        Raises:
            KernelRadiusError: If *radius* is not an ``int`` or is < 1.
        """
        if isinstance(radius, bool) or not isinstance(radius, Integral):
            raise KernelRadiusError(radius, "radius must be an integer number of cells")
        if radius < 1:
            raise KernelRadiusError(radius, "radius must be >= 1")

    @staticmethod
    def assert_increasing_radii(radii: Sequence[int], count: int = 3) -> None:
        """Assert *radii* holds *count* positive, strictly increasing radii.

        Raises:
            KernelRadiusError: On a wrong count, a non-positive radius, or
                a non-increasing sequence.
        """
        radii = tuple(radii)
        if len(radii) != count:
            raise KernelRadiusError(radii, f"expected exactly {count} radii")
        for radius in radii:
            Validators.assert_positive_radius(radius)
        if any(b <= a for a, b in zip(radii, radii[1:])):
            raise KernelRadiusError(radii, "radii must be strictly increasing")

    @staticmethod
    def assert_resample_factor(factor: object) -> None:
        """Assert *factor* is a usable block-averaging factor.

        Raises:
            InputValidationError: If *factor* is not an integer >= 1.
        """
        if isinstance(factor, bool) or not isinstance(factor, Integral) or factor < 1:
            raise InputValidationError(
                f"Resample factor must be an integer >= 1, got {factor!r}."
            )
