"""
Landform Classifier — Pipeline & Tool
=====================================
Wires the four stages together and exposes them as a GeoTool.

Classes:
    LandformConfig      Configuration bundle (radii, units, outputs, ...).
    LandformResult      Immutable bundle of every derived raster.
    LandformClassifier  Primary tool class (inherits GeoTool).

Functions:
    derive_landforms    Pure end-to-end computation on an ElevationRaster.

Usage::

    from pathlib import Path
    from landform_classifier.pipeline import LandformClassifier, LandformConfig

    tool = LandformClassifier(
        input_path=Path("data/dem_30m.tif"),
        output_dir=Path("output/landforms"),
        config=LandformConfig(radii=(9, 27, 81), fine_radius=9),
    )
    tool.run()

    print(tool.result.summary())
"""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Literal, Mapping

import numpy as np
import numpy.typing as npt

from shared.python.base_tool import GeoTool
from shared.python.exceptions import (
    InputValidationError,
    KernelRadiusError,
    OutputWriteError,
)
from shared.python.validators import Validators

from landform_classifier.classifier import (
    LANDFORM_NAMES,
    SIMPLE_LANDFORM_NAMES,
    classify_landforms,
    landform_frequencies,
    remap_landforms,
    remap_landforms_simple,
)
from landform_classifier.heat_load import calculate_hli
from landform_classifier.position import (
    multiscale_tpi,
    neighborhood_mean,
    resolve_radius,
    tpi,
)
from landform_classifier.raster import (
    SUPPORTED_EXTENSIONS,
    ElevationRaster,
    clip,
    load_raster,
    reduce_resolution,
    write_raster,
)
from landform_classifier.terrain import terrain_derivatives

logger = logging.getLogger("landforms.pipeline")

# Product name → (LandformResult attribute, GeoTIFF dtype, nodata).
PRODUCTS: dict[str, tuple[str, str, float]] = {
    "slope": ("slope", "float32", -9999.0),
    "aspect": ("aspect", "float32", -9999.0),
    "hli": ("hli", "float32", -9999.0),
    "tpi": ("tpi", "float32", -9999.0),
    "mean_tpi": ("mean_tpi", "float32", -9999.0),
    "landforms": ("landforms", "uint8", 255),
    "landforms_dense": ("landforms_dense", "uint8", 255),
    "landforms_simple": ("landforms_simple", "uint8", 255),
}

SUMMARY_FILENAME = "landform_summary.json"


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass
class LandformConfig:
    """Configuration for :func:`derive_landforms` and the tool.

    Attributes:
        radii: Three increasing kernel radii for the mean standardized TPI.
               The reference workflow uses ~270 m / 810 m / 2430 m
               neighbourhoods, i.e. ``(9, 27, 81)`` on a 30 m DEM.
        fine_radius: Kernel radius of the raw (unstandardized) TPI.
        radius_units: ``"cells"`` or ``"meters"``; metres are converted
                      with the raster's ground cell size.
        resample_factor: Block-average the DEM by this factor first.
        products: Product names (keys of :data:`PRODUCTS`) to write.
        band: 1-based DEM band to read.
        indent: JSON indentation for the summary report.
    """

    radii: tuple[float, float, float] = (3, 9, 27)
    fine_radius: float = 3
    radius_units: Literal["cells", "meters"] = "cells"
    resample_factor: int = 1
    products: list[str] = field(default_factory=lambda: list(PRODUCTS))
    band: int = 1
    indent: int = 2

    def validate(self) -> None:
        """Check the settings that do not depend on the raster.

        Raises:
            InputValidationError: Unknown product, units or resample factor.
            KernelRadiusError: Wrong number of radii or non-positive values.
        """
        unknown = [p for p in self.products if p not in PRODUCTS]
        if unknown:
            raise InputValidationError(
                f"Unknown product(s): {', '.join(unknown)}. "
                f"Valid options: {', '.join(PRODUCTS)}"
            )
        if self.radius_units not in ("cells", "meters"):
            raise InputValidationError(
                f"radius_units must be 'cells' or 'meters', got {self.radius_units!r}."
            )
        Validators.assert_resample_factor(self.resample_factor)
        # Unit conversion happens later, so in metres only positivity and
        # ordering of the raw values can be checked here.
        if self.radius_units == "cells":
            Validators.assert_increasing_radii(tuple(self.radii))
            Validators.assert_positive_radius(self.fine_radius)
            return
        radii = tuple(self.radii)
        if len(radii) != 3 or any(not r > 0 for r in (*radii, self.fine_radius)):
            raise KernelRadiusError(radii, "expected three positive distances in metres")
        if any(b <= a for a, b in zip(radii, radii[1:])):
            raise KernelRadiusError(radii, "radii must be strictly increasing")

    def resolved_radii(self, raster: ElevationRaster) -> tuple[tuple[int, int, int], int]:
        """``(radii, fine_radius)`` in whole cells for *raster*."""
        cell = float(np.mean(raster.cell_size))
        radii = tuple(resolve_radius(r, cell, self.radius_units) for r in self.radii)
        fine = resolve_radius(self.fine_radius, cell, self.radius_units)
        return radii, fine  # type: ignore[return-value]


@dataclass(frozen=True, eq=False)
class LandformResult:
    """Every raster derived from one elevation grid.

    All arrays are float64, aligned with :attr:`elevation`, ``NaN`` where
    masked.  Landform code arrays hold integral values.
    """

    elevation: ElevationRaster
    slope: npt.NDArray[np.float64]
    aspect: npt.NDArray[np.float64]
    hli: npt.NDArray[np.float64]
    tpi: npt.NDArray[np.float64]
    standardized_tpis: tuple[npt.NDArray[np.float64], ...]
    mean_tpi: npt.NDArray[np.float64]
    landforms: npt.NDArray[np.float64]
    landforms_dense: npt.NDArray[np.float64]
    landforms_simple: npt.NDArray[np.float64]
    radii: tuple[int, int, int]
    fine_radius: int

    def frequencies(self) -> dict[int, int]:
        """Pixel count per primary landform code."""
        return landform_frequencies(self.landforms)

    def summary(self) -> str:
        """Human-readable table of classified pixels per landform."""
        valid = int(self.elevation.valid_mask.sum())
        freq = self.frequencies()
        classified = sum(freq.values())
        lines = [
            f"{self.elevation.source}: {classified:,} of {valid:,} valid px classified "
            f"(radii={self.radii}, fine={self.fine_radius})"
        ]
        for code, count in freq.items():
            lines.append(f"  {code:>2} {LANDFORM_NAMES[code]:<20} {count:>10,}")
        return "\n".join(lines)

    def to_report(self) -> dict[str, Any]:
        """JSON-serialisable summary of the run."""
        freq = self.frequencies()
        simple = landform_frequencies(self.landforms_simple)
        return {
            "source": self.elevation.source,
            "crs": str(self.elevation.crs) if self.elevation.crs else None,
            "height": self.elevation.shape[0],
            "width": self.elevation.shape[1],
            "cell_size": list(self.elevation.cell_size),
            "radii": list(self.radii),
            "fine_radius": self.fine_radius,
            "valid_pixels": int(self.elevation.valid_mask.sum()),
            "classified_pixels": sum(freq.values()),
            "landforms": [
                {"code": code, "name": LANDFORM_NAMES[code], "pixels": count}
                for code, count in freq.items()
            ],
            "landforms_simple": [
                {"code": code, "name": SIMPLE_LANDFORM_NAMES[code], "pixels": count}
                for code, count in simple.items()
            ],
        }


# ---------------------------------------------------------------------------
# Pure pipeline
# ---------------------------------------------------------------------------


def derive_landforms(
    raster: ElevationRaster | npt.ArrayLike,
    config: LandformConfig | None = None,
) -> LandformResult:
    """Run slope/aspect → HLI → multi-scale TPI → classifier on *raster*.

    No I/O happens here; resampling is applied if the config asks for it.

    Raises:
        InputValidationError: Bad configuration or a non-2-D raster.
        KernelRadiusError: Radii that are not positive and increasing.
    """
    config = config or LandformConfig()
    config.validate()
    raster = reduce_resolution(load_raster(raster), config.resample_factor)
    radii, fine_radius = config.resolved_radii(raster)
    Validators.assert_increasing_radii(radii)

    elevation = raster.data
    valid = raster.valid_mask
    logger.info("Deriving landforms for %s (radii=%s, fine=%d)", raster, radii, fine_radius)

    slope, aspect = terrain_derivatives(raster)
    hli = calculate_hli(slope, aspect)
    mean_z, scaled = multiscale_tpi(elevation, radii)
    fine_tpi = tpi(elevation, neighborhood_mean(elevation, fine_radius))

    def _masked(arr: npt.NDArray[np.float64]) -> npt.NDArray[np.float64]:
        return np.where(valid, arr, np.nan)

    landforms = classify_landforms(elevation, slope, hli, mean_z, fine_tpi)

    return LandformResult(
        elevation=raster,
        slope=_masked(slope),
        aspect=_masked(aspect),
        hli=_masked(hli),
        tpi=_masked(fine_tpi),
        standardized_tpis=tuple(_masked(z) for z in scaled),
        mean_tpi=_masked(mean_z),
        landforms=landforms,
        landforms_dense=remap_landforms(landforms),
        landforms_simple=remap_landforms_simple(landforms),
        radii=radii,
        fine_radius=fine_radius,
    )


# ---------------------------------------------------------------------------
# Main tool class
# ---------------------------------------------------------------------------


class LandformClassifier(GeoTool):
    """Classify landforms from a DEM GeoTIFF and write the products.

    Inherits the Template Method pipeline from :class:`~shared.python.GeoTool`.

    Each requested product is written to ``output_dir/<product>.tif``
    together with a ``landform_summary.json`` report.

    Args:
        input_path: DEM raster (GeoTIFF recommended).
        output_dir: Directory for the output rasters.
        config: A :class:`LandformConfig` instance.
        clip_region: Optional shapely geometry / GeoJSON mapping in the
                     DEM's CRS to restrict the analysis to.
        verbose: Enable DEBUG-level logging.
    """

    def __init__(
        self,
        input_path: Path,
        output_dir: Path,
        config: LandformConfig | None = None,
        *,
        clip_region: Mapping[str, Any] | Any | None = None,
        verbose: bool = False,
    ) -> None:
        super().__init__(input_path, output_dir, verbose=verbose)
        self.config = config or LandformConfig()
        self.clip_region = clip_region
        self._result: LandformResult | None = None
        self._written: dict[str, Path] = {}

    # ------------------------------------------------------------------
    # GeoTool abstract method implementations
    # ------------------------------------------------------------------

    def validate_inputs(self) -> None:
        """Validate the DEM path, the configuration and the output directory.

        Raises:
            InputValidationError: Missing file, bad extension or bad config.
            KernelRadiusError: Unusable kernel radii.
            OutputWriteError: If the output directory cannot be created.
        """
        Validators.assert_file_exists(self.input_path)
        Validators.assert_supported_extension(self.input_path, SUPPORTED_EXTENSIONS)
        self.config.validate()
        Validators.assert_output_dir_writable(self.output_path)
        logger.debug("Inputs validated: %s", self.config)

    def process(self) -> None:
        """Load the DEM, derive every product, and write the outputs.

        Raises:
            RasterError: If the DEM cannot be read or the clip misses it.
            OutputWriteError: If an output file cannot be written.
        """
        raster = load_raster(self.input_path, band=self.config.band)
        if self.clip_region is not None:
            raster = clip(raster, self.clip_region)

        result = derive_landforms(raster, self.config)
        self._result = result

        written: dict[str, Path] = {}
        for product in self.config.products:
            attr, dtype, nodata = PRODUCTS[product]
            path = self.output_path / f"{product}.tif"
            write_raster(getattr(result, attr), path, result.elevation, dtype=dtype, nodata=nodata)
            written[product] = path
            logger.debug("Wrote %s", path)
        self._written = written

        self._write_summary(result)
        logger.info("\n%s", result.summary())

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _write_summary(self, result: LandformResult) -> None:
        report = result.to_report()
        report["config"] = asdict(self.config)
        report["outputs"] = {k: str(v) for k, v in self._written.items()}
        path = self.output_path / SUMMARY_FILENAME
        try:
            with open(path, "w", encoding="utf-8") as fh:
                json.dump(report, fh, indent=self.config.indent, default=str)
        except OSError as exc:
            raise OutputWriteError(str(path), str(exc)) from exc

    @property
    def result(self) -> LandformResult | None:
        """The :class:`LandformResult` of the last run, or ``None``."""
        return self._result

    @property
    def written(self) -> dict[str, Path]:
        """Product name → written GeoTIFF path from the last run."""
        return self._written
