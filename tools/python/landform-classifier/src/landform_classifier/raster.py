"""
Landform Classifier — Raster I/O
================================
The small raster capability the classification core depends on:
loading an elevation grid, clipping it to a region, coarsening it by
block averaging, and writing derived products back to GeoTIFF.

Masked cells are carried as ``NaN`` in float64 arrays everywhere.

Classes:
    ElevationRaster     Immutable elevation grid + georeferencing.

Functions:
    load_raster         Path / ndarray / ElevationRaster → ElevationRaster.
    clip                Mask and crop to a polygon region.
    reduce_resolution   NaN-aware block mean by an integer factor.
    write_raster        Single-band GeoTIFF aligned with an ElevationRaster.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping, Union

import numpy as np
import numpy.typing as npt
import pyproj
import rasterio
from rasterio.crs import CRS
from rasterio.features import geometry_mask
from rasterio.transform import Affine
from rasterio.windows import Window
from rasterio.windows import transform as window_transform
from shapely.geometry import mapping, shape
from shapely.geometry.base import BaseGeometry

from shared.python.exceptions import InputValidationError, OutputWriteError, RasterError
from shared.python.validators import Validators

logger = logging.getLogger("landforms.raster")

SUPPORTED_EXTENSIONS = [".tif", ".tiff", ".img", ".vrt"]

_GEOD = pyproj.Geod(ellps="WGS84")


# ---------------------------------------------------------------------------
# Data classes
# ---------------------------------------------------------------------------


@dataclass(frozen=True, eq=False)
class ElevationRaster:
    """Immutable elevation grid with its georeferencing.

    Attributes:
        data: 2-D float64 array; masked cells are ``NaN``.  Set read-only.
        transform: Affine pixel → map transform.
        crs: Coordinate reference system, or ``None`` for bare arrays.
        source: Label describing where the grid came from (for logging).
    """

    data: npt.NDArray[np.float64]
    transform: Affine = field(default_factory=Affine.identity)
    crs: CRS | None = None
    source: str = "<array>"

    def __post_init__(self) -> None:
        arr = np.array(self.data, dtype=np.float64)
        Validators.assert_two_dimensional(arr.shape, "elevation raster")
        arr.flags.writeable = False
        object.__setattr__(self, "data", arr)

    @property
    def shape(self) -> tuple[int, int]:
        return self.data.shape  # type: ignore[return-value]

    @property
    def valid_mask(self) -> npt.NDArray[np.bool_]:
        """``True`` where the cell holds an elevation value."""
        return np.isfinite(self.data)

    @property
    def cell_size(self) -> tuple[float, float]:
        """Ground size of one cell as ``(x_size, y_size)``.

        For geographic CRSs the degree spacing is converted to metres
        along the WGS84 ellipsoid at the grid's centre row.
        """
        x_res, y_res = abs(self.transform.a), abs(self.transform.e)
        if self.crs is None or not self.crs.is_geographic:
            return (x_res, y_res)

        rows, cols = self.shape
        lon, lat = self.transform * (cols / 2.0, rows / 2.0)
        _, _, dx = _GEOD.inv(lon, lat, lon + x_res, lat)
        _, _, dy = _GEOD.inv(lon, lat, lon, lat + y_res)
        return (abs(dx), abs(dy))

    def with_data(self, data: npt.ArrayLike, transform: Affine | None = None) -> "ElevationRaster":
        """Return a new raster sharing this CRS and source label."""
        return ElevationRaster(
            data=np.asarray(data, dtype=np.float64),
            transform=self.transform if transform is None else transform,
            crs=self.crs,
            source=self.source,
        )

    def __str__(self) -> str:
        valid = int(self.valid_mask.sum())
        return (
            f"ElevationRaster({self.source}: {self.shape[0]}x{self.shape[1]}, "
            f"valid_px={valid:,}, crs={self.crs})"
        )


RasterSource = Union[str, Path, npt.ArrayLike, ElevationRaster]


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def load_raster(
    source: RasterSource,
    band: int = 1,
    *,
    transform: Affine | None = None,
    crs: str | CRS | None = None,
    nodata: float | None = None,
) -> ElevationRaster:
    """Load an elevation grid from a file, an array, or an existing raster.

    Args:
        source: GeoTIFF path, 2-D array-like, or :class:`ElevationRaster`.
        band: 1-based band to read when *source* is a file.
        transform: Affine transform for array sources (identity if omitted).
        crs: CRS for array sources; overrides the file CRS when given.
        nodata: Extra sentinel value to treat as masked.

    Returns:
        A read-only :class:`ElevationRaster`.

    Raises:
        InputValidationError: Missing file, unsupported extension, or a
            non-2-D array.
        BandIndexError: *band* is not present in the file.
        CRSError: *crs* cannot be parsed.
        RasterError: rasterio cannot open or read the file.
    """
    if isinstance(source, ElevationRaster):
        return source

    parsed_crs: CRS | None = None
    if crs is not None:
        Validators.assert_crs_valid(str(crs))
        parsed_crs = CRS.from_user_input(crs)

    if isinstance(source, (str, Path)):
        raster = _read_file(Path(source), band)
        if parsed_crs is not None:
            raster = ElevationRaster(raster.data, raster.transform, parsed_crs, raster.source)
    else:
        raster = ElevationRaster(
            data=np.asarray(source, dtype=np.float64),
            transform=transform or Affine.identity(),
            crs=parsed_crs,
        )

    if nodata is not None:
        data = np.where(raster.data == nodata, np.nan, raster.data)
        raster = raster.with_data(data)

    logger.debug("Loaded %s", raster)
    return raster


def _read_file(path: Path, band: int) -> ElevationRaster:
    Validators.assert_file_exists(path)
    Validators.assert_supported_extension(path, SUPPORTED_EXTENSIONS)
    try:
        with rasterio.open(path) as src:
            Validators.assert_band_index_valid(band, src.count)
            masked = src.read(band, masked=True).astype(np.float64)
            data = np.ma.filled(masked, np.nan)
            return ElevationRaster(
                data=data, transform=src.transform, crs=src.crs, source=path.name
            )
    except rasterio.errors.RasterioIOError as exc:
        raise RasterError(f"Could not open raster '{path}': {exc}") from exc


# ---------------------------------------------------------------------------
# Clipping / resampling
# ---------------------------------------------------------------------------


def clip(raster: ElevationRaster, region: BaseGeometry | Mapping[str, Any]) -> ElevationRaster:
    """Mask cells outside *region* and crop to its bounding window.

    Args:
        raster: The elevation grid.
        region: Shapely geometry or GeoJSON-like mapping, in the raster CRS.

    Raises:
        RasterError: If the region does not cover any cell of the grid.
    """
    geom = region if isinstance(region, BaseGeometry) else shape(region)
    outside = geometry_mask(
        [mapping(geom)],
        out_shape=raster.shape,
        transform=raster.transform,
        all_touched=False,
    )
    rows = np.flatnonzero(~outside.all(axis=1))
    cols = np.flatnonzero(~outside.all(axis=0))
    if rows.size == 0 or cols.size == 0:
        raise RasterError(f"Clip region does not overlap {raster}.")

    window = Window(
        col_off=int(cols[0]),
        row_off=int(rows[0]),
        width=int(cols[-1] - cols[0] + 1),
        height=int(rows[-1] - rows[0] + 1),
    )
    r0, c0 = int(rows[0]), int(cols[0])
    r1, c1 = r0 + int(window.height), c0 + int(window.width)

    data = np.where(outside, np.nan, raster.data)[r0:r1, c0:c1]
    logger.debug("Clipped %s to window %s", raster.source, window)
    return raster.with_data(data, window_transform(window, raster.transform))


def reduce_resolution(raster: ElevationRaster, factor: int) -> ElevationRaster:
    """Coarsen *raster* by averaging ``factor × factor`` blocks.

    Masked cells are ignored; a block with no valid cell stays masked.
    Trailing rows and columns that do not fill a whole block are dropped,
    so every output cell covers exactly ``factor × factor`` input cells
    and the upper-left origin is unchanged.

    Raises:
        InputValidationError: If *factor* exceeds either grid dimension.
    """
    Validators.assert_resample_factor(factor)
    if factor == 1:
        return raster

    rows, cols = raster.shape
    out_rows, out_cols = rows // factor, cols // factor
    if out_rows == 0 or out_cols == 0:
        raise InputValidationError(
            f"Resample factor {factor} is larger than the {rows}×{cols} grid."
        )
    if (rows % factor, cols % factor) != (0, 0):
        logger.debug(
            "Dropping %d trailing row(s) and %d column(s) that do not fill a %dx block",
            rows % factor, cols % factor, factor,
        )
    cropped = raster.data[: out_rows * factor, : out_cols * factor]

    blocks = cropped.reshape(out_rows, factor, out_cols, factor)
    valid = np.isfinite(blocks)
    sums = np.where(valid, blocks, 0.0).sum(axis=(1, 3))
    counts = valid.sum(axis=(1, 3))
    with np.errstate(invalid="ignore", divide="ignore"):
        coarse = np.where(counts > 0, sums / counts, np.nan)

    logger.info("Reduced resolution by %dx: %s → %s", factor, raster.shape, coarse.shape)
    return raster.with_data(coarse, raster.transform * Affine.scale(factor))


# ---------------------------------------------------------------------------
# Writing
# ---------------------------------------------------------------------------


def write_raster(
    array: npt.ArrayLike,
    output_path: Path,
    like: ElevationRaster,
    *,
    dtype: str = "float32",
    nodata: float = -9999.0,
) -> Path:
    """Write a single-band GeoTIFF aligned with *like*.

    ``NaN`` cells are written as *nodata*.

    Raises:
        OutputWriteError: If the file cannot be written.
    """
    arr = np.asarray(array, dtype=np.float64)
    Validators.assert_raster_shapes_match(arr.shape, like.shape, "product", "elevation")
    out = np.where(np.isfinite(arr), arr, nodata).astype(dtype)

    profile = {
        "driver": "GTiff",
        "dtype": dtype,
        "count": 1,
        "height": arr.shape[0],
        "width": arr.shape[1],
        "transform": like.transform,
        "nodata": nodata,
        "compress": "lzw",
    }
    if like.crs is not None:
        profile["crs"] = like.crs

    try:
        with rasterio.open(output_path, "w", **profile) as dst:
            dst.write(out, 1)
    except (OSError, rasterio.errors.RasterioIOError) as exc:
        raise OutputWriteError(str(output_path), str(exc)) from exc
    return Path(output_path)
