"""
Landform Classifier — Terrain Derivatives
=========================================
Slope and aspect from an elevation grid using Horn's (1981) 3×3
finite-difference weights over the eight neighbours of each cell, the
same estimator GDAL and most GIS packages use.

Cells on the grid boundary, masked cells, and cells with any masked
neighbour come back as ``NaN``.
"""

from __future__ import annotations

import logging

import numpy as np
import numpy.typing as npt
from scipy import ndimage

from shared.python.validators import Validators

from landform_classifier.raster import ElevationRaster

logger = logging.getLogger("landforms.terrain")

# Aspect assigned to cells with zero gradient (no direction of descent).
FLAT_ASPECT = 180.0

# Horn weights.  Columns run west → east, rows run north → south, so
# ``_KERNEL_X`` yields dz/dx (east-positive) and ``_KERNEL_Y`` yields
# dz/d(row) which is south-positive.  ndimage.correlate is used (not
# convolve) so the kernels are applied as written.
_KERNEL_X = np.array([[-1.0, 0.0, 1.0],
                      [-2.0, 0.0, 2.0],
                      [-1.0, 0.0, 1.0]])
_KERNEL_Y = np.array([[-1.0, -2.0, -1.0],
                      [0.0, 0.0, 0.0],
                      [1.0, 2.0, 1.0]])


def _horn_gradients(
    elevation: npt.ArrayLike,
    cell_size: tuple[float, float],
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Return ``(dz/dx east, dz/dy north)`` with NaN on the boundary."""
    dem = np.asarray(elevation, dtype=np.float64)
    Validators.assert_two_dimensional(dem.shape, "elevation")
    Validators.assert_positive_cell_size(cell_size)
    x_size, y_size = cell_size

    dzdx = ndimage.correlate(dem, _KERNEL_X, mode="nearest") / (8.0 * x_size)
    dzdy = -ndimage.correlate(dem, _KERNEL_Y, mode="nearest") / (8.0 * y_size)

    # Zero-weight taps are skipped by correlate, so a masked centre cell
    # does not reach its own gradient; mask the full 3x3 footprint.
    touched = ndimage.maximum_filter(np.isnan(dem).astype(np.uint8), size=3, mode="nearest") > 0
    for grad in (dzdx, dzdy):
        grad[touched] = np.nan
        grad[0, :] = np.nan
        grad[-1, :] = np.nan
        grad[:, 0] = np.nan
        grad[:, -1] = np.nan
    return dzdx, dzdy


def calculate_slope(
    elevation: npt.ArrayLike,
    cell_size: tuple[float, float] = (1.0, 1.0),
) -> npt.NDArray[np.float64]:
    """Slope in degrees (0–90).

    Args:
        elevation: 2-D elevation array, ``NaN`` where masked.
        cell_size: Ground ``(x, y)`` cell size in elevation units.

    Returns:
        Float64 array aligned with *elevation*.
    """
    dzdx, dzdy = _horn_gradients(elevation, cell_size)
    return np.degrees(np.arctan(np.hypot(dzdx, dzdy)))


def calculate_aspect(
    elevation: npt.ArrayLike,
    cell_size: tuple[float, float] = (1.0, 1.0),
) -> npt.NDArray[np.float64]:
    """Compass direction of steepest descent in degrees, ``[0, 360)``.

    0 = north, 90 = east, 180 = south, 270 = west.  Cells with zero
    gradient get :data:`FLAT_ASPECT`.
    """
    dzdx, dzdy = _horn_gradients(elevation, cell_size)
    # Downslope vector is (-dzdx, -dzdy) in (east, north) components.
    aspect = np.degrees(np.arctan2(-dzdx, -dzdy)) % 360.0
    aspect[aspect >= 360.0] = 0.0
    flat = (dzdx == 0.0) & (dzdy == 0.0)
    aspect[flat] = FLAT_ASPECT
    return aspect


def terrain_derivatives(
    raster: ElevationRaster,
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    """Slope and aspect for *raster* using its ground cell size."""
    cell_size = raster.cell_size
    logger.debug("Terrain derivatives with cell size %.3f x %.3f", *cell_size)
    return (
        calculate_slope(raster.data, cell_size),
        calculate_aspect(raster.data, cell_size),
    )
