"""
Landform Classifier — Topographic Position Index
================================================
Neighbourhood statistics over square ``(2r+1) × (2r+1)`` kernels and
the topographic position indices built from them.

* ``tpi``               raw elevation minus local mean (elevation units)
* ``standardized_tpi``  (elevation − mean) / std (unitless)
* ``mean_tpi``          average of three standardized TPIs at radii
                        that grow roughly ×3 per scale

Masked (``NaN``) neighbours are excluded from the statistics, so cells
near the grid edge or near holes use whatever valid neighbours they
have.  A masked centre cell is always masked in the output.
"""

from __future__ import annotations

import logging
from typing import Literal, Sequence

import numpy as np
import numpy.typing as npt
from scipy.ndimage import maximum_filter, minimum_filter, uniform_filter

from shared.python.exceptions import KernelRadiusError
from shared.python.validators import Validators

logger = logging.getLogger("landforms.position")

RadiusUnits = Literal["cells", "meters"]

# Minimum side of the blocks neighbourhood moments are computed in.
_BLOCK_SIZE = 64


# ---------------------------------------------------------------------------
# Neighbourhood statistics
# ---------------------------------------------------------------------------


def _block_moments(
    block: npt.NDArray[np.float64], valid: npt.NDArray[np.bool_], size: int
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64]]:
    # Shift by the block median before squaring so E[x²] − E[x]² keeps
    # precision in low-relief windows of a high-relief grid.
    offset = float(np.median(block[valid])) if valid.any() else 0.0
    filled = np.where(valid, block - offset, 0.0)

    count = uniform_filter(valid.astype(np.float64), size=size, mode="constant", cval=0.0)
    total = uniform_filter(filled, size=size, mode="constant", cval=0.0)
    total_sq = uniform_filter(filled * filled, size=size, mode="constant", cval=0.0)

    # uniform_filter returns window averages, so ratios of averages are
    # ratios of sums.  The count is floating point: guard on half a cell.
    has_data = count > 0.5 / size**2
    with np.errstate(invalid="ignore", divide="ignore"):
        centred = np.where(has_data, total / count, np.nan)
        mean_sq = np.where(has_data, total_sq / count, np.nan)
    return centred + offset, mean_sq - centred * centred


def _window_moments(
    raster: npt.ArrayLike, radius: int
) -> tuple[npt.NDArray[np.float64], npt.NDArray[np.float64], npt.NDArray[np.bool_]]:
    """Return ``(mean, variance, valid)`` over the kernel of *radius*.

    The grid is processed in blocks of at least ``_BLOCK_SIZE`` cells
    with a halo of *radius*, each block with its own offset.  Windows
    never cross a block's halo, so the result equals a whole-grid pass.
    """
    Validators.assert_positive_radius(radius)
    values = np.asarray(raster, dtype=np.float64)
    Validators.assert_two_dimensional(values.shape)

    valid = np.isfinite(values)
    radius = int(radius)
    size = 2 * radius + 1
    core = max(_BLOCK_SIZE, size)
    rows, cols = values.shape

    mean = np.full(values.shape, np.nan)
    variance = np.full(values.shape, np.nan)
    for r0 in range(0, rows, core):
        r1 = min(r0 + core, rows)
        hr0, hr1 = max(r0 - radius, 0), min(r1 + radius, rows)
        for c0 in range(0, cols, core):
            c1 = min(c0 + core, cols)
            hc0, hc1 = max(c0 - radius, 0), min(c1 + radius, cols)
            m, v = _block_moments(values[hr0:hr1, hc0:hc1], valid[hr0:hr1, hc0:hc1], size)
            inner = (slice(r0 - hr0, r1 - hr0), slice(c0 - hc0, c1 - hc0))
            mean[r0:r1, c0:c1] = m[inner]
            variance[r0:r1, c0:c1] = v[inner]
    return mean, variance, valid


def neighborhood_mean(raster: npt.ArrayLike, radius: int) -> npt.NDArray[np.float64]:
    """Mean of valid values in the square kernel of *radius* cells."""
    mean, _, valid = _window_moments(raster, radius)
    return np.where(valid, mean, np.nan)


def neighborhood_std(raster: npt.ArrayLike, radius: int) -> npt.NDArray[np.float64]:
    """Population standard deviation in the square kernel of *radius* cells.

    Exactly ``0.0`` wherever every valid value in the window is identical.
    """
    _, variance, valid = _window_moments(raster, radius)
    std = np.sqrt(np.clip(variance, 0.0, None))

    values = np.asarray(raster, dtype=np.float64)
    size = 2 * int(radius) + 1
    hi = maximum_filter(np.where(valid, values, -np.inf), size=size, mode="constant", cval=-np.inf)
    lo = minimum_filter(np.where(valid, values, np.inf), size=size, mode="constant", cval=np.inf)
    std[hi == lo] = 0.0
    return np.where(valid, std, np.nan)


# ---------------------------------------------------------------------------
# Position indices
# ---------------------------------------------------------------------------


def tpi(raster: npt.ArrayLike, mean: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """Raw topographic position: ``raster − mean``."""
    return np.asarray(raster, dtype=np.float64) - np.asarray(mean, dtype=np.float64)


def standardized_tpi(
    raster: npt.ArrayLike,
    mean: npt.ArrayLike,
    std: npt.ArrayLike,
) -> npt.NDArray[np.float64]:
    """``(raster − mean) / std``, ``NaN`` where ``std`` is zero."""
    std = np.asarray(std, dtype=np.float64)
    with np.errstate(invalid="ignore", divide="ignore"):
        z = tpi(raster, mean) / std
    return np.where(std == 0.0, np.nan, z)


def mean_tpi(
    tpi1: npt.ArrayLike,
    tpi2: npt.ArrayLike,
    tpi3: npt.ArrayLike,
) -> npt.NDArray[np.float64]:
    """Arithmetic mean of three standardized TPI rasters."""
    return (
        np.asarray(tpi1, dtype=np.float64)
        + np.asarray(tpi2, dtype=np.float64)
        + np.asarray(tpi3, dtype=np.float64)
    ) / 3


def multiscale_tpi(
    raster: npt.ArrayLike,
    radii: Sequence[int],
) -> tuple[npt.NDArray[np.float64], tuple[npt.NDArray[np.float64], ...]]:
    """Standardized TPI at three increasing radii and their mean.

    Args:
        raster: 2-D elevation array.
        radii: Three strictly increasing kernel radii in cells.

    Returns:
        ``(mean_tpi, (z1, z2, z3))``.

    Raises:
        KernelRadiusError: If *radii* is not three increasing positive ints.
    """
    Validators.assert_increasing_radii(radii)
    radii = tuple(int(r) for r in radii)
    if any(b != 3 * a for a, b in zip(radii, radii[1:])):
        logger.warning("TPI radii %s do not follow a x3 progression", radii)

    scaled = []
    for radius in radii:
        logger.debug("Standardized TPI at radius %d", radius)
        scaled.append(
            standardized_tpi(
                raster,
                neighborhood_mean(raster, radius),
                neighborhood_std(raster, radius),
            )
        )
    return mean_tpi(*scaled), tuple(scaled)


def resolve_radius(
    value: float,
    cell_size: float,
    units: RadiusUnits = "cells",
) -> int:
    """Convert a radius in *units* to a whole number of cells (>= 1).

    Raises:
        KernelRadiusError: For a non-positive value or an unknown unit.
    """
    if units == "cells":
        cells = value
    elif units == "meters":
        if not cell_size > 0:
            raise KernelRadiusError(value, f"cannot convert metres with cell size {cell_size!r}")
        cells = value / cell_size
    else:
        raise KernelRadiusError(value, f"unknown radius units {units!r}")

    if not cells > 0:
        raise KernelRadiusError(value, "radius must be positive")
    radius = max(1, int(np.floor(cells + 0.5)))
    Validators.assert_positive_radius(radius)
    return radius
