"""
Landform Classifier — Heat Load Index
=====================================
Folded-aspect heat load model (McCune & Keon 2002, as used by Theobald et
al. 2015 for the ERGo landforms).

Aspect is folded about the north-east / south-west axis so that the
coolest and warmest exposures sit at the two ends of a single 0..π
scale, then combined with slope through a fixed linear model whose
exponent is the index.

The coefficients are the published values, evaluated in the published
order.  Keep the products unfolded (``1.582 * 0.828870`` etc.) so the
floating-point result matches published rasters.
"""

from __future__ import annotations

import numpy as np
import numpy.typing as npt

# Fold axis, in radians (~247.5 degrees).
FOLD_AXIS = 4.3196899


def fold_aspect(aspect_rad: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """``|π − |aspect − FOLD_AXIS||`` for aspect given in radians."""
    return np.abs(np.pi - np.abs(np.asarray(aspect_rad, dtype=np.float64) - FOLD_AXIS))


def calculate_hli(
    slope_deg: npt.ArrayLike,
    aspect_deg: npt.ArrayLike,
) -> npt.NDArray[np.float64]:
    """Heat Load Index for slope/aspect in degrees.

    Args:
        slope_deg: Slope in degrees.
        aspect_deg: Aspect in degrees, 0 = north, clockwise.

    Returns:
        ``exp(raw)`` as float64; ``NaN`` wherever either input is ``NaN``.
        Scalars in, 0-d array out.
    """
    slope = np.radians(np.asarray(slope_deg, dtype=np.float64))
    aspect = np.radians(np.asarray(aspect_deg, dtype=np.float64))
    folded = fold_aspect(aspect)

    raw = (
        1.582 * 0.828870 * np.cos(slope)
        - 1.5 * 0.559442 * np.cos(folded) * np.sin(slope)
        - 0.262 * 0.559442 * np.sin(slope)
        + 0.607 * np.sin(folded) * np.sin(slope)
        - 1.467
    )
    return np.exp(raw)
