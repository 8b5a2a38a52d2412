"""
Landform Classifier — Reclassification Lattice
==============================================
Turns four continuous terrain rasters into one of 15 landform codes.

1. Each input is bucketed on its own (slope → thousands digit, HLI →
   hundreds, meanTPI → tens, fine TPI → units).
2. The four bucket codes are summed into a 4-digit *composite
   signature*; the scale factors never overlap so the sum is an exact
   positional encoding.
3. The composite is looked up in :data:`LANDFORM_TABLE`, a closed
   enumeration.  Composites that are not listed stay unclassified.

Landform codes (ERGo scheme)::

    11 Peak/ridge (warm)    21 Upper slope (warm)   31 Lower slope (warm)
    12 Peak/ridge           22 Upper slope          32 Lower slope
    13 Peak/ridge (cool)    23 Upper slope (cool)   33 Lower slope (cool)
    14 Mountain/divide      24 Upper slope (flat)   34 Lower slope (flat)
    15 Cliff                                        41 Valley
                                                    42 Valley (narrow)

Unclassified and masked cells are ``NaN`` in every output.
"""

from __future__ import annotations

import logging
from typing import Mapping, Union

import numpy as np
import numpy.typing as npt

from shared.python.validators import Validators

logger = logging.getLogger("landforms.classifier")

Numeric = Union[float, npt.NDArray[np.float64]]


# ---------------------------------------------------------------------------
# Bucket tables: (upper breaks, codes).  Each class is (lower, upper];
# the first class is unbounded below and the last unbounded above.
# ---------------------------------------------------------------------------

SLOPE_BUCKETS: tuple[tuple[float, ...], tuple[int, ...]] = (
    (2.0, 50.0),
    (2000, 1000, 5000),
)
HLI_BUCKETS: tuple[tuple[float, ...], tuple[int, ...]] = (
    (0.448, 0.767),
    (100, 200, 300),
)
MEAN_TPI_BUCKETS: tuple[tuple[float, ...], tuple[int, ...]] = (
    (-1.2, -0.75, 0.0),
    (10, 20, 30, 40),
)
TPI_BUCKETS: tuple[tuple[float, ...], tuple[int, ...]] = (
    (-5.0, 0.0, 30.0, 300.0),
    (1, 2, 3, 4, 5),
)


# ---------------------------------------------------------------------------
# Landform lookup table
# ---------------------------------------------------------------------------

LANDFORM_TABLE: dict[int, frozenset[int]] = {
    11: frozenset({1344, 2344}),
    12: frozenset({1244}),
    13: frozenset({1144}),
    14: frozenset({1145, 1245, 1345, 2145, 2245, 2345}),
    15: frozenset(range(5000, 6001)),
    21: frozenset({1341, 1342, 1343}),
    22: frozenset({1241, 1242, 1243}),
    23: frozenset({1141, 1142, 1143}),
    24: frozenset({
        2141, 2142, 2143, 2144,
        2241, 2242, 2243, 2244,
        2341, 2342, 2343,
    }),
    31: frozenset({1323, 1324, 1332, 1333, 1334}),
    32: frozenset({1223, 1224, 1232, 1233, 1234}),
    33: frozenset({1123, 1124, 1132, 1133, 1134}),
    34: frozenset({
        2123, 2124, 2132, 2133, 2134,
        2223, 2224, 2232, 2233, 2234,
        2323, 2324, 2332, 2333, 2334,
    }),
    41: frozenset({
        1111, 1112, 1113, 1121, 1122,
        1211, 1212, 1213, 1221, 1222,
        1311, 1312, 1313, 1321, 1322,
        2111, 2112, 2113, 2121, 2122,
        2211, 2212, 2213, 2221, 2222,
        2311, 2312, 2313, 2321, 2322,
    }),
    42: frozenset({1131, 1231, 1331, 2131, 2231, 2331}),
}

_COMPOSITE_TO_LANDFORM: dict[int, int] = {
    composite: code
    for code, composites in LANDFORM_TABLE.items()
    for composite in composites
}

LANDFORM_CODES: tuple[int, ...] = tuple(sorted(LANDFORM_TABLE))

LANDFORM_NAMES: dict[int, str] = {
    11: "Peak/ridge (warm)",
    12: "Peak/ridge",
    13: "Peak/ridge (cool)",
    14: "Mountain/divide",
    15: "Cliff",
    21: "Upper slope (warm)",
    22: "Upper slope",
    23: "Upper slope (cool)",
    24: "Upper slope (flat)",
    31: "Lower slope (warm)",
    32: "Lower slope",
    33: "Lower slope (cool)",
    34: "Lower slope (flat)",
    41: "Valley",
    42: "Valley (narrow)",
}

# Dense remap keeps the order of the primary codes.
_DENSE_REMAP: dict[int, int] = {code: i for i, code in enumerate(LANDFORM_CODES)}

_SIMPLE_REMAP: dict[int, int] = {
    **{code: 0 for code in (11, 12, 13, 14, 15)},
    **{code: 1 for code in (21, 22, 23, 24)},
    **{code: 2 for code in (31, 32, 33, 34)},
    **{code: 3 for code in (41, 42)},
}

SIMPLE_LANDFORM_NAMES: dict[int, str] = {
    0: "Peak/ridge/cliff",
    1: "Upper slope",
    2: "Lower slope",
    3: "Valley",
}


# ---------------------------------------------------------------------------
# Bucketing
# ---------------------------------------------------------------------------


def _reclassify(
    values: npt.ArrayLike,
    buckets: tuple[tuple[float, ...], tuple[int, ...]],
) -> npt.NDArray[np.float64]:
    breaks, codes = buckets
    arr = np.asarray(values, dtype=np.float64)
    # right=True gives breaks[i-1] < x <= breaks[i].
    idx = np.digitize(arr, breaks, right=True)
    out = np.asarray(codes, dtype=np.float64)[idx]
    return np.where(np.isnan(arr), np.nan, out)


def bucket_slope(slope_deg: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """≤2° → 2000, (2°, 50°] → 1000, >50° → 5000."""
    return _reclassify(slope_deg, SLOPE_BUCKETS)


def bucket_hli(hli: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """≤0.448 → 100, (0.448, 0.767] → 200, >0.767 → 300."""
    return _reclassify(hli, HLI_BUCKETS)


def bucket_mean_tpi(mean_tpi: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """≤−1.2 → 10, (−1.2, −0.75] → 20, (−0.75, 0] → 30, >0 → 40."""
    return _reclassify(mean_tpi, MEAN_TPI_BUCKETS)


def bucket_tpi(tpi: npt.ArrayLike) -> npt.NDArray[np.float64]:
    """≤−5 → 1, (−5, 0] → 2, (0, 30] → 3, (30, 300] → 4, >300 → 5."""
    return _reclassify(tpi, TPI_BUCKETS)


def composite_signature(
    slope_deg: npt.ArrayLike,
    hli: npt.ArrayLike,
    mean_tpi: npt.ArrayLike,
    tpi: npt.ArrayLike,
    valid_mask: npt.ArrayLike | None = None,
) -> npt.NDArray[np.float64]:
    """Sum of the four bucket codes, ``NaN`` where any bucket is missing.

    Args:
        valid_mask: Optional elevation footprint; cells where it is
            ``False`` are masked.
    """
    composite = (
        bucket_slope(slope_deg)
        + bucket_hli(hli)
        + bucket_mean_tpi(mean_tpi)
        + bucket_tpi(tpi)
    )
    if valid_mask is not None:
        composite = np.where(np.asarray(valid_mask, dtype=bool), composite, np.nan)
    return composite


# ---------------------------------------------------------------------------
# Lookup / classification
# ---------------------------------------------------------------------------


def _map_values(values: npt.ArrayLike, mapping: Mapping[int, int]) -> Numeric:
    """Map integral values through *mapping*; unknown or NaN → NaN."""
    arr = np.asarray(values, dtype=np.float64)
    out = np.full(arr.shape, np.nan)
    finite = np.isfinite(arr)
    if finite.any():
        keys, inverse = np.unique(arr[finite].astype(np.int64), return_inverse=True)
        mapped = np.array([mapping.get(int(k), np.nan) for k in keys], dtype=np.float64)
        out[finite] = mapped[inverse.reshape(-1)]
    if arr.ndim == 0:
        return float(out)
    return out


def lookup_landform(composite: float) -> int | None:
    """Landform code for one composite signature, or ``None``."""
    if composite is None or not np.isfinite(composite):
        return None
    return _COMPOSITE_TO_LANDFORM.get(int(composite))


def classify_landforms(
    elevation: npt.ArrayLike,
    slope_deg: npt.ArrayLike,
    hli: npt.ArrayLike,
    mean_tpi: npt.ArrayLike,
    tpi: npt.ArrayLike,
) -> npt.NDArray[np.float64]:
    """Landform code per cell (11–42), ``NaN`` where masked or unlisted.

    Raises:
        InputValidationError: If the inputs are not pixel-aligned.
    """
    elevation = np.asarray(elevation, dtype=np.float64)
    for label, arr in (("slope", slope_deg), ("HLI", hli), ("meanTPI", mean_tpi), ("TPI", tpi)):
        Validators.assert_raster_shapes_match(
            elevation.shape, np.shape(arr), "elevation", label
        )

    composite = composite_signature(
        slope_deg, hli, mean_tpi, tpi, valid_mask=np.isfinite(elevation)
    )
    codes = _map_values(composite, _COMPOSITE_TO_LANDFORM)

    unmatched = int(np.count_nonzero(np.isfinite(composite) & ~np.isfinite(codes)))
    if unmatched:
        logger.debug("%d cell(s) have a composite with no landform entry", unmatched)
    return codes


def remap_landforms(code: npt.ArrayLike) -> Numeric:
    """Primary codes 11…42 → dense 0…14 in table order."""
    return _map_values(code, _DENSE_REMAP)


def remap_landforms_simple(code: npt.ArrayLike) -> Numeric:
    """Primary codes → 0 peak/ridge/cliff, 1 upper, 2 lower, 3 valley."""
    return _map_values(code, _SIMPLE_REMAP)


def landform_frequencies(codes: npt.ArrayLike) -> dict[int, int]:
    """Pixel count per classified code (masked cells ignored)."""
    arr = np.asarray(codes, dtype=np.float64)
    values, counts = np.unique(arr[np.isfinite(arr)].astype(np.int64), return_counts=True)
    return {int(v): int(c) for v, c in zip(values, counts)}
