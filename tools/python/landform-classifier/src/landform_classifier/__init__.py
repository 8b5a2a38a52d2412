"""
Landform Classifier
===================
Derive ERGo-style landform classes from an elevation model: slope and
aspect, heat load index, multi-scale topographic position, and the
composite-signature lookup that maps them to 15 (or 4) landform codes.

Public API::

    from landform_classifier import derive_landforms, load_raster

    result = derive_landforms(load_raster("dem.tif"))
    print(result.summary())
"""

from landform_classifier.classifier import (
    LANDFORM_CODES,
    LANDFORM_NAMES,
    LANDFORM_TABLE,
    SIMPLE_LANDFORM_NAMES,
    bucket_hli,
    bucket_mean_tpi,
    bucket_slope,
    bucket_tpi,
    classify_landforms,
    composite_signature,
    landform_frequencies,
    lookup_landform,
    remap_landforms,
    remap_landforms_simple,
)
from landform_classifier.heat_load import calculate_hli
from landform_classifier.pipeline import (
    LandformClassifier,
    LandformConfig,
    LandformResult,
    derive_landforms,
)
from landform_classifier.position import (
    mean_tpi,
    multiscale_tpi,
    neighborhood_mean,
    neighborhood_std,
    resolve_radius,
    standardized_tpi,
    tpi,
)
from landform_classifier.raster import (
    ElevationRaster,
    clip,
    load_raster,
    reduce_resolution,
    write_raster,
)
from landform_classifier.terrain import calculate_aspect, calculate_slope, terrain_derivatives

__all__ = [
    "LandformClassifier",
    "LandformConfig",
    "LandformResult",
    "derive_landforms",
    "ElevationRaster",
    "load_raster",
    "clip",
    "reduce_resolution",
    "write_raster",
    "calculate_slope",
    "calculate_aspect",
    "terrain_derivatives",
    "calculate_hli",
    "neighborhood_mean",
    "neighborhood_std",
    "standardized_tpi",
    "tpi",
    "mean_tpi",
    "multiscale_tpi",
    "resolve_radius",
    "bucket_slope",
    "bucket_hli",
    "bucket_mean_tpi",
    "bucket_tpi",
    "composite_signature",
    "classify_landforms",
    "lookup_landform",
    "remap_landforms",
    "remap_landforms_simple",
    "landform_frequencies",
    "LANDFORM_TABLE",
    "LANDFORM_CODES",
    "LANDFORM_NAMES",
    "SIMPLE_LANDFORM_NAMES",
]
__version__ = "1.0.0"
