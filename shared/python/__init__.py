"""
Landforms — Shared Python Package
=================================
Re-exports the shared base class, exception hierarchy, and validator
utilities so each tool imports from one place::

    from shared.python import GeoTool, Validators
    from shared.python.exceptions import KernelRadiusError
"""

from shared.python.base_tool import GeoTool
from shared.python.exceptions import (
    BandIndexError,
    CRSError,
    InputValidationError,
    KernelRadiusError,
    LandformsError,
    OutputWriteError,
    RasterError,
)
from shared.python.validators import Validators

__all__ = [
    "GeoTool",
    "Validators",
    "LandformsError",
    "InputValidationError",
    "KernelRadiusError",
    "CRSError",
    "RasterError",
    "BandIndexError",
    "OutputWriteError",
]
