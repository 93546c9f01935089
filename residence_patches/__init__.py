"""Residence patch construction for high-frequency animal tracking data.

This package provides the building blocks to clean raw position fixes, align
them to tidal cycles, infer residence across tracking gaps, classify fixes as
stationary or travelling, and summarise stationary bouts as residence patches
with geometry and movement statistics.
"""

from .access import get_patch_data, patch_trajectory
from .classification import classify_points
from .cleaning import clean_fixes
from .errors import InvariantViolation, OrderingWarning, SchemaError
from .inference import infer_residence
from .merging import merge_tide_boundaries
from .models import PatchTable, ResidencePatch
from .patches import make_res_patch
from .tide import add_tide

__all__ = [
    "InvariantViolation",
    "OrderingWarning",
    "PatchTable",
    "ResidencePatch",
    "SchemaError",
    "add_tide",
    "classify_points",
    "clean_fixes",
    "get_patch_data",
    "infer_residence",
    "make_res_patch",
    "merge_tide_boundaries",
    "patch_trajectory",
]
