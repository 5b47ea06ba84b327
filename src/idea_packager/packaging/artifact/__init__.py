"""
Artifact materialization: full, incremental and zip dist builders.
"""

from .dist import DestinationPlan, DistBuilder, plan_destinations
from .dynamic import DynamicDistBuilder, extract_affected_files
from .zip_builder import ZipDistBuilder

__all__ = [
    "DestinationPlan",
    "DistBuilder",
    "DynamicDistBuilder",
    "ZipDistBuilder",
    "extract_affected_files",
    "plan_destinations",
]
