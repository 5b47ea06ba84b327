"""
Domain Layer - value objects shared by the mapping pipeline and the dist builders.
"""

from .models import (
    DEFAULT_LIBRARY_MAPPINGS,
    DepsOnly,
    ExcludeFilter,
    Mapping,
    MappingKind,
    MappingMetadata,
    MergeIntoOther,
    MergeIntoParent,
    ModuleKey,
    PackagingMethod,
    PlacementRule,
    ShadePattern,
    Skip,
    Standalone,
)

__all__ = [
    "DEFAULT_LIBRARY_MAPPINGS",
    "DepsOnly",
    "ExcludeFilter",
    "Mapping",
    "MappingKind",
    "MappingMetadata",
    "MergeIntoOther",
    "MergeIntoParent",
    "ModuleKey",
    "PackagingMethod",
    "PlacementRule",
    "ShadePattern",
    "Skip",
    "Standalone",
]
