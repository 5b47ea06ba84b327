"""
Packaging Layer

Extracts the packaging graph of a multi-project build, flattens it into
placement mappings and materializes them as a plugin artifact.
"""

from .structure import (
    PackageProjectData,
    PackagedProjectNode,
    PackagingStructureExtractor,
    ProjectPackagingOptions,
    ResolvedLibrary,
)
from .mappings import LinearMappingsBuilder
from .shading import ClassShader
from .artifact import DistBuilder, DynamicDistBuilder, ZipDistBuilder, extract_affected_files
from .pipeline import PackagingPipeline

__all__ = [
    "PackageProjectData",
    "PackagedProjectNode",
    "PackagingStructureExtractor",
    "ProjectPackagingOptions",
    "ResolvedLibrary",
    "LinearMappingsBuilder",
    "ClassShader",
    "DistBuilder",
    "DynamicDistBuilder",
    "ZipDistBuilder",
    "extract_affected_files",
    "PackagingPipeline",
]
