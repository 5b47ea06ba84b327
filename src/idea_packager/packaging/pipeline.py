"""
Packaging Pipeline

Wires structure extraction, mapping construction and the dist builders
together for one root project, using the packaging section of the
settings for output locations.
"""

import dataclasses
import logging
import time
from pathlib import Path
from typing import Iterable, List, Mapping as MappingType, Optional, Sequence

from ..domain.models import Mapping
from ..framework.configuration import PackagerSettings
from ..infrastructure.exceptions import ArtifactBuildError
from ..infrastructure.observability import build_context
from .artifact import DistBuilder, DynamicDistBuilder, ZipDistBuilder
from .mappings import LinearMappingsBuilder
from .structure import PackageProjectData, PackagingStructureExtractor

logger = logging.getLogger(__name__)


class PackagingPipeline:
    """Packages ``root_project`` and its dependencies into a plugin artifact."""

    def __init__(
        self,
        settings: Optional[PackagerSettings],
        root_project: str,
        data: Sequence[PackageProjectData],
        build_dependencies: MappingType[str, Sequence[str]],
    ):
        self.settings = settings or PackagerSettings()
        self.root_project = root_project
        self.build_dependencies = build_dependencies

        config = self.settings.get_packaging_config()
        if config.assemble_libraries:
            data = [dataclasses.replace(d, assemble_libraries=True) for d in data]
        self.data = list(data)

    @property
    def output_dir(self) -> Path:
        return Path(self.settings.get_packaging_config().output_dir)

    @property
    def zip_file(self) -> Path:
        """Configured archive path, ``<parent of output parent>/<output name>.zip`` by default."""
        configured = self.settings.get_packaging_config().zip_file
        if configured:
            return Path(configured)
        return self.output_dir.parent.parent / f"{self.output_dir.name}.zip"

    def _mappings(self, offline: bool) -> List[Mapping]:
        extractor = PackagingStructureExtractor(
            self.root_project, self.data, self.build_dependencies, offline=offline
        )
        nodes = extractor.extract()
        builder = LinearMappingsBuilder(self.settings.get_packaging_config().library_base_dir)
        return builder.build_mappings(nodes)

    def package_mappings(self) -> List[Mapping]:
        return self._mappings(offline=False)

    def package_mappings_offline(self) -> List[Mapping]:
        """Mappings built from the product directories, without compiled products."""
        return self._mappings(offline=True)

    @staticmethod
    def create_compilation_timestamp() -> int:
        """Current time in epoch milliseconds, to be passed to a later incremental run."""
        return int(time.time() * 1000)

    def package_artifact(self, mappings: Optional[Sequence[Mapping]] = None) -> Path:
        with build_context(project=self.root_project) as build_id:
            logger.info(f"Packaging {self.root_project} (build {build_id})")
            if mappings is None:
                mappings = self.package_mappings()
            return DistBuilder(self.output_dir).produce_artifact(mappings)

    def package_artifact_dynamic(
        self,
        compilation_timestamp: int,
        hints: Optional[Iterable[Path]] = None,
        mappings: Optional[Sequence[Mapping]] = None,
    ) -> Path:
        with build_context(project=self.root_project) as build_id:
            logger.info(
                f"Incrementally packaging {self.root_project} (build {build_id})",
                extra={"compilation_timestamp": compilation_timestamp}
            )
            if mappings is None:
                mappings = self.package_mappings()
            builder = DynamicDistBuilder(self.output_dir, compilation_timestamp, hints)
            return builder.produce_artifact(mappings)

    def package_artifact_zip(self) -> Path:
        """Build the artifact and archive it with the output directory as the zip's root folder."""
        staging_dir = self.output_dir.resolve().parent
        if staging_dir == staging_dir.parent or staging_dir == Path.cwd().resolve():
            raise ArtifactBuildError(
                f"Output directory {self.output_dir} has no dedicated parent to archive, "
                f"refusing to zip {staging_dir}",
                source=str(staging_dir),
                destination=str(self.zip_file),
            )
        output_dir = self.package_artifact()
        with build_context(project=self.root_project):
            return ZipDistBuilder(self.zip_file).produce_artifact(output_dir.parent)
