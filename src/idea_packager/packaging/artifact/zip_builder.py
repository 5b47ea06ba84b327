"""
Zip Dist Builder

Packs a finished output directory into one distributable archive.
"""

import logging
from pathlib import Path

from ...infrastructure.exceptions import ArtifactBuildError
from .archive import iter_directory, write_archive

logger = logging.getLogger(__name__)


class ZipDistBuilder:
    """Archives a directory tree into ``artifact_file``."""

    def __init__(self, artifact_file: Path):
        self.artifact_file = Path(artifact_file)

    def produce_artifact(self, output_dir: Path) -> Path:
        output_dir = Path(output_dir)
        if not output_dir.is_dir():
            raise ArtifactBuildError(
                f"Nothing to archive, {output_dir} is not a directory",
                source=str(output_dir),
                destination=str(self.artifact_file),
            )

        if self.artifact_file.exists():
            self.artifact_file.unlink()

        artifact = self.artifact_file.resolve()
        entries = {}
        for name, path in iter_directory(output_dir):
            if path.resolve() == artifact:
                continue
            entries[name] = path.read_bytes()

        write_archive(self.artifact_file, entries)
        logger.info(
            f"Packaged {output_dir} into {self.artifact_file}",
            extra={"entries": len(entries)}
        )
        return self.artifact_file
