"""
Full Dist Builder

Materializes a mapping list into a fresh output directory. Mappings are
grouped per destination: a COPY replaces what earlier mappings put at the
destination, an EXCLUDE clears it, and MERGE mappings add their entries to
the archive at the destination, later entries overwriting earlier ones.
"""

import logging
import shutil
from collections import OrderedDict
from pathlib import Path, PurePosixPath
from typing import Dict, Iterable, List, Sequence, Set

from ...domain.models import Mapping, MappingKind, PlacementRule
from ...infrastructure.exceptions import ArtifactBuildError
from ..shading import shader_for
from .archive import (
    archive_names,
    is_archive,
    is_signature_entry,
    iter_archive,
    iter_directory,
    write_archive,
)

logger = logging.getLogger(__name__)


class DestinationPlan:
    """The contributions that survive for one destination."""

    def __init__(self, destination: str):
        self.destination = destination
        self.contributions: List[Mapping] = []
        self.last_index = -1

    def apply(self, mapping: Mapping, index: int) -> None:
        if mapping.rule is PlacementRule.COPY:
            self.contributions = [mapping]
        elif mapping.rule is PlacementRule.EXCLUDE:
            self.contributions = []
        else:
            self.contributions.append(mapping)
        self.last_index = index

    @property
    def is_empty(self) -> bool:
        return not self.contributions

    @property
    def is_archive(self) -> bool:
        return any(m.rule is PlacementRule.MERGE for m in self.contributions)


def plan_destinations(mappings: Sequence[Mapping]) -> List[DestinationPlan]:
    """Group mappings per destination, ordered by the last mapping touching each one."""
    plans: Dict[str, DestinationPlan] = OrderedDict()
    for index, mapping in enumerate(mappings):
        destination = _normalize_destination(mapping.destination)
        plan = plans.get(destination)
        if plan is None:
            plan = plans[destination] = DestinationPlan(destination)
        plan.apply(mapping, index)
    return sorted(plans.values(), key=lambda p: p.last_index)


def _normalize_destination(destination: str) -> str:
    path = PurePosixPath(destination.replace("\\", "/"))
    if path.is_absolute() or ".." in path.parts or not path.parts:
        raise ArtifactBuildError(f"Invalid mapping destination: {destination!r}", destination=destination)
    return path.as_posix()


def _require_source(mapping: Mapping) -> Path:
    if not mapping.source.exists():
        raise ArtifactBuildError(
            f"Mapping source does not exist: {mapping.source}",
            source=str(mapping.source),
            destination=mapping.destination,
        )
    return mapping.source


def merge_entries(mapping: Mapping) -> Iterable:
    """Yield the ``(entry name, content)`` pairs a MERGE mapping contributes."""
    source = _require_source(mapping)
    meta = mapping.metadata
    shader = shader_for(meta.shading)

    if source.is_dir():
        raw = ((name, path.read_bytes()) for name, path in iter_directory(source))
    elif is_archive(source):
        raw = iter_archive(source)
    else:
        raw = iter([(source.name, source.read_bytes())])

    for name, data in raw:
        if meta.kind is MappingKind.LIB_ASSEMBLY and is_signature_entry(name):
            continue
        if meta.exclude_filter.excludes(name):
            continue
        yield shader.transform(name, data)


def merge_entry_names(mapping: Mapping) -> Iterable[str]:
    """Entry names a MERGE mapping contributes, without reading any content."""
    source = _require_source(mapping)
    meta = mapping.metadata
    shader = shader_for(meta.shading)

    if source.is_dir():
        names = (name for name, _ in iter_directory(source))
    elif is_archive(source):
        names = archive_names(source)
    else:
        names = iter([source.name])

    for name in names:
        if meta.kind is MappingKind.LIB_ASSEMBLY and is_signature_entry(name):
            continue
        if meta.exclude_filter.excludes(name):
            continue
        yield shader.rename_entry(name)


def _base_archive(plan: DestinationPlan) -> List[Mapping]:
    head = plan.contributions[0]
    if head.rule is PlacementRule.COPY:
        source = _require_source(head)
        if not is_archive(source):
            raise ArtifactBuildError(
                f"Cannot merge into {plan.destination}: copied source {source} is not an archive",
                source=str(source),
                destination=plan.destination,
            )
    return plan.contributions


class DistBuilder:
    """Builds the whole artifact from scratch."""

    def __init__(self, output_dir: Path):
        self.output_dir = Path(output_dir)

    def produce_artifact(self, mappings: Sequence[Mapping]) -> Path:
        plans = plan_destinations(mappings)

        if self.output_dir.exists():
            shutil.rmtree(self.output_dir)
        self.output_dir.mkdir(parents=True)

        for plan in plans:
            if not plan.is_empty:
                self.materialize(plan)

        logger.info(
            f"Artifact produced in {self.output_dir}",
            extra={"mappings": len(mappings), "destinations": len(plans)}
        )
        return self.output_dir

    def materialize(self, plan: DestinationPlan) -> None:
        target = self.output_dir / plan.destination
        if plan.is_archive:
            self._build_archive(plan, target)
        else:
            self._copy(plan.contributions[0], target)

    def _copy(self, mapping: Mapping, target: Path) -> None:
        source = _require_source(mapping)
        target.parent.mkdir(parents=True, exist_ok=True)
        if source.is_dir():
            if target.is_file():
                target.unlink()
            shutil.copytree(source, target, dirs_exist_ok=True)
        else:
            if target.is_dir():
                shutil.rmtree(target)
            shutil.copyfile(source, target)
        logger.debug(f"Copied {source} -> {target}")

    def _build_archive(self, plan: DestinationPlan, target: Path) -> None:
        entries: Dict[str, bytes] = {}
        for mapping in _base_archive(plan):
            if mapping.rule is PlacementRule.COPY:
                entries.update(iter_archive(mapping.source))
            else:
                entries.update(merge_entries(mapping))
        if target.is_dir():
            shutil.rmtree(target)
        write_archive(target, entries)
        logger.debug(f"Packaged {len(entries)} entries into {target}")

    @staticmethod
    def expected_files(plan: DestinationPlan) -> Set[str]:
        """Output files (relative to the output directory) a plan produces."""
        if plan.is_empty:
            return set()
        head = plan.contributions[0]
        if not plan.is_archive and _require_source(head).is_dir():
            return {f"{plan.destination}/{name}" for name, _ in iter_directory(head.source)}
        return {plan.destination}

    @staticmethod
    def expected_entry_names(plan: DestinationPlan) -> Set[str]:
        """Entry names of the archive a merging plan produces."""
        names: Set[str] = set()
        for mapping in _base_archive(plan):
            if mapping.rule is PlacementRule.COPY:
                names.update(archive_names(mapping.source))
            else:
                names.update(merge_entry_names(mapping))
        return names
