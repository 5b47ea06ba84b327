"""
Incremental Dist Builder

Re-materializes only the destinations touched by files compiled since a
given timestamp. Destinations whose output is missing, or whose archive no
longer holds the expected entries, are rebuilt too, and files the current
mapping set no longer produces are deleted. Running it with a timestamp of
zero yields the same tree as a full build.
"""

import logging
import os
from pathlib import Path
from typing import FrozenSet, Iterable, Optional, Sequence, Set

from ...domain.models import Mapping, MappingKind
from .archive import archive_names, is_archive
from .dist import DestinationPlan, DistBuilder, plan_destinations

logger = logging.getLogger(__name__)


def _mtime_ms(path: Path) -> int:
    return path.stat().st_mtime_ns // 1_000_000


def extract_affected_files(since_ms: int, roots: Iterable[Path]) -> Set[Path]:
    """Files under ``roots`` modified at or after ``since_ms`` (epoch milliseconds)."""
    affected: Set[Path] = set()
    for root in roots:
        root = Path(root)
        if root.is_file():
            if _mtime_ms(root) >= since_ms:
                affected.add(root.resolve())
            continue
        if not root.is_dir():
            continue
        for dirpath, _, filenames in os.walk(root):
            for filename in filenames:
                path = Path(dirpath) / filename
                if _mtime_ms(path) >= since_ms:
                    affected.add(path.resolve())
    return affected


class DynamicDistBuilder:
    """
    Incremental counterpart of :class:`DistBuilder`.

    ``compilation_timestamp`` is in epoch milliseconds; zero or less means
    everything changed. ``hints`` lists the files the compiler produced
    since then; when omitted they are found by scanning the sources of
    TARGET mappings.
    """

    def __init__(
        self,
        output_dir: Path,
        compilation_timestamp: int,
        hints: Optional[Iterable[Path]] = None,
    ):
        self.output_dir = Path(output_dir)
        self.compilation_timestamp = compilation_timestamp
        self.hints = hints
        self._full = DistBuilder(self.output_dir)

    def produce_artifact(self, mappings: Sequence[Mapping]) -> Path:
        plans = [p for p in plan_destinations(mappings) if not p.is_empty]
        changed = self._changed_files(mappings)

        expected: Set[str] = set()
        files_per_plan = []
        for plan in plans:
            files = DistBuilder.expected_files(plan)
            expected.update(files)
            files_per_plan.append(files)

        self.output_dir.mkdir(parents=True, exist_ok=True)
        removed = self._remove_stale(expected)

        rebuilt = 0
        for plan, files in zip(plans, files_per_plan):
            if self._needs_rebuild(plan, files, changed):
                self._full.materialize(plan)
                rebuilt += 1

        logger.info(
            f"Incremental artifact update in {self.output_dir}",
            extra={"destinations": len(plans), "rebuilt": rebuilt, "removed": removed}
        )
        return self.output_dir

    def _changed_files(self, mappings: Sequence[Mapping]) -> Optional[FrozenSet[Path]]:
        """Resolved changed paths, or None when everything counts as changed."""
        if self.compilation_timestamp <= 0:
            return None
        if self.hints is not None:
            return frozenset(Path(h).resolve() for h in self.hints)
        roots = {m.source for m in mappings if m.kind is MappingKind.TARGET}
        return frozenset(extract_affected_files(self.compilation_timestamp, sorted(roots)))

    @staticmethod
    def _is_affected(mapping: Mapping, changed: FrozenSet[Path]) -> bool:
        if mapping.kind is not MappingKind.TARGET:
            return True
        source = mapping.source.resolve()
        return any(path == source or source in path.parents for path in changed)

    def _needs_rebuild(
        self,
        plan: DestinationPlan,
        files: Set[str],
        changed: Optional[FrozenSet[Path]],
    ) -> bool:
        if changed is None:
            return True
        if any(not (self.output_dir / f).is_file() for f in files):
            return True
        if any(self._is_affected(m, changed) for m in plan.contributions):
            return True
        if plan.is_archive:
            target = self.output_dir / plan.destination
            if not is_archive(target):
                return True
            return set(archive_names(target)) != DistBuilder.expected_entry_names(plan)
        return False

    def _remove_stale(self, expected: Set[str]) -> int:
        removed = 0
        for dirpath, dirnames, filenames in os.walk(self.output_dir):
            for filename in filenames:
                path = Path(dirpath) / filename
                if path.relative_to(self.output_dir).as_posix() not in expected:
                    path.unlink()
                    removed += 1
                    logger.debug(f"Removed stale output {path}")

        for dirpath, dirnames, filenames in os.walk(self.output_dir, topdown=False):
            path = Path(dirpath)
            if path != self.output_dir and not any(path.iterdir()):
                path.rmdir()
        return removed

