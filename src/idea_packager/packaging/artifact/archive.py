"""
Deterministic archive helpers shared by the dist builders.
"""

import os
import zipfile
from pathlib import Path
from typing import Dict, Iterator, Tuple

FIXED_DATE_TIME = (1980, 1, 1, 0, 0, 0)

# Signature files of an unpacked library are invalid once its classes are merged.
_SIGNATURE_SUFFIXES = (".SF", ".DSA", ".RSA", ".EC")


def is_signature_entry(name: str) -> bool:
    return name.startswith("META-INF/") and name.count("/") == 1 and name.upper().endswith(_SIGNATURE_SUFFIXES)


def is_archive(path: Path) -> bool:
    return path.is_file() and zipfile.is_zipfile(path)


def iter_archive(path: Path) -> Iterator[Tuple[str, bytes]]:
    """Yield ``(entry name, content)`` for every file entry of a zip archive."""
    with zipfile.ZipFile(path) as zf:
        for info in zf.infolist():
            if info.is_dir():
                continue
            yield info.filename, zf.read(info)


def archive_names(path: Path) -> Iterator[str]:
    with zipfile.ZipFile(path) as zf:
        for info in zf.infolist():
            if not info.is_dir():
                yield info.filename


def iter_directory(root: Path) -> Iterator[Tuple[str, Path]]:
    """Yield ``(relative posix path, file)`` for every file below ``root``, sorted."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            file_path = Path(dirpath) / filename
            yield file_path.relative_to(root).as_posix(), file_path


def write_archive(path: Path, entries: Dict[str, bytes]) -> None:
    """
    Write ``entries`` as a zip file whose bytes depend only on the entries.

    The archive is written next to ``path`` and moved into place.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    try:
        with zipfile.ZipFile(tmp_path, "w", zipfile.ZIP_DEFLATED) as zf:
            for name in sorted(entries):
                info = zipfile.ZipInfo(name, date_time=FIXED_DATE_TIME)
                info.compress_type = zipfile.ZIP_DEFLATED
                info.external_attr = 0o644 << 16
                zf.writestr(info, entries[name])
        os.replace(tmp_path, path)
    finally:
        if tmp_path.exists():
            tmp_path.unlink()
