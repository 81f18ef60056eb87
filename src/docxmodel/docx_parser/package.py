"""Package reader - Open a DOCX container into an in-memory part map."""

from __future__ import annotations

import io
import logging
import posixpath
import zipfile
import zlib
from pathlib import Path
from typing import BinaryIO, Dict, Iterator, Optional, Union

from docxmodel.config import Settings
from docxmodel.exceptions import PackageCorrupt, PackageTooLarge

logger = logging.getLogger(__name__)

PackageSource = Union[bytes, bytearray, str, Path, BinaryIO]


def canonical_part_name(name: str) -> str:
    """Package-relative name without leading slash or backslashes, e.g. ``word/document.xml``."""
    name = name.replace("\\", "/").lstrip("/")
    return posixpath.normpath(name) if name else name


def rels_part_name(part: str) -> str:
    """Relationship part belonging to ``part`` (``word/_rels/document.xml.rels``)."""
    part = canonical_part_name(part)
    directory, filename = posixpath.split(part)
    return posixpath.join(directory, "_rels", f"{filename}.rels")


def resolve_target(source_part: str, target: str) -> str:
    """Resolve a relationship target against the part that declares it.

    Absolute targets (``/word/media/image1.png``) are package-rooted,
    relative ones are taken from the source part's directory.
    """
    target = target.replace("\\", "/")
    if target.startswith("/"):
        return canonical_part_name(target)
    base = posixpath.dirname(canonical_part_name(source_part))
    return canonical_part_name(posixpath.join(base, target))


class Package:
    """Every part of a package, read eagerly and kept as bytes.

    Lookups are case-insensitive on canonical part names. No file handle
    outlives ``open_package``.
    """

    def __init__(self, parts: Dict[str, bytes]):
        self._parts: Dict[str, bytes] = {}
        self._names: Dict[str, str] = {}
        for name, data in parts.items():
            canonical = canonical_part_name(name)
            self._parts[canonical.lower()] = data
            self._names[canonical.lower()] = canonical

    def get(self, name: Optional[str]) -> Optional[bytes]:
        if not name:
            return None
        return self._parts.get(canonical_part_name(name).lower())

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and canonical_part_name(name).lower() in self._parts

    def __iter__(self) -> Iterator[str]:
        return iter(self._names.values())

    def __len__(self) -> int:
        return len(self._parts)

    def names(self, prefix: str = "") -> list:
        """Part names (original casing) starting with ``prefix``, sorted."""
        prefix = canonical_part_name(prefix).lower() if prefix else ""
        return sorted(
            original for key, original in self._names.items()
            if key.startswith(prefix)
        )


def _read_source(source: PackageSource) -> bytes:
    if isinstance(source, (bytes, bytearray)):
        return bytes(source)
    if isinstance(source, (str, Path)):
        try:
            return Path(source).read_bytes()
        except OSError as exc:
            raise PackageCorrupt(f"cannot read package: {exc}", part=str(source)) from exc
    if hasattr(source, "read"):
        data = source.read()
        if not isinstance(data, (bytes, bytearray)):
            raise PackageCorrupt("package stream must be opened in binary mode")
        return bytes(data)
    raise PackageCorrupt(f"unsupported package source: {type(source).__name__}")


def open_package(source: PackageSource, settings: Optional[Settings] = None) -> Package:
    """Open a package and read all of its parts.

    Raises:
        PackageCorrupt: the container cannot be opened at all.
        PackageTooLarge: a size cap from ``settings`` is exceeded.
    """
    settings = settings or Settings()
    data = _read_source(source)
    if len(data) > settings.max_package_bytes:
        raise PackageTooLarge(f"package is {len(data)} bytes, limit is {settings.max_package_bytes}")

    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError) as exc:
        raise PackageCorrupt(f"not a valid zip container: {exc}") from exc

    with archive:
        members = [info for info in archive.infolist() if not info.is_dir()]
        _check_limits(members, settings)

        parts: Dict[str, bytes] = {}
        for info in members:
            try:
                with archive.open(info) as stream:
                    content = stream.read(settings.max_part_bytes + 1)
            except (zipfile.BadZipFile, zlib.error, EOFError, RuntimeError, NotImplementedError, OSError) as exc:
                raise PackageCorrupt(f"cannot read part: {exc}", part=info.filename) from exc
            # Declared sizes can lie; the bytes actually read are checked too.
            if len(content) > settings.max_part_bytes:
                raise PackageTooLarge(
                    f"part exceeds {settings.max_part_bytes} bytes", part=info.filename,
                )
            parts[info.filename] = content

    logger.debug(f"Opened package with {len(parts)} parts")
    return Package(parts)


def _check_limits(members: list, settings: Settings) -> None:
    if len(members) > settings.max_parts:
        raise PackageTooLarge(f"package has {len(members)} parts, limit is {settings.max_parts}")
    total = 0
    for info in members:
        if info.file_size > settings.max_part_bytes:
            raise PackageTooLarge(
                f"part declares {info.file_size} bytes, limit is {settings.max_part_bytes}",
                part=info.filename,
            )
        total += info.file_size
    if total > settings.max_package_bytes:
        raise PackageTooLarge(
            f"package expands to {total} bytes, limit is {settings.max_package_bytes}"
        )
