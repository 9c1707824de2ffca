"""Write a bundle directory out as a single compressed archive."""
from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, Iterator
import gzip
import os
import tarfile
import zipfile

import zstandard as zstd

from .console import Console

ARCHIVE_FORMATS: Dict[str, str] = {
    "tar.gz": ".tar.gz",
    "tar.zst": ".tar.zst",
    "zip": ".zip",
}
"""Archive format name -> file suffix appended to the bundle directory name."""


def resolve_archive_format(name: str) -> str:
    if name not in ARCHIVE_FORMATS:
        supported = ", ".join(sorted(ARCHIVE_FORMATS))
        raise ValueError(f"Unsupported archive format '{name}'. Supported: {supported}")
    return name


def archive_path_for(source_dir: Path, format_name: str) -> Path:
    """``target/wasmer/hello`` + ``tar.gz`` -> ``target/wasmer/hello.tar.gz``."""

    return source_dir.with_name(source_dir.name + ARCHIVE_FORMATS[resolve_archive_format(format_name)])


def _iter_files(source_dir: Path) -> Iterator[Path]:
    for path in sorted(source_dir.rglob("*")):
        if path.is_file():
            yield path


def _zstd_compression_params(source_size: int) -> zstd.ZstdCompressionParameters:
    size = max(1, source_size)
    window_log = max(10, min(27, (size - 1).bit_length()))
    cpu_count = os.cpu_count() or 1
    threads = 1 if size < 32 * 1024 * 1024 else min(4, cpu_count)
    return zstd.ZstdCompressionParameters(
        compression_level=19,
        threads=threads,
        write_checksum=True,
        window_log=window_log,
    )


class BundleArchiver:
    """Pack every file of a bundle directory into a tarball or zip.

    Entries are stored relative to the bundle root, so unpacking the
    archive yields ``wasmer.toml`` at the top level.
    """

    def __init__(self, console: Console | None = None) -> None:
        self._console = console or Console("none")
        self._writers: Dict[str, Callable[[Path, Path], None]] = {
            "tar.gz": self._write_tar_gz,
            "tar.zst": self._write_tar_zst,
            "zip": self._write_zip,
        }

    def archive(
        self,
        source_dir: Path,
        format_name: str,
        *,
        target: Path | None = None,
        label: str | None = None,
    ) -> Path:
        archive_format = resolve_archive_format(format_name)
        source_dir = Path(source_dir)
        target = Path(target) if target is not None else archive_path_for(source_dir, archive_format)

        if not source_dir.is_dir():
            raise FileNotFoundError(f"Archive source directory '{source_dir}' does not exist")

        target.parent.mkdir(parents=True, exist_ok=True)
        self._writers[archive_format](source_dir, target)

        self._console.info(f"Archived {label or source_dir.name} to {target}")
        return target

    @staticmethod
    def _add_files(tar: tarfile.TarFile, source_dir: Path) -> None:
        for path in _iter_files(source_dir):
            tar.add(path, arcname=path.relative_to(source_dir).as_posix(), recursive=False)

    def _write_tar_gz(self, source_dir: Path, target: Path) -> None:
        with target.open("wb") as raw:
            with gzip.GzipFile(filename="", mode="wb", fileobj=raw, compresslevel=9, mtime=0) as compressed:
                with tarfile.open(fileobj=compressed, mode="w|", format=tarfile.PAX_FORMAT) as tar:
                    self._add_files(tar, source_dir)

    def _write_tar_zst(self, source_dir: Path, target: Path) -> None:
        source_size = sum(path.stat().st_size for path in _iter_files(source_dir))
        compressor = zstd.ZstdCompressor(compression_params=_zstd_compression_params(source_size))
        with target.open("wb") as raw:
            with compressor.stream_writer(raw, closefd=False) as compressed:
                with tarfile.open(fileobj=compressed, mode="w|", format=tarfile.PAX_FORMAT) as tar:
                    self._add_files(tar, source_dir)

    @staticmethod
    def _write_zip(source_dir: Path, target: Path) -> None:
        with zipfile.ZipFile(
            target,
            mode="w",
            compression=zipfile.ZIP_DEFLATED,
            compresslevel=9,
            strict_timestamps=False,
        ) as archive:
            for path in _iter_files(source_dir):
                archive.write(path, path.relative_to(source_dir).as_posix())


__all__ = ["ARCHIVE_FORMATS", "BundleArchiver", "archive_path_for", "resolve_archive_format"]
