from __future__ import annotations

"""
Turns downloaded artifact bytes into files on disk.

Bare binaries are written straight to their final path. Archives are written to a
temporary file beside the staging folder, expanded into staging (directory
structure preserved), and the temporary archive removed before the staged
listing is returned.
"""

import logging
import os
import posixpath
import zipfile
import zlib
from typing import List, Optional

from trackmod.core.errors import ArchiveCorrupt, StorageFailure
from trackmod.core.modules.models import ArtifactKind, url_file_name


def artifact_kind_for_url(url: str, binary_extension: str = ".dll") -> ArtifactKind:
    ext = posixpath.splitext(url_file_name(url))[1].lower()
    return ArtifactKind.BINARY if ext == str(binary_extension).lower() else ArtifactKind.ARCHIVE


def list_staged_files(root: str) -> List[str]:
    """
    Sorted root-relative POSIX paths of every file under root.
    Top-level files come first, then each subdirectory in name order.
    """
    out: List[str] = []
    for cur, dirs, files in os.walk(root):
        dirs.sort()
        for fn in sorted(files):
            rel = os.path.relpath(os.path.join(cur, fn), root)
            out.append(rel.replace("\\", "/"))
    return out


def _inside(root: str, path: str) -> bool:
    root = os.path.realpath(root)
    path = os.path.realpath(path)
    return os.path.commonpath([root, path]) == root


class ArchiveMaterializer:
    def __init__(self, *, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger("trackmod.materializer")

    def write_binary(self, data: bytes, dest_path: str) -> str:
        try:
            os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)
            with open(dest_path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise StorageFailure(path=dest_path, error=str(e)) from e
        return dest_path

    def expand_archive(self, data: bytes, staging_dir: str, archive_path: Optional[str] = None) -> List[str]:
        """
        Write `data` to `archive_path` and extract it into `staging_dir`.

        The archive file lives outside `staging_dir` (default: `<staging_dir>.zip`)
        so a member with the same name cannot clobber or delete it.
        """
        archive_path = archive_path or os.path.normpath(staging_dir) + ".zip"
        if _inside(staging_dir, archive_path):
            raise StorageFailure("The archive must not be written inside the staging folder.", path=archive_path)
        try:
            os.makedirs(staging_dir, exist_ok=True)
            os.makedirs(os.path.dirname(os.path.abspath(archive_path)), exist_ok=True)
            with open(archive_path, "wb") as f:
                f.write(data)
        except OSError as e:
            raise StorageFailure(path=archive_path, error=str(e)) from e

        try:
            with zipfile.ZipFile(archive_path, "r") as z:
                members = z.infolist()
                for m in members:
                    dest = os.path.join(staging_dir, m.filename)
                    if not _inside(staging_dir, dest):
                        raise ArchiveCorrupt(
                            "The module archive contains paths outside its own folder.",
                            member=m.filename,
                        )
                z.extractall(staging_dir)
        except ArchiveCorrupt:
            raise
        except (zipfile.BadZipFile, zlib.error, EOFError, NotImplementedError) as e:
            raise ArchiveCorrupt(path=archive_path, error=str(e)) from e
        except OSError as e:
            raise StorageFailure(path=staging_dir, error=str(e)) from e

        try:
            os.remove(archive_path)
        except OSError as e:
            raise StorageFailure(path=archive_path, error=str(e)) from e

        staged = list_staged_files(staging_dir)
        self.logger.debug("Expanded %d file(s) into %s", len(staged), staging_dir)
        return staged

    def materialize(self, data: bytes, kind: ArtifactKind, *, destination: str, archive_path: Optional[str] = None) -> List[str]:
        """
        BINARY: `destination` is the final file path; returns [destination].
        ARCHIVE: `destination` is the staging directory; returns the staged listing.
        """
        if kind == ArtifactKind.BINARY:
            return [self.write_binary(data, destination)]
        return self.expand_archive(data, destination, archive_path)
