from __future__ import annotations

"""
On-disk layout for installed modules.

<custom_libs_root>/<module_id>/              module root
<custom_libs_root>/<module_id>/module.json   metadata (written last)
<temp_root>/<module_id>/                     staging area for archive installs
"""

import logging
import os
import shutil
from typing import Iterable, List, Optional

from pydantic import ValidationError

from trackmod.core.config.io import atomic_write_json, read_json_file
from trackmod.core.config.paths import InstallerPaths
from trackmod.core.errors import StorageFailure
from trackmod.core.modules.models import ModuleRecord


class ModuleDirectoryStore:
    def __init__(self, paths: InstallerPaths, *, logger: Optional[logging.Logger] = None):
        self.paths = paths
        self.logger = logger or logging.getLogger("trackmod.store")

    # ---- module root ----
    def module_root(self, module_id: str) -> str:
        return self.paths.module_root(module_id)

    def metadata_path(self, module_id: str) -> str:
        return self.paths.metadata_path(module_id)

    def exists(self, module_id: str) -> bool:
        return os.path.isdir(self.module_root(module_id))

    def remove_root(self, module_id: str) -> bool:
        """
        Delete the module root recursively. Returns False if there was nothing to delete.
        OSError propagates to the caller.
        """
        root = self.module_root(module_id)
        if not os.path.isdir(root):
            return False
        shutil.rmtree(root)
        return True

    def reset_root(self, module_id: str) -> str:
        root = self.module_root(module_id)
        try:
            if os.path.isdir(root):
                shutil.rmtree(root)
            os.makedirs(root, exist_ok=True)
        except OSError as e:
            raise StorageFailure("Could not prepare the module folder.", path=root, error=str(e)) from e
        return root

    def resolve_in_root(self, module_id: str, rel_path: str) -> str:
        root = os.path.realpath(self.module_root(module_id))
        dest = os.path.realpath(os.path.join(root, str(rel_path).replace("\\", "/")))
        if os.path.commonpath([root, dest]) != root or dest == root:
            raise StorageFailure("Module file path escapes the module folder.", module_id=module_id, rel_path=rel_path)
        return dest

    def entry_point_path(self, record: ModuleRecord) -> str:
        if not record.dll_file_name:
            raise StorageFailure("Module record has no file name.", module_id=record.module_id)
        return os.path.abspath(os.path.join(self.module_root(record.module_id), record.dll_file_name))

    # ---- staging ----
    def staging_dir(self, module_id: str) -> str:
        return self.paths.staging_dir(module_id)

    def reset_staging(self, module_id: str) -> str:
        staging = self.staging_dir(module_id)
        try:
            if os.path.isdir(staging):
                shutil.rmtree(staging)
            os.makedirs(staging, exist_ok=True)
        except OSError as e:
            raise StorageFailure("Could not prepare the staging folder.", path=staging, error=str(e)) from e
        return staging

    def discard_staging(self, module_id: str) -> None:
        for path in (self.staging_dir(module_id), self.paths.archives_dir(module_id)):
            if not os.path.exists(path):
                continue
            shutil.rmtree(path, ignore_errors=True)
            if os.path.exists(path):
                self.logger.warning("Staging folder %s could not be fully removed", path)

    def commit_staged(self, module_id: str, staged_files: Iterable[str]) -> List[str]:
        """
        Copy staged files into the module root at the same relative paths,
        creating directories and overwriting existing files.
        """
        staging = self.staging_dir(module_id)
        written: List[str] = []
        for rel in staged_files:
            src = os.path.join(staging, rel)
            dst = self.resolve_in_root(module_id, rel)
            try:
                os.makedirs(os.path.dirname(dst), exist_ok=True)
                shutil.copyfile(src, dst)
            except OSError as e:
                raise StorageFailure(path=dst, error=str(e)) from e
            written.append(dst)
        return written

    # ---- metadata ----
    def write_metadata(self, record: ModuleRecord) -> str:
        path = self.metadata_path(record.module_id)
        try:
            atomic_write_json(path, record.to_metadata())
        except OSError as e:
            raise StorageFailure("Could not write module metadata.", path=path, error=str(e)) from e
        return path

    def read_metadata(self, module_id: str) -> Optional[ModuleRecord]:
        path = self.metadata_path(module_id)
        rr = read_json_file(path)
        if not rr.ok:
            if rr.error != "missing":
                self.logger.warning("Unreadable metadata for module %s: %s", module_id, rr.error)
            return None
        try:
            return ModuleRecord.model_validate(rr.data)
        except ValidationError as e:
            self.logger.warning("Invalid metadata for module %s: %s", module_id, str(e)[:200])
            return None

    def installed_ids(self) -> List[str]:
        root = self.paths.custom_libs_root
        if not os.path.isdir(root):
            return []
        out: List[str] = []
        for name in sorted(os.listdir(root)):
            if name.startswith("."):
                continue
            if os.path.isfile(os.path.join(root, name, self.paths.metadata_file_name)):
                out.append(name)
        return out
