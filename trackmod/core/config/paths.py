from __future__ import annotations

import os
from dataclasses import dataclass

from trackmod.core.config.models import InstallerConfig
from trackmod.core.errors import StorageFailure


# Module ids start with an alphanumeric, so this folder never collides with a staging dir.
ARCHIVES_DIR_NAME = ".trackmod-archives"


def _child_of(root: str, name: str) -> str:
    """Join root/name, refusing names that resolve to root itself or outside it."""
    base = os.path.abspath(root)
    path = os.path.abspath(os.path.join(base, str(name)))
    if os.path.dirname(path) != base:
        raise StorageFailure("Module id does not name a folder under its root.", root=root, module_id=str(name))
    return path


@dataclass(frozen=True)
class InstallerPaths:
    custom_libs_root: str = "CustomLibs"
    temp_root: str = "."
    metadata_file_name: str = "module.json"
    staging_archive_name: str = "module.zip"

    @classmethod
    def from_config(cls, cfg: InstallerConfig) -> "InstallerPaths":
        return cls(
            custom_libs_root=os.path.abspath(cfg.custom_libs_root),
            temp_root=os.path.abspath(cfg.temp_root),
            metadata_file_name=cfg.metadata_file_name,
            staging_archive_name=cfg.staging_archive_name,
        )

    # Per-module layout
    def module_root(self, module_id: str) -> str:
        return os.path.join(self.custom_libs_root, os.path.basename(_child_of(self.custom_libs_root, module_id)))

    def metadata_path(self, module_id: str) -> str:
        return os.path.join(self.module_root(module_id), self.metadata_file_name)

    def staging_dir(self, module_id: str) -> str:
        return os.path.join(self.temp_root, os.path.basename(_child_of(self.temp_root, module_id)))

    def archives_dir(self, module_id: str) -> str:
        return os.path.join(self.temp_root, ARCHIVES_DIR_NAME, os.path.basename(_child_of(self.temp_root, module_id)))

    def staging_archive(self, module_id: str) -> str:
        """Downloaded archive; kept outside the staging dir so no archive member can overwrite it."""
        return os.path.join(self.archives_dir(module_id), self.staging_archive_name)
