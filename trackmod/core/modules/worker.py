from __future__ import annotations

"""
Background execution for installs/uninstalls.

Downloads and archive expansion block; callers hand them to InstallWorker and
keep their own thread responsive. Work for the same module id never overlaps
(the installer holds a per-id lock); submission order between two calls for one
id is only guaranteed with max_workers=1.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Optional

from trackmod.core.modules.installer import ModuleInstaller, ModuleRef
from trackmod.core.modules.models import InstallResult, ModuleRecord, UninstallResult


class InstallWorker:
    def __init__(self, installer: ModuleInstaller, *, max_workers: int = 2, logger: Optional[logging.Logger] = None):
        self.installer = installer
        self.logger = logger or logging.getLogger("trackmod.worker")
        self._pool = ThreadPoolExecutor(max_workers=max(1, int(max_workers)), thread_name_prefix="trackmod-install")
        self._closed = False

    def submit_install(self, module: ModuleRecord) -> "Future[InstallResult]":
        self._check_open()
        self.logger.debug("Queued install of module %s", module.module_id)
        return self._pool.submit(self.installer.install_detailed, module)

    def submit_uninstall(self, module: ModuleRef) -> "Future[UninstallResult]":
        self._check_open()
        return self._pool.submit(self.installer.uninstall, module)

    def _check_open(self) -> None:
        if self._closed:
            raise RuntimeError("InstallWorker is shut down")

    def shutdown(self, wait: bool = True) -> None:
        self._closed = True
        self._pool.shutdown(wait=wait)

    def __enter__(self) -> "InstallWorker":
        return self

    def __exit__(self, *_exc) -> None:
        self.shutdown(wait=True)
