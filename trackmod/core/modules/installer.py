from __future__ import annotations

"""
ModuleInstaller: install/uninstall transitions for tracking modules.

WHY THIS FILE EXISTS:
This is the single public API for putting a module on disk and taking it off
again. Every install is a full replacement:
- the previous module root is removed before anything is downloaded
- archives are expanded into a per-module staging folder, never into the root
- module.json is written last, so a root without it was never fully installed
- operations on the same module id are serialized; different ids run freely
"""

import logging
import os
import posixpath
import uuid
from typing import Any, Dict, List, Optional, Union

from trackmod.core.config.models import InstallerConfig
from trackmod.core.config.paths import InstallerPaths
from trackmod.core.errors import NoEntryPointFound, StorageFailure, TrackmodError, TransportFailure, UninstallFailure
from trackmod.core.events import EventLogger
from trackmod.core.modules.locks import KeyedLocks
from trackmod.core.modules.materializer import ArchiveMaterializer, artifact_kind_for_url
from trackmod.core.modules.models import (
    ArtifactKind,
    InstallResult,
    InstallState,
    ModuleRecord,
    UninstallOutcome,
    UninstallResult,
    is_safe_module_id,
)
from trackmod.core.modules.planner import apply_plan, resolve_entry_point
from trackmod.core.modules.source import ArtifactSource, HttpArtifactSource
from trackmod.core.modules.store import ModuleDirectoryStore


ModuleRef = Union[ModuleRecord, str]


class _Transition:
    """Tracks the state trail of one install call."""

    def __init__(self, module_id: str, logger: logging.Logger):
        self.module_id = module_id
        self.logger = logger
        self.states: List[InstallState] = [InstallState.IDLE]

    @property
    def current(self) -> InstallState:
        return self.states[-1]

    def enter(self, state: InstallState) -> None:
        self.states.append(state)
        self.logger.debug("Module %s: %s", self.module_id, state.value)


class ModuleInstaller:
    def __init__(
        self,
        *,
        paths: InstallerPaths,
        source: Optional[ArtifactSource] = None,
        binary_extension: str = ".dll",
        logger: Optional[logging.Logger] = None,
        event_logger: Optional[EventLogger] = None,
        locks: Optional[KeyedLocks] = None,
    ):
        self.paths = paths
        self.source: ArtifactSource = source or HttpArtifactSource()
        self.binary_extension = str(binary_extension).lower()
        self.logger = logger or logging.getLogger("trackmod.installer")
        self.event_logger = event_logger
        self.locks = locks or KeyedLocks()
        self.store = ModuleDirectoryStore(paths, logger=self.logger)
        self.materializer = ArchiveMaterializer(logger=self.logger)

    @classmethod
    def from_config(
        cls,
        cfg: InstallerConfig,
        *,
        source: Optional[ArtifactSource] = None,
        logger: Optional[logging.Logger] = None,
    ) -> "ModuleInstaller":
        return cls(
            paths=InstallerPaths.from_config(cfg),
            source=source
            or HttpArtifactSource(
                timeout_seconds=cfg.http_timeout_seconds,
                chunk_bytes=cfg.http_chunk_bytes,
                user_agent=cfg.user_agent,
            ),
            binary_extension=cfg.binary_extension,
            logger=logger,
            event_logger=EventLogger(cfg.events_path) if cfg.events_path else None,
        )

    # ---- helpers ----
    def _emit(self, trace_id: str, event_type: str, details: Dict[str, Any]) -> None:
        if self.event_logger is None:
            return
        try:
            self.event_logger.log(trace_id, event_type, details)
        except OSError as e:
            self.logger.warning("Could not write audit event %s: %s", event_type, e)

    @staticmethod
    def _module_id(ref: ModuleRef) -> str:
        return ref.module_id if isinstance(ref, ModuleRecord) else str(ref)

    # ---- install ----
    def install(self, module: ModuleRecord) -> Optional[str]:
        """
        Install `module` and return the absolute path of its entry-point file.

        Returns None when no entry point could be identified (logged, not raised).
        Transport, archive and storage failures are raised after staging cleanup.
        """
        result = self.install_detailed(module)
        if result.ok:
            return result.entry_point_path
        if result.error is None or isinstance(result.error, NoEntryPointFound):
            return None
        raise result.error

    def install_detailed(self, module: ModuleRecord, *, trace_id: Optional[str] = None) -> InstallResult:
        trace_id = trace_id or uuid.uuid4().hex
        with self.locks.hold(module.module_id):
            return self._install_locked(module, trace_id)

    def _install_locked(self, module: ModuleRecord, trace_id: str) -> InstallResult:
        mid = module.module_id
        tr = _Transition(mid, self.logger)
        kind = artifact_kind_for_url(module.download_url, self.binary_extension)
        self._emit(trace_id, "module.install.started", {"module_id": mid, "kind": kind.value, "url": module.download_url})

        try:
            tr.enter(InstallState.CLEANING_PRIOR_INSTALL)
            self._uninstall_locked(mid, trace_id, quiet=True)
            module_root = self.store.reset_root(mid)

            tr.enter(InstallState.FETCHING)
            data = self._fetch(module.download_url)

            tr.enter(InstallState.MATERIALIZING)
            if kind == ArtifactKind.BINARY:
                resolved = self._materialize_binary(module, data)
            else:
                resolved = self._materialize_archive(module, data, tr)

            entry_point = self.store.entry_point_path(resolved)
            if not os.path.isfile(self.store.resolve_in_root(mid, resolved.dll_file_name or "")):
                raise NoEntryPointFound(
                    "The module's declared file is not present after install.",
                    dll_file_name=resolved.dll_file_name,
                )

            tr.enter(InstallState.PERSISTING_METADATA)
            self.store.write_metadata(resolved)

            tr.enter(InstallState.INSTALLED)
        except TrackmodError as e:
            failed_in = tr.current
            tr.enter(InstallState.FAILED)
            if isinstance(e, NoEntryPointFound):
                self.logger.error("Module %s has no usable entry point: %s", mid, e.user_message)
            else:
                self.logger.error("Failed to install module %s during %s: %s", mid, failed_in.value, e)
            self._emit(
                trace_id,
                "module.install.failed",
                {"module_id": mid, "state": failed_in.value, "code": e.code, "error": e.to_dict()},
            )
            return InstallResult(module_id=mid, state=InstallState.FAILED, record=None, error=e, transitions=tuple(tr.states))
        finally:
            if kind == ArtifactKind.ARCHIVE:
                self.store.discard_staging(mid)

        self.logger.info("Installed module %s to %s", mid, module_root)
        self._emit(trace_id, "module.install.succeeded", {"module_id": mid, "dll_file_name": resolved.dll_file_name})
        return InstallResult(
            module_id=mid,
            state=InstallState.INSTALLED,
            entry_point_path=entry_point,
            record=resolved,
            transitions=tuple(tr.states),
        )

    def _fetch(self, url: str) -> bytes:
        try:
            return self.source.fetch(url)
        except OSError as e:
            raise TransportFailure(url=url, error=str(e)[:200]) from e

    def _materialize_binary(self, module: ModuleRecord, data: bytes) -> ModuleRecord:
        name = module.dll_file_name or module.download_file_name
        if not name:
            raise NoEntryPointFound("The download URL does not name a file.", url=module.download_url)
        dest = self.store.resolve_in_root(module.module_id, name)
        self.materializer.write_binary(data, dest)
        self.logger.debug("Downloaded module %s to %s", module.module_id, dest)
        return module if module.dll_file_name == name else module.with_entry_point(name)

    def _materialize_archive(self, module: ModuleRecord, data: bytes, tr: _Transition) -> ModuleRecord:
        mid = module.module_id
        staging = self.store.reset_staging(mid)
        staged = self.materializer.expand_archive(data, staging, self.paths.staging_archive(mid))

        tr.enter(InstallState.PLANNING)
        plan = resolve_entry_point(
            module.dll_file_name,
            staged,
            module.download_url,
            binary_extension=self.binary_extension,
        )
        if plan.source == "matched":
            self.logger.debug(
                "Module %s didn't specify a target dll, and contained multiple. Using %s as its distance of %s was closest to the module name",
                mid,
                plan.file_name,
                plan.distance,
            )
        if plan.source == "declared" and posixpath.normpath(plan.file_name.replace("\\", "/")) not in staged:
            raise NoEntryPointFound(
                "The module's declared file is not in its archive.",
                dll_file_name=plan.file_name,
            )
        resolved = apply_plan(module, plan)

        tr.enter(InstallState.COMMITTING)
        self.store.commit_staged(mid, staged)
        return resolved

    # ---- uninstall ----
    def uninstall(self, module: ModuleRef, *, trace_id: Optional[str] = None) -> UninstallResult:
        mid = self._module_id(module)
        trace_id = trace_id or uuid.uuid4().hex
        if not is_safe_module_id(mid):
            self.logger.error("Refusing to uninstall module with invalid id %r", mid)
            err = UninstallFailure("Invalid module id.", module_id=mid)
            self._emit(trace_id, "module.uninstall.failed", {"module_id": mid, "error": err.to_dict()})
            return UninstallResult(module_id=mid, outcome=UninstallOutcome.FAILED, error=err)
        with self.locks.hold(mid):
            return self._uninstall_locked(mid, trace_id)

    def _uninstall_locked(self, module_id: str, trace_id: str, *, quiet: bool = False) -> UninstallResult:
        root = self.store.module_root(module_id)
        self.logger.debug("Uninstalling module %s", module_id)
        if not self.store.exists(module_id):
            if not quiet:
                self.logger.warning("Module %s could not be found where it was expected in %s", module_id, root)
                self._emit(trace_id, "module.uninstall.not_found", {"module_id": module_id})
            return UninstallResult(module_id=module_id, outcome=UninstallOutcome.NOT_FOUND)

        try:
            self.store.remove_root(module_id)
        except OSError as e:
            self.logger.error("Failed to uninstall module %s from %s: %s", module_id, root, e)
            err = UninstallFailure(module_id=module_id, path=root, error=str(e)[:200])
            self._emit(trace_id, "module.uninstall.failed", {"module_id": module_id, "error": err.to_dict()})
            if quiet:
                raise StorageFailure("The previous install could not be removed.", module_id=module_id, path=root) from e
            return UninstallResult(module_id=module_id, outcome=UninstallOutcome.FAILED, error=err)

        self.logger.info("Uninstalled module %s from %s", module_id, root)
        self._emit(trace_id, "module.uninstall.removed", {"module_id": module_id})
        return UninstallResult(module_id=module_id, outcome=UninstallOutcome.REMOVED)

    # ---- read-back ----
    def installed(self, module_id: str) -> Optional[ModuleRecord]:
        if not is_safe_module_id(module_id):
            return None
        return self.store.read_metadata(str(module_id))

    def list_installed(self) -> List[ModuleRecord]:
        out: List[ModuleRecord] = []
        for mid in self.store.installed_ids():
            rec = self.installed(mid)
            if rec is not None:
                out.append(rec)
        return out

    def installed_entry_point(self, module_id: str) -> Optional[str]:
        rec = self.installed(module_id)
        if rec is None or not rec.dll_file_name:
            return None
        return self.store.entry_point_path(rec)
