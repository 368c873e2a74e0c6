"""
Tracking-module installation.

WHY THIS PACKAGE EXISTS:
Modules arrive as a bare .dll or an archive at a download URL. This package turns
one into a self-contained folder under the custom libs root with a module.json
describing what was installed, and removes it again.
"""

from trackmod.core.modules.installer import ModuleInstaller
from trackmod.core.modules.models import InstallResult, InstallState, ModuleRecord, UninstallOutcome, UninstallResult
from trackmod.core.modules.worker import InstallWorker

__all__ = [
    "InstallResult",
    "InstallState",
    "InstallWorker",
    "ModuleInstaller",
    "ModuleRecord",
    "UninstallOutcome",
    "UninstallResult",
]
