from __future__ import annotations

"""
Rendering helpers for the install/uninstall/list commands in app.py.
Kept separate so output is testable without a terminal.
"""

from typing import Any, Dict, List

from trackmod.core.modules.installer import ModuleInstaller
from trackmod.core.modules.models import InstallResult, UninstallOutcome, UninstallResult


def installed_lines(*, installer: ModuleInstaller) -> List[str]:
    """
    Columns: module_id | name | version | dll_file_name
    """
    lines = ["module_id | name | version | dll_file_name"]
    for rec in installer.list_installed():
        lines.append(f"{rec.module_id} | {rec.module_name or ''} | {rec.version or ''} | {rec.dll_file_name or ''}")
    return lines


def show_payload(*, installer: ModuleInstaller, module_id: str) -> Dict[str, Any]:
    rec = installer.installed(module_id)
    if rec is None:
        return {"ok": False, "module_id": str(module_id), "error": "not installed"}
    return {
        "ok": True,
        "module_id": rec.module_id,
        "module_root": installer.store.module_root(rec.module_id),
        "entry_point": installer.installed_entry_point(rec.module_id),
        "metadata": rec.to_metadata(),
    }


def install_result_line(result: InstallResult) -> str:
    if result.ok:
        return f"installed {result.module_id} -> {result.entry_point_path}"
    code = result.error.code if result.error is not None else "unknown"
    during = result.failed_during.value if result.failed_during is not None else "?"
    return f"failed {result.module_id} ({code} during {during})"


def uninstall_result_line(result: UninstallResult) -> str:
    if result.outcome == UninstallOutcome.NOT_FOUND:
        return f"not installed {result.module_id}"
    if result.ok:
        return f"uninstalled {result.module_id}"
    return f"failed to uninstall {result.module_id}"
