from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict

from trackmod.core.events import redact


class Severity(str, Enum):
    INFO = "INFO"
    WARN = "WARN"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


@dataclass
class TrackmodError(Exception):
    code: str
    user_message: str
    severity: Severity = Severity.ERROR
    recoverable: bool = True
    context: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        super().__init__(self.code)

    def __str__(self) -> str:
        return f"{self.code}: {self.user_message}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "code": self.code,
            "user_message": self.user_message,
            "severity": self.severity.value,
            "recoverable": bool(self.recoverable),
            "context": redact(self.context or {}),
        }


class ConfigError(TrackmodError):
    def __init__(self, user_message: str = "Configuration error.", **ctx: Any):
        super().__init__("config_error", user_message, severity=Severity.CRITICAL, recoverable=False, context=ctx)


# ---- Install ----
class InstallFailure(TrackmodError):
    def __init__(self, user_message: str = "Module install failed.", *, code: str = "install_failure", **ctx: Any):
        super().__init__(code, user_message, severity=Severity.ERROR, recoverable=True, context=ctx)


class TransportFailure(InstallFailure):
    def __init__(self, user_message: str = "Could not download the module.", **ctx: Any):
        super().__init__(user_message, code="transport_failure", **ctx)


class ArchiveCorrupt(InstallFailure):
    def __init__(self, user_message: str = "The downloaded module archive is corrupt.", **ctx: Any):
        super().__init__(user_message, code="archive_corrupt", **ctx)


class StorageFailure(InstallFailure):
    def __init__(self, user_message: str = "Could not write module files to disk.", **ctx: Any):
        super().__init__(user_message, code="storage_failure", **ctx)


class NoEntryPointFound(InstallFailure):
    def __init__(self, user_message: str = "No loadable module file was found.", **ctx: Any):
        super().__init__(user_message, code="no_entry_point", **ctx)


# ---- Uninstall ----
class UninstallFailure(TrackmodError):
    def __init__(self, user_message: str = "Module could not be removed.", **ctx: Any):
        super().__init__("uninstall_failure", user_message, severity=Severity.WARN, recoverable=True, context=ctx)
