from __future__ import annotations

"""
Module records and install/uninstall result types.

ModuleRecord is the catalog entry handed to the installer and, once an install
completes, the exact content of <module_root>/module.json. JSON keys keep the
catalog's PascalCase names so metadata written here stays readable by the host
application.
"""

import posixpath
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel, ConfigDict, Field, field_validator

from trackmod.core.errors import TrackmodError


_MODULE_ID_RE = re.compile(r"[a-zA-Z0-9][a-zA-Z0-9._-]{0,127}")


def is_safe_module_id(value: Any) -> bool:
    """True when `value` can name a folder directly under the libs and temp roots."""
    v = str(value or "")
    return bool(_MODULE_ID_RE.fullmatch(v)) and v not in {".", ".."}


def url_file_name(url: str) -> str:
    """Last path segment of a URL, without query or fragment."""
    path = urlsplit(str(url or "")).path
    return unquote(posixpath.basename(path))


def strip_extension(name: str) -> str:
    return posixpath.splitext(posixpath.basename(str(name or "").replace("\\", "/")))[0]


class ModuleRecord(BaseModel):
    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    module_id: str = Field(alias="ModuleId")
    download_url: str = Field(alias="DownloadUrl", min_length=1)
    dll_file_name: Optional[str] = Field(default=None, alias="DllFileName")

    # Catalog fields, carried through to module.json untouched.
    module_name: Optional[str] = Field(default=None, alias="ModuleName")
    version: Optional[str] = Field(default=None, alias="Version")
    author_name: Optional[str] = Field(default=None, alias="AuthorName")
    description: Optional[str] = Field(default=None, alias="Description")
    usage_instructions: Optional[str] = Field(default=None, alias="UsageInstructions")
    last_updated: Optional[str] = Field(default=None, alias="LastUpdated")

    @field_validator("module_id", mode="before")
    @classmethod
    def _module_id_safe(cls, v: Any) -> str:
        v = str(v or "").strip()
        if not v:
            raise ValueError("ModuleId required")
        # becomes a directory name under both the libs root and the temp root
        if not is_safe_module_id(v):
            raise ValueError("ModuleId contains invalid characters")
        return v

    @field_validator("dll_file_name", mode="before")
    @classmethod
    def _blank_is_none(cls, v: Any) -> Optional[str]:
        if v is None:
            return None
        v = str(v).strip()
        return v or None

    @property
    def download_file_name(self) -> str:
        return url_file_name(self.download_url)

    def with_entry_point(self, dll_file_name: str) -> "ModuleRecord":
        return self.model_copy(update={"dll_file_name": dll_file_name})

    def to_metadata(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class ArtifactKind(str, Enum):
    BINARY = "BINARY"
    ARCHIVE = "ARCHIVE"


class InstallState(str, Enum):
    IDLE = "IDLE"
    CLEANING_PRIOR_INSTALL = "CLEANING_PRIOR_INSTALL"
    FETCHING = "FETCHING"
    MATERIALIZING = "MATERIALIZING"
    PLANNING = "PLANNING"
    COMMITTING = "COMMITTING"
    PERSISTING_METADATA = "PERSISTING_METADATA"
    INSTALLED = "INSTALLED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class InstallResult:
    module_id: str
    state: InstallState
    entry_point_path: Optional[str] = None
    record: Optional[ModuleRecord] = None
    error: Optional[TrackmodError] = None
    transitions: Tuple[InstallState, ...] = field(default_factory=tuple)

    @property
    def ok(self) -> bool:
        return self.state == InstallState.INSTALLED and self.entry_point_path is not None

    @property
    def failed_during(self) -> Optional[InstallState]:
        """Last working state entered before FAILED, if the install failed."""
        if self.state != InstallState.FAILED or len(self.transitions) < 2:
            return None
        return self.transitions[-2]


class UninstallOutcome(str, Enum):
    REMOVED = "REMOVED"
    NOT_FOUND = "NOT_FOUND"
    FAILED = "FAILED"


@dataclass(frozen=True)
class UninstallResult:
    module_id: str
    outcome: UninstallOutcome
    error: Optional[TrackmodError] = None

    @property
    def ok(self) -> bool:
        return self.outcome in {UninstallOutcome.REMOVED, UninstallOutcome.NOT_FOUND}
