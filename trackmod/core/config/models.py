from __future__ import annotations

import tempfile
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class InstallerConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    custom_libs_root: str = Field(default="CustomLibs", min_length=1)
    temp_root: str = Field(default_factory=tempfile.gettempdir, min_length=1)
    binary_extension: str = ".dll"
    metadata_file_name: str = "module.json"
    staging_archive_name: str = "module.zip"

    http_timeout_seconds: float = Field(default=60.0, gt=0)
    http_chunk_bytes: int = Field(default=65536, ge=1024)
    user_agent: str = "trackmod-installer/0.1"

    max_workers: int = Field(default=2, ge=1, le=16)
    log_dir: str = "logs"
    events_path: Optional[str] = None

    @field_validator("binary_extension")
    @classmethod
    def _norm_extension(cls, v: str) -> str:
        v = str(v or "").strip().lower()
        if not v:
            raise ValueError("binary_extension required")
        return v if v.startswith(".") else "." + v

    @field_validator("metadata_file_name", "staging_archive_name")
    @classmethod
    def _plain_file_name(cls, v: str) -> str:
        v = str(v or "").strip()
        if not v or "/" in v or "\\" in v or v in {".", ".."}:
            raise ValueError("must be a plain file name")
        return v
