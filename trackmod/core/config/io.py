from __future__ import annotations

import json
import os
import tempfile
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from pydantic import ValidationError

from trackmod.core.config.models import InstallerConfig
from trackmod.core.errors import ConfigError


ENV_OVERRIDES = {
    "TRACKMOD_LIBS_ROOT": "custom_libs_root",
    "TRACKMOD_TEMP_ROOT": "temp_root",
}


@dataclass(frozen=True)
class ReadResult:
    ok: bool
    data: Dict[str, Any]
    error: Optional[str] = None


def read_json_file(path: str) -> ReadResult:
    if not os.path.exists(path):
        return ReadResult(ok=False, data={}, error="missing")
    try:
        with open(path, "r", encoding="utf-8") as f:
            obj = json.load(f)
        if not isinstance(obj, dict):
            return ReadResult(ok=False, data={}, error="not_object")
        return ReadResult(ok=True, data=obj)
    except json.JSONDecodeError as e:
        return ReadResult(ok=False, data={}, error=f"corrupt_json:{e}")
    except OSError as e:
        return ReadResult(ok=False, data={}, error=str(e))


def atomic_write_json(path: str, data: Dict[str, Any]) -> None:
    """
    Write indented JSON next to `path` and swap it in with os.replace so readers
    never observe a half-written file.
    """
    parent = os.path.dirname(path) or "."
    os.makedirs(parent, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=".tmp_", suffix=".json", dir=parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp, path)
    finally:
        try:
            if os.path.exists(tmp):
                os.remove(tmp)
        except OSError:
            pass


def load_installer_config(
    path: Optional[str] = None,
    *,
    overrides: Optional[Mapping[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> InstallerConfig:
    raw: Dict[str, Any] = {}
    if path:
        rr = read_json_file(path)
        if not rr.ok:
            raise ConfigError("Installer config could not be read.", path=path, reason=rr.error)
        raw.update(rr.data)

    env = os.environ if environ is None else environ
    for var, key in ENV_OVERRIDES.items():
        val = str(env.get(var) or "").strip()
        if val:
            raw[key] = val

    for k, v in (overrides or {}).items():
        if v is not None:
            raw[k] = v

    try:
        return InstallerConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError("Installer config is invalid.", path=path or "", errors=str(e)[:500]) from e
