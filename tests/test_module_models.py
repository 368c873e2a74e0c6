from __future__ import annotations

import pytest
from pydantic import ValidationError

from trackmod.core.modules.models import InstallResult, InstallState, ModuleRecord, UninstallOutcome, UninstallResult


def test_record_accepts_catalog_keys_and_ignores_unknown():
    rec = ModuleRecord.model_validate(
        {
            "ModuleId": "6f1c2b9e-8d0a-4c57-9a1e-0f3b2c4d5e6f",
            "DownloadUrl": "https://x/y/mod.dll",
            "DllFileName": None,
            "ModuleName": "Mod",
            "Version": "1.2.0",
            "Rating": 4,
        }
    )
    assert rec.module_id == "6f1c2b9e-8d0a-4c57-9a1e-0f3b2c4d5e6f"
    assert rec.module_name == "Mod"
    assert rec.download_file_name == "mod.dll"


def test_metadata_uses_catalog_keys():
    rec = ModuleRecord(module_id="m1", download_url="https://x/mod.dll", dll_file_name="mod.dll")
    meta = rec.to_metadata()
    assert meta["ModuleId"] == "m1"
    assert meta["DownloadUrl"] == "https://x/mod.dll"
    assert meta["DllFileName"] == "mod.dll"
    assert ModuleRecord.model_validate(meta) == rec


@pytest.mark.parametrize("bad", ["", "..", "../etc", "a/b", "a\\b", " "])
def test_record_rejects_unsafe_ids(bad):
    with pytest.raises(ValidationError):
        ModuleRecord(module_id=bad, download_url="https://x/mod.dll")


def test_blank_dll_name_is_none():
    rec = ModuleRecord(module_id="m1", download_url="https://x/p.zip", dll_file_name="  ")
    assert rec.dll_file_name is None


def test_record_is_immutable():
    rec = ModuleRecord(module_id="m1", download_url="https://x/p.zip")
    with pytest.raises(ValidationError):
        rec.dll_file_name = "x.dll"  # type: ignore[misc]
    other = rec.with_entry_point("x.dll")
    assert other.dll_file_name == "x.dll"
    assert rec.dll_file_name is None


def test_download_file_name_strips_query_and_decodes():
    rec = ModuleRecord(module_id="m1", download_url="https://x/y/My%20Mod.zip?sig=abc")
    assert rec.download_file_name == "My Mod.zip"


def test_result_helpers():
    failed = InstallResult(
        module_id="m1",
        state=InstallState.FAILED,
        transitions=(InstallState.IDLE, InstallState.CLEANING_PRIOR_INSTALL, InstallState.FETCHING, InstallState.FAILED),
    )
    assert failed.ok is False
    assert failed.failed_during == InstallState.FETCHING
    assert UninstallResult(module_id="m1", outcome=UninstallOutcome.NOT_FOUND).ok is True
    assert UninstallResult(module_id="m1", outcome=UninstallOutcome.FAILED).ok is False
