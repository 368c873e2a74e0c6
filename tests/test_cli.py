from __future__ import annotations

import json
import os

import app
from trackmod.core.modules import source as source_mod

from .helpers.fakes import FakeResponse, make_zip


def _run(capsys, tmp_path, *argv):
    code = app.main(["--libs-root", str(tmp_path / "libs"), *argv])
    out = capsys.readouterr()
    return code, out.out, out.err


def _serve(monkeypatch, artifacts):
    def _get(url, **_k):
        if url in artifacts:
            return FakeResponse(200, artifacts[url])
        return FakeResponse(404, b"")

    monkeypatch.setattr(source_mod.requests, "get", _get)


def test_install_list_show_uninstall(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("TRACKMOD_TEMP_ROOT", str(tmp_path / "tmp"))
    monkeypatch.chdir(tmp_path)
    _serve(monkeypatch, {"https://x/y/pack.zip": make_zip({"pack.dll": b"P", "extra.dll": b"E"})})

    code, out, _ = _run(capsys, tmp_path, "install", "--id", "m1", "--url", "https://x/y/pack.zip")
    assert code == 0
    assert out.startswith("installed m1 -> ")
    assert out.strip().endswith("pack.dll")

    code, out, _ = _run(capsys, tmp_path, "list")
    assert code == 0
    lines = out.strip().splitlines()
    assert lines[0] == "module_id | name | version | dll_file_name"
    assert lines[1] == "m1 |  |  | pack.dll"

    code, out, _ = _run(capsys, tmp_path, "show", "--id", "m1")
    payload = json.loads(out)
    assert code == 0
    assert payload["metadata"]["DllFileName"] == "pack.dll"

    code, out, _ = _run(capsys, tmp_path, "uninstall", "--id", "m1")
    assert code == 0
    assert out.strip() == "uninstalled m1"
    assert not os.path.exists(tmp_path / "libs" / "m1")

    code, out, _ = _run(capsys, tmp_path, "uninstall", "--id", "m1")
    assert code == 0
    assert out.strip() == "not installed m1"


def test_install_from_record_file(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("TRACKMOD_TEMP_ROOT", str(tmp_path / "tmp"))
    monkeypatch.chdir(tmp_path)
    _serve(monkeypatch, {"https://x/y/mod.dll": b"MZ"})
    rec = tmp_path / "record.json"
    rec.write_text(json.dumps({"ModuleId": "m2", "DownloadUrl": "https://x/y/mod.dll", "ModuleName": "Mod", "Version": "2.0"}), encoding="utf-8")

    code, out, _ = _run(capsys, tmp_path, "install", "--record", str(rec))
    assert code == 0
    code, out, _ = _run(capsys, tmp_path, "list")
    assert "m2 | Mod | 2.0 | mod.dll" in out


def test_failed_install_exit_code(tmp_path, capsys, monkeypatch):
    monkeypatch.setenv("TRACKMOD_TEMP_ROOT", str(tmp_path / "tmp"))
    monkeypatch.chdir(tmp_path)
    _serve(monkeypatch, {})

    code, out, _ = _run(capsys, tmp_path, "install", "--id", "m3", "--url", "https://x/y/mod.dll")
    assert code == 1
    assert out.strip() == "failed m3 (transport_failure during FETCHING)"


def test_install_requires_id_and_url(tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    code, _out, err = _run(capsys, tmp_path, "install", "--id", "m4")
    assert code == 2
    assert "--record" in err


def test_unreadable_record_file_is_reported(tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    missing = tmp_path / "nope.json"
    code, _out, err = _run(capsys, tmp_path, "install", "--record", str(missing))
    assert code == 2
    assert f"could not read {missing}: missing" in err
    assert "--id and --url" not in err

    broken = tmp_path / "broken.json"
    broken.write_text("{ not json", encoding="utf-8")
    code, _out, err = _run(capsys, tmp_path, "install", "--record", str(broken))
    assert code == 2
    assert "corrupt_json" in err


def test_uninstall_parent_dir_id_deletes_nothing(tmp_path, capsys, monkeypatch):
    monkeypatch.chdir(tmp_path)
    libs = tmp_path / "libs"
    libs.mkdir()
    (libs / "keep.txt").write_text("k", encoding="utf-8")
    (tmp_path / "sibling.txt").write_text("s", encoding="utf-8")

    code, out, _ = _run(capsys, tmp_path, "uninstall", "--id", "..")
    assert code == 1
    assert out.strip() == "failed to uninstall .."
    assert (libs / "keep.txt").exists()
    assert (tmp_path / "sibling.txt").exists()
