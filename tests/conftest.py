from __future__ import annotations

import os

import pytest

from trackmod.core.config.paths import InstallerPaths
from trackmod.core.events import EventLogger
from trackmod.core.modules.installer import ModuleInstaller

from .helpers.fakes import FakeSource


@pytest.fixture
def install_paths(tmp_path):
    """
    Isolated libs root + temp root under tmp_path.
    """
    paths = InstallerPaths(
        custom_libs_root=str(tmp_path / "CustomLibs"),
        temp_root=str(tmp_path / "tmp"),
    )
    os.makedirs(paths.custom_libs_root, exist_ok=True)
    os.makedirs(paths.temp_root, exist_ok=True)
    return paths

@pytest.fixture
def fake_source():
    return FakeSource()

@pytest.fixture
def events_path(tmp_path):
    return str(tmp_path / "logs" / "events.jsonl")

@pytest.fixture
def installer(install_paths, fake_source, events_path):
    return ModuleInstaller(paths=install_paths, source=fake_source, event_logger=EventLogger(events_path))
