"""
Shared fixtures for the print server configuration tests.
"""

import tempfile
from pathlib import Path

import pytest


GROUPS = {
    "wheel": 0,
    "lp": 7,
    "staff": 50,
    "printadmins": 1001,
}


@pytest.fixture(autouse=True)
def isolated_tmpdir(tmp_path, monkeypatch):
    """Keep default data directories (TMPDIR/ippserver.<pid>) inside tmp_path."""
    scratch = tmp_path / "tmp"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))
    return scratch


@pytest.fixture
def group_lookup():
    """Group resolver backed by a fixed table instead of /etc/group."""
    def _lookup(name):
        return GROUPS[name]
    return _lookup


class ListenerRecorder:
    """Stand-in for ListenerRegistry.create_listeners that records calls."""

    def __init__(self, result=True):
        self.result = result
        self.calls = []

    def __call__(self, host, port):
        self.calls.append((host, port))
        return self.result


@pytest.fixture
def listeners():
    return ListenerRecorder()


@pytest.fixture
def config_dir(tmp_path):
    """Empty configuration directory with print/ and print3d/ subdirectories."""
    directory = tmp_path / "conf"
    (directory / "print").mkdir(parents=True)
    (directory / "print3d").mkdir()
    return directory


@pytest.fixture
def write_file():
    """Write text to a path (creating parents) and return the path."""
    def _write(path, text):
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(text, encoding="utf-8")
        return path
    return _write


LASER_CONF = """\
# Office laser
Make "Example"
Model "Laser 9000"
DeviceURI "socket://192.0.2.10"
ATTR keyword sides-supported one-sided,two-sided-long-edge
ATTR integer copies-default 1
ATTR enum printer-state 3
ATTR text printer-info "Second floor"
"""


@pytest.fixture
def laser_conf():
    return LASER_CONF
