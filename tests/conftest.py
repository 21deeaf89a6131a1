"""
Pytest configuration.

Platform directories are redirected to a throwaway location before the
package is imported, so log files and the default config never touch the
real user profile. Qt runs offscreen.
"""
import os
import tempfile
import time

_SANDBOX = tempfile.mkdtemp(prefix="airesearcher-tests-")
for _var in ("XDG_DATA_HOME", "XDG_CONFIG_HOME", "XDG_STATE_HOME", "XDG_CACHE_HOME"):
    os.environ[_var] = os.path.join(_SANDBOX, _var.lower())
os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

import pytest
from PySide6.QtWidgets import QApplication

from airesearcher.core.deps import CliDetector, DependencyProbe, Tool, not_installed
from airesearcher.core.settings import ConfigStore
from airesearcher.core.structure import DirectoryManager
from airesearcher.utils.locking import release_run_lock


class StubDetector(CliDetector):
    """Detector returning a canned result, counting calls."""

    def __init__(self, tool, info=None, delay=0.0, exc=None):
        super().__init__()
        self.tool = tool
        self.info = info
        self.delay = delay
        self.exc = exc
        self.calls = 0

    def detect(self, preferred_path=None):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return self.info or not_installed(self.tool)


@pytest.fixture(autouse=True)
def cleanup_qt_objects(qtbot, request):
    """Process pending Qt events after each test."""
    yield

    app = QApplication.instance()
    if app:
        app.processEvents()


@pytest.fixture(autouse=True)
def reset_run_lock():
    yield
    release_run_lock()


@pytest.fixture
def stub_detectors():
    return {tool: StubDetector(tool) for tool in Tool}


@pytest.fixture
def probe(stub_detectors):
    return DependencyProbe(detectors=stub_detectors)


@pytest.fixture
def data_dir(tmp_path):
    return tmp_path / "data"


@pytest.fixture
def config_store(tmp_path):
    return ConfigStore(tmp_path / "config" / "config.json")


@pytest.fixture
def directory_manager(data_dir):
    return DirectoryManager(default_root=data_dir)
