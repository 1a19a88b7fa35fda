"""Test configuration and shared fixtures."""

import os
import pytest
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture(autouse=True)
def nanoclaw_home(tmp_path, monkeypatch):
    """Point the data directory at a temp dir so tests never touch ~/.nanoclaw."""
    home = tmp_path / "nanoclaw_home"
    monkeypatch.setenv("NANOCLAW_HOME", str(home))
    for key in list(os.environ):
        if key.startswith("NANOCLAW_") and key != "NANOCLAW_HOME":
            monkeypatch.delenv(key)
    return home


@pytest.fixture
def memory_dir(tmp_path):
    """Directory for session history files."""
    path = tmp_path / "memory"
    path.mkdir()
    return path


@pytest.fixture(scope="session")
def project_path():
    """Return the project root path."""
    return Path(__file__).parent.parent
