"""Pytest configuration and shared fixtures."""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from cora.shell import CommandResult, ShellSession
from cora.ui.prompts import ConfirmationResult


@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests."""
    dir_path = tempfile.mkdtemp()
    yield dir_path
    shutil.rmtree(dir_path, ignore_errors=True)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove CORA and provider variables from the environment."""
    for name in (
        "CORA_API_KEY", "CORA_PROVIDER", "CORA_MODEL", "CORA_SHELL", "CORA_DEBUG",
        "ANTHROPIC_API_KEY", "OPENAI_API_KEY",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def isolated_config(temp_dir, monkeypatch, clean_env):
    """Point HOME at a temporary directory and return its CORA config dir."""
    config_dir = Path(temp_dir) / ".config" / "cora"
    config_dir.mkdir(parents=True)
    monkeypatch.setenv("HOME", temp_dir)
    monkeypatch.setenv("USERPROFILE", temp_dir)

    from cora.config import reset_config
    reset_config()
    yield config_dir
    reset_config()


@pytest.fixture
def mock_ui():
    """A TerminalUI stand-in that records calls."""
    ui = MagicMock()
    ui.debug_output = False
    return ui


@pytest.fixture
def mock_prompts():
    """Prompts that answer yes unless a test says otherwise."""
    prompts = MagicMock()
    prompts.confirm.return_value = ConfirmationResult.YES
    prompts.get_input.return_value = None
    return prompts


@pytest.fixture
def mock_client():
    """A model client stand-in."""
    client = MagicMock()
    client.explain_error.return_value = "The file does not exist."
    return client


@pytest.fixture
def mock_shell():
    """A ShellSession stand-in whose commands succeed silently."""
    shell = MagicMock(spec=ShellSession)
    shell.running = True
    shell.execute.return_value = CommandResult(output="", error="")
    return shell


@pytest.fixture
def bash_session(temp_dir):
    """A real bash session started in a temporary directory."""
    session = ShellSession.create(process_name="bash", cwd=temp_dir, stderr_idle_timeout=0.3)
    yield session
    session.terminate()


# Markers for slow tests
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
