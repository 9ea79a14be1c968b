"""
Shared pytest fixtures for the Passtable test suite.

Autouse fixtures below isolate tests from the user's environment:
  - Configuration singleton -> reset per test (no leaking env overrides)
  - Working directory       -> temp directory (fallback saves land there)
"""

from pathlib import Path

import pytest

from passtable.core.config import LoggingConfig, PasstableConfig, PathConfig, VaultConfig
from passtable.core.vault import Vault


@pytest.fixture(autouse=True)
def _isolate_config():
    """Drop the cached PasstableConfig before and after every test."""
    PasstableConfig.reset_instance()
    yield
    PasstableConfig.reset_instance()


@pytest.fixture(autouse=True)
def _isolate_cwd(tmp_path, monkeypatch):
    """Run every test from a scratch directory.

    Vault.save() falls back to a bare file name when the primary write
    fails, so without this a failing test could drop files in the repo.
    """
    workdir = tmp_path / "cwd"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    return workdir


class MemoryWriter:
    """Writer that keeps files in a dict and can be told to fail."""

    def __init__(self, fail_on=()):
        self.files = {}
        self.calls = []
        self.fail_on = set(fail_on)

    def __call__(self, path, content):
        self.calls.append(path)
        if path in self.fail_on or "*" in self.fail_on:
            raise PermissionError(13, "Permission denied", path)
        self.files[path] = content


@pytest.fixture
def writer():
    return MemoryWriter()


@pytest.fixture
def new_vault(writer):
    """An empty, filled vault that has never been saved."""
    vault = Vault(writer=writer)
    assert vault.fill().ok
    return vault


@pytest.fixture
def config(tmp_path) -> PasstableConfig:
    """Configuration rooted in the test's temp directory."""
    return PasstableConfig(
        paths=PathConfig(data_dir=tmp_path / "data", log_dir=tmp_path / "logs"),
        vault=VaultConfig(fallback_dir=tmp_path / "rescue"),
        logging=LoggingConfig(level="DEBUG", enable_console=False),
    )


@pytest.fixture
def data_dir(config) -> Path:
    config.ensure_directories()
    return config.paths.data_dir


@pytest.fixture
def make_writer():
    """Factory for MemoryWriter instances with chosen failing paths."""
    return MemoryWriter
