"""Pytest configuration and fixtures for integration tests.

These tests drive the real docker engine through the devenv CLI. They are
opt-in: set DEVENV_INTEGRATION=1 and make sure docker and openssl work
(on Linux, certificate ownership changes may need passwordless sudo).

Each run uses its own container name and port so it cannot clash with a
developer's database.
"""

import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Generator

import pytest

TEST_CONTAINER = f"devenv-it-{os.getpid()}"
TEST_PORT = 55432


def pytest_collection_modifyitems(config, items):
    if os.environ.get("DEVENV_INTEGRATION") == "1" and shutil.which("docker"):
        return
    skip = pytest.mark.skip(reason="set DEVENV_INTEGRATION=1 with docker available")
    here = Path(__file__).parent
    for item in items:
        if here in Path(item.fspath).parents:
            item.add_marker(skip)


class DevEnv:
    """Wrapper for devenv CLI commands run in a subprocess."""

    __test__ = False  # Prevent pytest from collecting this as a test class

    def __init__(self, project_root: Path):
        self.project_root = project_root
        self.env = {
            **os.environ,
            "DEVENV_ROOT": str(project_root),
            "DB_CONTAINER_NAME": TEST_CONTAINER,
            "DB_PORT": str(TEST_PORT),
        }

    def run(self, *args: str, check: bool = True) -> subprocess.CompletedProcess:
        """Run devenv with given arguments."""
        return subprocess.run(
            [sys.executable, "-m", "devenv", *args],
            cwd=self.project_root,
            env=self.env,
            capture_output=True,
            text=True,
            check=check,
        )

    def is_running(self) -> bool:
        return self.run("dbstatus", check=False).returncode == 0


@pytest.fixture
def devenv(tmp_path: Path) -> Generator[DevEnv, None, None]:
    """A throwaway project root; the database container is removed afterwards."""
    (tmp_path / ".project-root").touch()
    wrapper = DevEnv(tmp_path)
    yield wrapper
    wrapper.run("dbstop", check=False)
