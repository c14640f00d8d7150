"""
Global pytest configuration and fixtures for the gear repository test suite.

Provides:
1. Temporary gear container directories
2. A recording gear that captures root/container context commands
3. A real ApplicationContainer for tests that run git
4. Automatic marking of tests by location and git requirements
"""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Dict, Generator, List, Mapping, Optional, Tuple

import pytest

from gear_repository.configuration import RepositoryConfig, create_test_config
from gear_repository.container import ApplicationContainer
from gear_repository.shell import ShellResult

from fixtures.git_repos import GitRepositoryFactory

GIT_AVAILABLE = shutil.which("git") is not None

GEAR_UUID = "52f1c3a8e7d94b0f9a1e3c6d2b7f8a90"
APP_NAME = "myapp"


class RecordingGear:
    """Gear double that records every command instead of running it.

    ``failures`` maps a substring of a command to the ShellExecutionError it
    should raise; ``on_command`` callbacks can create files a real command
    would have produced.
    """

    def __init__(self, container_dir: Path, env: Optional[Dict[str, str]] = None):
        self.uuid = GEAR_UUID
        self.application_name = APP_NAME
        self.container_dir = Path(container_dir)
        self.calls: List[Tuple[str, str, dict]] = []
        self.failures: Dict[str, Exception] = {}
        self.on_command: List = []
        self._env = env or {}

    def _record(self, context: str, command: str, **kwargs) -> ShellResult:
        self.calls.append((context, command, kwargs))
        for callback in self.on_command:
            callback(context, command, kwargs)
        for needle, error in self.failures.items():
            if needle in command:
                raise error
        return ShellResult("", "", 0)

    def run_in_root_context(self, command, chdir=None, expected_exitstatus=None):
        return self._record(
            "root", command, chdir=chdir, expected_exitstatus=expected_exitstatus
        )

    def run_in_container_context(
        self, command, chdir=None, env=None, expected_exitstatus=None
    ):
        return self._record(
            "container",
            command,
            chdir=chdir,
            env=env,
            expected_exitstatus=expected_exitstatus,
        )

    def set_rw_permission_R(self, path) -> None:
        self.calls.append(("set_rw_permission_R", str(path), {}))

    def env(self) -> Mapping[str, str]:
        return dict(self._env)

    def commands(self, context: Optional[str] = None) -> List[str]:
        return [
            command
            for ctx, command, _ in self.calls
            if context is None or ctx == context
        ]


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def git_repo_factory():
    """Provide access to GitRepositoryFactory."""
    return GitRepositoryFactory


@pytest.fixture
def node_config() -> RepositoryConfig:
    return create_test_config()


@pytest.fixture
def container_dir(temp_dir: Path) -> Path:
    path = temp_dir / GEAR_UUID
    (path / "app-root" / "runtime" / "repo").mkdir(parents=True)
    (path / ".tmp").mkdir()
    return path


@pytest.fixture
def recording_gear(container_dir: Path) -> RecordingGear:
    return RecordingGear(
        container_dir, env={"OPENSHIFT_TMP_DIR": str(container_dir / ".tmp")}
    )


@pytest.fixture
def gear(container_dir: Path, node_config: RepositoryConfig) -> ApplicationContainer:
    """A real gear rooted in a temporary directory, owned by the test user."""
    (container_dir / ".env").write_text(
        f"export OPENSHIFT_TMP_DIR='{container_dir / '.tmp'}'\n"
    )
    return ApplicationContainer(
        GEAR_UUID,
        APP_NAME,
        container_dir,
        uid=os.getuid(),
        gid=os.getgid(),
        config=node_config,
    )


def pytest_configure(config):
    """Register test categorization markers."""
    config.addinivalue_line("markers", "unit: Unit tests for individual components")
    config.addinivalue_line("markers", "integration: Tests that run real git commands")
    config.addinivalue_line("markers", "requires_git: Tests that need the git executable")


def pytest_collection_modifyitems(config, items):
    """Mark tests by location and skip git tests when git is missing."""
    skip_git = pytest.mark.skip(reason="git executable not available")
    for item in items:
        if "tests/unit/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "tests/integration/" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
            item.add_marker(pytest.mark.requires_git)

        if "requires_git" in item.keywords and not GIT_AVAILABLE:
            item.add_marker(skip_git)
