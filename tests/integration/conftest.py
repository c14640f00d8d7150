import pytest

from gear_repository.git.repository import ApplicationRepository


@pytest.fixture
def repository(gear, node_config):
    return ApplicationRepository(gear, node_config)


@pytest.fixture
def snapshot():
    """Map every file below a directory to its bytes."""

    def _snapshot(root):
        return {
            str(path.relative_to(root)): path.read_bytes()
            for path in sorted(root.rglob("*"))
            if path.is_file()
        }

    return _snapshot
