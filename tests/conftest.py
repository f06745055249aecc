import pytest

from file_manager.config import AppConfig
from file_manager.pipeline.orchestrator import FileManager


@pytest.fixture
def config(tmp_path):
    return AppConfig(
        db_url=f"sqlite:///{tmp_path / 'file_manager.db'}",
        storage_root=str(tmp_path / "storage"),
        compressed_dir=str(tmp_path / "compressed"),
        sweep_workers=4,
    )


@pytest.fixture
def manager(config):
    return FileManager.from_config(config)


@pytest.fixture
def workdir(tmp_path):
    path = tmp_path / "work"
    path.mkdir()
    return path
