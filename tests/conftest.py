import pytest
from fastapi.testclient import TestClient

from segment_manager_api.app.main import create_app
from segment_manager_api.app.services.segment_manager import SegmentManager
from segment_manager_api.app.services.state_service import StateRepository


@pytest.fixture
def db_path(tmp_path):
    return str(tmp_path / "segments.db")


@pytest.fixture
def repository(db_path):
    repo = StateRepository(db_path)
    repo.init_schema()
    return repo


@pytest.fixture
def manager():
    """Manager without persistence."""
    return SegmentManager()


@pytest.fixture
def persisted_manager(repository):
    mgr = SegmentManager(repository)
    mgr.load()
    return mgr


@pytest.fixture
def client(db_path):
    app = create_app(db_path)
    with TestClient(app) as test_client:
        yield test_client
