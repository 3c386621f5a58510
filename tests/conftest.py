import os
import tempfile

# Configure the app before any psd_worker module is imported
_data_dir = tempfile.mkdtemp(prefix="psd_worker_test_")
os.environ["DATA_DIR"] = _data_dir
os.environ["DATABASE_URL"] = f"sqlite:///{_data_dir}/test.db"
os.environ.pop("WORKER_API_KEY", None)
os.environ.pop("PLAYWRIGHT_WS_ENDPOINT", None)

import pytest
from fastapi.testclient import TestClient

from psd_worker import config
from psd_worker.main import app


class FakeBrowserManager:
    def __init__(self, connected: bool = False):
        self.connected = connected

    def is_connected(self) -> bool:
        return self.connected

    async def close(self):
        self.connected = False


class FakeUploader:
    pass


@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(config, "WORKER_API_KEY", None)
    with TestClient(app) as test_client:
        app.state.browser_manager = FakeBrowserManager()
        app.state.uploader = FakeUploader()
        yield test_client
