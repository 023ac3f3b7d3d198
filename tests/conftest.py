import httpx
import pytest
from fastapi.testclient import TestClient

from config import Settings
from main import create_app

HOSTNAME = "example.com"
REMOTE_ACTOR = "https://remote.example/users/alice"


class MockPeer:
    """Stands in for a remote server receiving our outbound activities."""

    def __init__(self, status_code=200):
        self.status_code = status_code
        self.error = None
        self.requests = []

    def __call__(self, request: httpx.Request):
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        return httpx.Response(self.status_code, json={})


@pytest.fixture
def settings(tmp_path):
    return Settings(hostname=HOSTNAME, request_log_path=str(tmp_path / "request.log"))


@pytest.fixture
def peer():
    return MockPeer()


@pytest.fixture
def client(settings, peer):
    app = create_app(settings, transport=httpx.MockTransport(peer))
    return TestClient(app)
