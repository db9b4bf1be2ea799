import pytest
from fastapi.testclient import TestClient

from app import app
from backend import LinkBackend
from channel import NotificationChannel
from codec import LinkCodec
from keystore import FileKeystore, MemoryKeystore
from manager import LinkManager
from routers.links import get_link_backend
from store import SecretStore

BASE_URL = "https://vdo.ninja/"


class RecordingStore(SecretStore):
    """SecretStore that remembers every load and successful save."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.loads = 0
        self.saved = []

    def load(self):
        self.loads += 1
        return super().load()

    def save(self, value):
        url = super().save(value)
        self.saved.append(url)
        return url


@pytest.fixture
def codec():
    return LinkCodec(BASE_URL)


@pytest.fixture
def keystore():
    return MemoryKeystore()


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / "link.json"


@pytest.fixture
def store(store_path, keystore, codec):
    return RecordingStore(store_path, keystore, codec)


@pytest.fixture
def channel():
    return NotificationChannel()


@pytest.fixture
def manager(store, channel):
    return LinkManager(store, channel)


@pytest.fixture
def subscription(channel):
    sub = channel.subscribe()
    yield sub
    sub.close()


@pytest.fixture
def backend(tmp_path):
    return LinkBackend(
        store_path=str(tmp_path / "link.json"),
        keystore=FileKeystore(tmp_path / "link.key"),
        base_url=BASE_URL,
    )


@pytest.fixture
def client(backend):
    app.dependency_overrides[get_link_backend] = lambda: backend
    try:
        with TestClient(app) as test_client:
            yield test_client
    finally:
        app.dependency_overrides.clear()
