import os
import shutil
import tempfile
import pytest
import dotenv
from typing import Any

from app_config import AppConfig, ServerConfig
from server import create_app
from src.client.rest_client import RestMediaClient
from src.collection.model import CollectionConfig, PersistedItem
from src.mediastore.filesystem_mediastore import FilesystemMediastore
from src.mediastore.model import MediastoreConfig
from src.mediastore.reconciler import Reconciler, ReconcilerConfig

dotenv.load_dotenv()

# smallest valid-looking payloads, content is never inspected
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + bytes(range(256))
JPEG_BYTES = b"\xff\xd8\xff\xe0" + b"jpeg-body" + b"\xff\xd9"

@pytest.fixture
def png_bytes() -> bytes:
    return PNG_BYTES

@pytest.fixture
def jpeg_bytes() -> bytes:
    return JPEG_BYTES

@pytest.fixture
def temp_dir():
    """Create a temporary directory for tests"""
    temp_path = tempfile.mkdtemp()
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)

@pytest.fixture
def uploads_dir(temp_dir: str) -> str:
    return os.path.join(temp_dir, "uploads")

@pytest.fixture
def mediastore(uploads_dir: str) -> FilesystemMediastore:
    return FilesystemMediastore(base_dir=uploads_dir)

@pytest.fixture
def reconciler(mediastore: FilesystemMediastore) -> Reconciler:
    return Reconciler(mediastore, ReconcilerConfig(max_items=10))

@pytest.fixture
def collection_config() -> CollectionConfig:
    return CollectionConfig(max_items=10, allowed_content_types=["image/jpeg", "image/png"])

@pytest.fixture
def persisted_items() -> list[PersistedItem]:
    return [
        PersistedItem(identity="A", url="uploads/default/image-1.png"),
        PersistedItem(identity="B", url="uploads/default/image-2.png"),
        PersistedItem(identity="C", url="uploads/default/image-3.png"),
    ]

@pytest.fixture
def app_config(temp_dir: str, uploads_dir: str) -> AppConfig:
    return AppConfig(
        root_dir=temp_dir,
        mediastore=MediastoreConfig(base_dir=uploads_dir),
        reconciler=ReconcilerConfig(max_items=10),
        server=ServerConfig(log_file=None)
    )

@pytest.fixture
def app(app_config: AppConfig):
    app = create_app(app_config)
    app.config["TESTING"] = True
    return app

@pytest.fixture
def test_client(app):
    return app.test_client()

class FlaskResponse:
    """The parts of requests.Response that RestMediaClient uses, backed by a flask test response"""

    def __init__(self, resp):
        self._resp = resp
        self.status_code = resp.status_code
        self.ok = resp.status_code < 400
        self.text = resp.get_data(as_text=True)

    def json(self) -> Any:
        data = self._resp.get_json(silent=True)
        if data is None:
            raise ValueError("response is not JSON")
        return data

class FlaskSession:
    """Routes RestMediaClient calls into a flask test client instead of the network"""

    def __init__(self, test_client, base_url: str):
        self.test_client = test_client
        self.base_url = base_url
        self.headers = {}

    def get(self, url: str, timeout: float | None = None) -> FlaskResponse:
        return FlaskResponse(self.test_client.get(url[len(self.base_url):]))

    def post(self, url: str, json: Any = None, timeout: float | None = None) -> FlaskResponse:
        return FlaskResponse(self.test_client.post(url[len(self.base_url):], json=json))

@pytest.fixture
def rest_client(test_client) -> RestMediaClient:
    base_url = "http://mediastore.test"
    client = RestMediaClient(base_url)
    client.session = FlaskSession(test_client, base_url)
    return client

@pytest.fixture
def live_url() -> str:
    """URL of a running server, set TEST_MEDIASTORE_URL to run tests against it"""
    url = os.getenv("TEST_MEDIASTORE_URL")
    if not url:
        pytest.skip("TEST_MEDIASTORE_URL not set in environment")
    return url
