"""
QPaperHub Backend — Test Configuration (conftest.py)
======================================================

What:  Shared pytest fixtures for the entire test suite.
How:   pytest auto-discovers conftest.py and makes fixtures available to all tests.

Fixture Hierarchy (all function-scoped):
    ├── database:           Connected Database on a throwaway SQLite file
    │   └── db_session:     AsyncSession from that database
    ├── local_store:        LocalObjectStore under tmp_path
    ├── mock_object_store:  MagicMock(spec=ObjectStore) with async methods
    ├── sample_pdf_bytes:   Minimal PDF content for upload tests
    └── api_app / test_client: FastAPI app wired to the fixtures above, and an
                            HTTPX AsyncClient talking to it in-process
"""

import os
import tempfile
from unittest.mock import MagicMock

# Override settings for testing BEFORE any app imports
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["OBJECT_STORE_BACKEND"] = "local"
os.environ["STORAGE_ROOT"] = tempfile.mkdtemp(prefix="qpaperhub_test_")
os.environ["PUBLIC_BASE_URL"] = "http://test"
os.environ["LOG_LEVEL"] = "WARNING"

import pytest  # noqa: E402
import pytest_asyncio  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402

from app.database import Database  # noqa: E402
from app.services.local_store import LocalObjectStore  # noqa: E402
from app.services.object_store import ObjectStore, StoredObject  # noqa: E402


@pytest_asyncio.fixture
async def database(tmp_path):
    """
    A connected Database with every table created.

    Each test gets its own SQLite file, so tests never see each other's rows.
    """
    db = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await db.connect()
    await db.create_all()
    yield db
    await db.dispose()


@pytest_asyncio.fixture
async def db_session(database):
    async with database.session() as session:
        yield session


@pytest.fixture
def local_store(tmp_path):
    return LocalObjectStore(
        storage_root=str(tmp_path / "objects"),
        public_base_url="http://test",
    )


@pytest.fixture
def mock_object_store():
    """
    ObjectStore double; async methods are AsyncMocks.

    Usage:
        mock_object_store.store.side_effect = UpstreamServiceError()
    """
    store = MagicMock(spec=ObjectStore)
    store.backend_name = "mock"
    store.store.return_value = StoredObject(
        object_id="drive-file-1",
        public_url="https://drive.google.com/file/d/drive-file-1/view",
    )
    store.make_public.return_value = None
    store.delete.return_value = None
    store.health_check.return_value = True
    store.status.return_value = "available"
    return store


@pytest.fixture
def sample_pdf_bytes():
    """Smallest PDF-looking payload; only the extension is validated."""
    return b"%PDF-1.4\n1 0 obj\n<<>>\nendobj\ntrailer\n<<>>\n%%EOF\n"


@pytest.fixture
def api_app(database, local_store):
    """
    FastAPI app with app.state populated directly.

    ASGITransport does not run the lifespan, so the fixtures stand in for
    what startup would have built.
    """
    from app.main import create_app

    application = create_app()
    application.state.database = database
    application.state.object_store = local_store
    return application


@pytest_asyncio.fixture
async def test_client(api_app):
    """
    HTTPX AsyncClient routed straight into the app.

    Usage:
        async def test_health(test_client):
            response = await test_client.get("/health")
            assert response.status_code == 200
    """
    transport = ASGITransport(app=api_app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client
