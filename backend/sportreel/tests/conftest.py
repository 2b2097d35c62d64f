"""Pytest configuration and fixtures."""
import io
from unittest.mock import MagicMock, patch
import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sportreel.api.deps import get_storage
from sportreel.core.database import get_db, get_session_factory
from sportreel.main import app
from sportreel.models.video import Base
from sportreel.services.aws import S3Client

TEST_DB_URL = "sqlite:///./test_sportreel.db"
test_engine = create_engine(TEST_DB_URL, connect_args={"check_same_thread": False})
TestSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

MEDIA_BASE_URL = "https://media.test"


@pytest.fixture(autouse=True)
def patch_settings():
    """Automatically patch settings for all tests so nothing reaches real services."""
    with patch("sportreel.core.config.settings.openai_api_key", "test-key"), \
         patch("sportreel.core.config.settings.s3_public_base_url", MEDIA_BASE_URL), \
         patch("sportreel.services.auth.PBKDF2_ITERATIONS", 1000):
        yield


@pytest.fixture
def test_db():
    Base.metadata.create_all(bind=test_engine)
    yield
    Base.metadata.drop_all(bind=test_engine)


@pytest.fixture
def db(test_db):
    session = TestSessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def session_factory(test_db):
    return TestSessionLocal


@pytest.fixture
def storage():
    """Real S3Client wrapping a mocked boto3 client."""
    s3 = S3Client()
    s3.s3_client = MagicMock()
    return s3


@pytest.fixture
def client(test_db, storage):
    def override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: TestSessionLocal
    app.dependency_overrides[get_storage] = lambda: storage
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def signup(client):
    """Create an account through the API and return (token, user json)."""
    def _signup(email="fan@example.com", password="secret123"):
        response = client.post(
            "/auth/signup",
            json={"email": email, "password": password, "confirmPassword": password},
        )
        assert response.status_code == 201, response.text
        data = response.json()
        return data["access_token"], data["user"]
    return _signup


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (512, 512), color=(20, 120, 40)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def video_bytes():
    return b"\x00\x00\x00\x18ftypmp42" + b"fake video content" * 1000
