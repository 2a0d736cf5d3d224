"""Shared test fixtures for API integration tests."""
import pytest
from unittest.mock import MagicMock
from fastapi.testclient import TestClient

from app.config import settings
from app.main import app
from app.database import get_db
from app.modules.vessel_index import VesselIndex


@pytest.fixture
def mock_db():
    """MagicMock database session: no saved vessels by default."""
    session = MagicMock()
    session.query.return_value.order_by.return_value.all.return_value = []
    session.query.return_value.filter.return_value.order_by.return_value.all.return_value = []
    return session


@pytest.fixture
def api_client(mock_db, monkeypatch):
    """TestClient with DB dependency overridden and no outbound credentials.

    Feed and Marinesia keys are cleared so the lifespan never opens a socket.
    """
    monkeypatch.setattr(settings, "AISSTREAM_API_KEY", None)
    monkeypatch.setattr(settings, "MARINESIA_API_KEY", None)
    monkeypatch.setattr(settings, "IWC_API_KEY", None)

    def override_get_db():
        yield mock_db

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as client:
        yield client
    app.dependency_overrides.clear()


@pytest.fixture
def index():
    """Fresh, empty vessel index."""
    return VesselIndex()
