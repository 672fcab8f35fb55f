import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport

from fulfillment.core.config import settings
from fulfillment.main import app


@pytest_asyncio.fixture
async def client():
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.mark.asyncio
async def test_health_check_with_consumers_disabled(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "consumers_enabled", False)

    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy", "checks": {"consumers": "disabled"}}


@pytest.mark.asyncio
async def test_health_check_reports_disconnected_consumers(client: AsyncClient, monkeypatch):
    monkeypatch.setattr(settings, "consumers_enabled", True)

    response = await client.get("/health")

    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "unhealthy"
    assert data["checks"]["order-processing-queue"] == "unhealthy: not connected"
    assert data["checks"]["email-notifications-queue"] == "unhealthy: not connected"
