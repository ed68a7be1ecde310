"""Integration tests for the health and greeting endpoints."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_health(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert "X-Request-ID" in response.headers


@pytest.mark.asyncio
async def test_greeting(client: AsyncClient):
    response = await client.get("/goext/stripe")

    assert response.status_code == 200
    assert response.json() == {"message": "Hello stripe"}


@pytest.mark.asyncio
async def test_unknown_route_uses_failure_body(client: AsyncClient):
    response = await client.get("/nope")

    assert response.status_code == 404
    assert response.json() == {"failure": "Not Found"}
