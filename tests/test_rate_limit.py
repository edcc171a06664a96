"""
Tests for the token-bucket rate limiter (in-memory path)
"""
import httpx
import pytest
from fastapi import FastAPI

from utils.rate_limit import RateLimiterMiddleware


def build_app(limit: int) -> FastAPI:
    app = FastAPI()
    app.add_middleware(RateLimiterMiddleware, requests_per_minute=limit)

    @app.get("/api/ping")
    async def ping():
        return {"ok": True}

    @app.post("/api/subscription/webhook")
    async def webhook():
        return {"ok": True}

    return app


@pytest.mark.asyncio
async def test_requests_over_capacity_get_429():
    transport = httpx.ASGITransport(app=build_app(2))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        statuses = [(await client.get("/api/ping")).status_code for _ in range(3)]
        limited = await client.get("/api/ping")

    assert statuses == [200, 200, 429]
    assert limited.json()["error"] == "rate_limited"


@pytest.mark.asyncio
async def test_webhook_and_zero_limit_are_exempt():
    transport = httpx.ASGITransport(app=build_app(1))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        statuses = [(await client.post("/api/subscription/webhook")).status_code for _ in range(3)]
    assert statuses == [200, 200, 200]

    transport = httpx.ASGITransport(app=build_app(0))
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
        statuses = [(await client.get("/api/ping")).status_code for _ in range(5)]
    assert statuses == [200] * 5
