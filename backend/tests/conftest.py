"""Test fixtures for the storefront backend."""
from __future__ import annotations

import json
from collections.abc import AsyncIterator

import fakeredis
import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient

from storefront.core.config import Settings
from storefront.core.settings import SiteSettings
from storefront.main import create_app

BACKEND_URL = "http://backend.test/api"
VALID_PASSWORD = "Correct-Horse-9"


class FakeClock:
    """Manually advanced replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def site_settings() -> SiteSettings:
    return SiteSettings(
        profit_margin="20",
        default_vat_rate="18",
        extra_fee="5",
        one_time_coupon_price="9.99",
        annual_coupon_price="49.99",
    )


@pytest.fixture()
def redis_server() -> fakeredis.FakeServer:
    return fakeredis.FakeServer()


@pytest_asyncio.fixture()
async def redis_client(
    redis_server: fakeredis.FakeServer,
) -> AsyncIterator[fakeredis.FakeAsyncRedis]:
    client = fakeredis.FakeAsyncRedis(server=redis_server, decode_responses=True)
    yield client
    await client.aclose()


@pytest.fixture()
def backend_calls() -> list[httpx.Request]:
    return []


def _backend_handler(calls: list[httpx.Request]):
    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        path = request.url.path
        if path.endswith("/settings/site"):
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "profitMargin": "10",
                        "defaultVatRate": "20",
                        "extraFee": "5",
                        "oneTimeCouponPrice": "9.99",
                        "annualCouponPrice": "49.99",
                        "siteName": "FreeStays",
                    },
                },
            )
        if path.endswith("/Auth/login"):
            body = json.loads(request.content)
            if body.get("password") == VALID_PASSWORD:
                return httpx.Response(
                    200, json={"success": True, "data": {"token": "session-token"}}
                )
            return httpx.Response(401, json={"message": "Invalid credentials"})
        return httpx.Response(200, json={"success": True, "data": {}})

    return handler


@pytest.fixture()
def backend_transport(backend_calls: list[httpx.Request]) -> httpx.MockTransport:
    return httpx.MockTransport(_backend_handler(backend_calls))


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        app_env="test",
        app_name="Hotel Storefront API",
        backend_api_url=BACKEND_URL,
    )


@pytest.fixture()
def app(settings: Settings, backend_transport: httpx.MockTransport) -> FastAPI:
    return create_app(settings, backend_transport=backend_transport)


@pytest_asyncio.fixture()
async def client(app: FastAPI) -> AsyncIterator[AsyncClient]:
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as http_client:
        yield http_client
    await app.state.backend_client.close()
