"""
Tests for the WillTank HTTP client: error normalization and retries
"""
import httpx
import pytest

from utils.api_client import (
    WillTankClient,
    ApiError,
    AuthenticationRequiredError,
    PermissionDeniedError,
    AUTH_REQUIRED_MESSAGE,
    PERMISSION_DENIED_MESSAGE,
)
from main import app
from tests.conftest import auth_headers


def counting_client(responses):
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        response = responses[min(len(calls), len(responses)) - 1]
        if isinstance(response, Exception):
            raise response
        return response

    return WillTankClient("http://test", token="abc", transport=httpx.MockTransport(handler)), calls


@pytest.mark.asyncio
async def test_reads_are_retried_twice():
    client, calls = counting_client([
        httpx.Response(500, json={"detail": "boom"}),
        httpx.Response(502),
        httpx.Response(200, json=[{"id": 1}]),
    ])
    async with client:
        assert await client.list_wills() == [{"id": 1}]
    assert len(calls) == 3
    assert calls[0].headers["authorization"] == "Bearer abc"


@pytest.mark.asyncio
async def test_read_gives_up_with_server_message():
    client, calls = counting_client([httpx.Response(500, json={"message": "Database unavailable"})])
    async with client:
        with pytest.raises(ApiError) as exc_info:
            await client.get_will(1)
    assert len(calls) == 3
    assert exc_info.value.message == "Database unavailable"
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_auth_errors_are_not_retried():
    client, calls = counting_client([httpx.Response(401, json={"detail": "expired"})])
    async with client:
        with pytest.raises(AuthenticationRequiredError) as exc_info:
            await client.list_wills()
    assert len(calls) == 1
    assert exc_info.value.message == AUTH_REQUIRED_MESSAGE

    client, calls = counting_client([httpx.Response(403)])
    async with client:
        with pytest.raises(PermissionDeniedError) as exc_info:
            await client.list_wills()
    assert exc_info.value.message == PERMISSION_DENIED_MESSAGE


@pytest.mark.asyncio
async def test_writes_are_not_retried():
    client, calls = counting_client([httpx.Response(500)])
    async with client:
        with pytest.raises(ApiError) as exc_info:
            await client.create_will(template_id="family")
    assert len(calls) == 1
    assert exc_info.value.message == "500: Internal Server Error"


@pytest.mark.asyncio
async def test_network_errors_are_normalized():
    client, calls = counting_client([httpx.ConnectError("refused")])
    async with client:
        with pytest.raises(ApiError) as exc_info:
            await client.list_wills()
    assert len(calls) == 3
    assert exc_info.value.message.startswith("Network error:")


@pytest.mark.asyncio
async def test_client_against_app(client, create_user):
    """
    The client drives the real API through an ASGI transport.
    """
    user = await create_user()
    token = auth_headers(user)["Authorization"].split(" ", 1)[1]
    transport = httpx.ASGITransport(app=app)

    async with WillTankClient("http://test", token=token, transport=transport) as api:
        will = await api.create_will(template_id="elderly", title="Care Will")
        assert will["currentStep"] == "ai_chat"

        updated = await api.update_will(will["id"], content="My home goes to my nephew.")
        assert updated["content"] == "My home goes to my nephew."

        progress = await api.advance(will["id"])
        assert progress["step"] == "contact_info"

        resumed = await api.resume(will["id"])
        assert resumed["path"] == "/contact-information"

        content, message = await api.download_package(will["id"])
        assert content[:2] == b"PK"
        assert message == "Will package download complete."

        with pytest.raises(ApiError) as exc_info:
            await api.get_will(99999)
        assert exc_info.value.message == "Will not found"
