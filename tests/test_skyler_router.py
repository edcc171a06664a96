"""
Tests for the Skyler endpoints with the OpenAI client mocked out
"""
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import openai
import pytest

from main import app
from services.skyler_service import SkylerService, get_skyler_service, DONE_EVENT
from tests.conftest import auth_headers


class FakeStream:
    """Async iterator standing in for an OpenAI streaming response."""

    def __init__(self, fragments, error=None):
        self.fragments = list(fragments)
        self.error = error

    def __aiter__(self):
        return self

    async def __anext__(self):
        if self.fragments:
            fragment = self.fragments.pop(0)
            return SimpleNamespace(choices=[SimpleNamespace(delta=SimpleNamespace(content=fragment))])
        if self.error:
            error, self.error = self.error, None
            raise error
        raise StopAsyncIteration


def completion(content: str):
    return SimpleNamespace(choices=[SimpleNamespace(message=SimpleNamespace(content=content))])


@pytest.fixture
def openai_client():
    client = MagicMock()
    client.chat.completions.create = AsyncMock()
    app.dependency_overrides[get_skyler_service] = lambda: SkylerService(client=client)
    yield client
    app.dependency_overrides.pop(get_skyler_service, None)


def parse_sse(text: str) -> list:
    return [line[len("data: "):] for line in text.split("\n\n") if line.startswith("data: ")]


@pytest.mark.asyncio
async def test_chat_stream_emits_content_then_done(client, create_user, openai_client):
    user = await create_user()
    openai_client.chat.completions.create.return_value = FakeStream(["Hel", "lo"])

    response = await client.post("/api/skyler/chat-stream", headers=auth_headers(user), json={
        "messages": [{"role": "user", "content": "Hi"}],
        "templateId": "family",
    })

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    events = parse_sse(response.text)
    assert events[-1] == "[DONE]"
    assert [json.loads(e)["content"] for e in events[:-1]] == ["Hel", "lo"]

    sent = openai_client.chat.completions.create.await_args.kwargs
    assert sent["stream"] is True
    assert sent["messages"][0]["role"] == "system"
    assert "Family template" in sent["messages"][0]["content"]


@pytest.mark.asyncio
async def test_chat_stream_reports_provider_failure(client, create_user, openai_client):
    user = await create_user()
    openai_client.chat.completions.create.return_value = FakeStream(["Par"], error=openai.OpenAIError("down"))

    response = await client.post("/api/skyler/chat-stream", headers=auth_headers(user), json={
        "messages": [{"role": "user", "content": "Hi"}],
    })

    events = parse_sse(response.text)
    assert "error" in json.loads(events[-2])
    assert response.text.endswith(DONE_EVENT)


@pytest.mark.asyncio
async def test_chat_requires_api_key_and_auth(client, create_user):
    user = await create_user()
    payload = {"messages": [{"role": "user", "content": "Hi"}]}

    assert (await client.post("/api/skyler/chat-stream", json=payload)).status_code == 401
    unavailable = await client.post("/api/skyler/chat", headers=auth_headers(user), json=payload)
    assert unavailable.status_code == 503


@pytest.mark.asyncio
async def test_chat_rejects_empty_transcript(client, create_user, openai_client):
    user = await create_user()
    response = await client.post("/api/skyler/chat", headers=auth_headers(user), json={"messages": []})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_extract_contacts_saves_new_people(client, create_user, openai_client):
    user = await create_user()
    headers = auth_headers(user)
    will = (await client.post("/api/wills", headers=headers, json={})).json()
    await client.post(f"/api/wills/{will['id']}/contacts", headers=headers, json={"name": "Ana"})

    openai_client.chat.completions.create.return_value = completion(json.dumps({"contacts": [
        {"name": "ana", "role": "beneficiary"},
        {"name": "Ben Ortiz", "relationship": "brother", "role": "executor"},
        {"relationship": "no name"},
    ]}))

    response = await client.post("/api/skyler/extract-contacts", headers=headers, json={
        "willId": will["id"],
        "messages": [{"role": "user", "content": "My brother Ben Ortiz will be executor."}],
    })

    assert response.status_code == 200
    saved = response.json()
    assert [c["name"] for c in saved] == ["Ben Ortiz"]
    assert saved[0]["role"] == "executor"

    notifications = (await client.get("/api/notifications", headers=headers)).json()
    extracted = next(n for n in notifications if n["message"].startswith("Skyler added 1 contact"))
    assert extracted["relatedEntityType"] == "will"
    assert extracted["relatedEntityId"] == will["id"]


@pytest.mark.asyncio
async def test_document_suggestions_sorted_by_importance(client, create_user, openai_client):
    user = await create_user()
    openai_client.chat.completions.create.return_value = completion(json.dumps({"suggestions": [
        {"documentType": "Vehicle Title", "description": "Car title", "importance": "low"},
        {"documentType": "Property Deed", "description": "House deed", "importance": "high"},
    ]}))

    response = await client.post("/api/skyler/document-suggestions", headers=auth_headers(user), json={
        "content": "I leave my house at 1 Main Street and my car to my daughter. " * 3,
    })

    body = response.json()
    assert [s["documentType"] for s in body["suggestions"]] == ["Property Deed", "Vehicle Title"]
    assert "**Property Deed**" in body["prompt"]
    assert "(Important)" in body["prompt"]
