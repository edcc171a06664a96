"""
Client-side Skyler conversation session.

The session keeps an append-only event log. The transcript sent to the
server, the committed assistant replies and the in-progress text are all
derived from that log, so replaying a saved log reproduces the conversation.
"""

import json
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import httpx

from utils.api_client import ApiError, WillTankClient, raise_for_api_error

logger = logging.getLogger(__name__)

CHAT_STREAM_PATH = "/api/skyler/chat-stream"
CHAT_PATH = "/api/skyler/chat"


class ConversationState(str, Enum):
    IDLE = "idle"
    AWAITING_RESPONSE = "awaiting_response"
    ERROR = "error"


class EventKind(str, Enum):
    SYSTEM_PROMPT = "system_prompt"
    USER_MESSAGE = "user_message"
    STREAM_STARTED = "stream_started"
    CHUNK = "chunk"
    ASSISTANT_MESSAGE = "assistant_message"
    STREAM_FAILED = "stream_failed"


@dataclass(frozen=True)
class ConversationEvent:
    kind: EventKind
    content: str = ""
    timestamp: float = field(default_factory=time.time)


class SkylerStreamError(ApiError):
    """The server reported a failure inside the event stream."""


class SkylerConversation:
    """
    One chat session with Skyler.

    State moves idle -> awaiting_response -> idle, or to error when the
    request fails. A failed send never commits an assistant message.
    """

    def __init__(
        self,
        client: WillTankClient,
        template_id: Optional[str] = None,
        system_prompt: Optional[str] = None,
        events: Optional[List[ConversationEvent]] = None,
    ):
        self.client = client
        self.template_id = template_id
        self._events: List[ConversationEvent] = []
        self.state = ConversationState.IDLE
        self.streaming_message = ""
        self.error: Optional[str] = None

        if events:
            for event in events:
                self._apply(event)
        elif system_prompt:
            self._append(EventKind.SYSTEM_PROMPT, system_prompt)

    # ------------------------------------------------------------------
    # Event log
    # ------------------------------------------------------------------

    @property
    def events(self) -> tuple:
        return tuple(self._events)

    def _append(self, kind: EventKind, content: str = "") -> None:
        self._apply(ConversationEvent(kind, content))

    def _apply(self, event: ConversationEvent) -> None:
        self._events.append(event)
        if event.kind == EventKind.STREAM_STARTED:
            self.state = ConversationState.AWAITING_RESPONSE
            self.streaming_message = ""
            self.error = None
        elif event.kind == EventKind.CHUNK:
            self.streaming_message += event.content
        elif event.kind == EventKind.ASSISTANT_MESSAGE:
            self.state = ConversationState.IDLE
            self.streaming_message = ""
        elif event.kind == EventKind.STREAM_FAILED:
            self.state = ConversationState.ERROR
            self.streaming_message = ""
            self.error = event.content

    @classmethod
    def replay(cls, client: WillTankClient, events: List[ConversationEvent], template_id: Optional[str] = None) -> "SkylerConversation":
        return cls(client, template_id=template_id, events=events)

    @property
    def messages(self) -> List[dict]:
        """The transcript in send order, as the chat endpoints expect it."""
        roles = {
            EventKind.SYSTEM_PROMPT: "system",
            EventKind.USER_MESSAGE: "user",
            EventKind.ASSISTANT_MESSAGE: "assistant",
        }
        return [
            {"role": roles[event.kind], "content": event.content}
            for event in self._events
            if event.kind in roles
        ]

    # ------------------------------------------------------------------
    # Sending
    # ------------------------------------------------------------------

    def _payload(self) -> dict:
        payload = {"messages": self.messages}
        if self.template_id:
            payload["templateId"] = self.template_id
        return payload

    def _handle_line(self, line: str) -> bool:
        """
        Process one line of the event stream.

        Returns:
            True once the [DONE] sentinel is seen
        """
        line = line.strip()
        if not line.startswith("data:"):
            return False
        data = line[len("data:"):].strip()
        if data == "[DONE]":
            return True
        try:
            payload = json.loads(data)
        except json.JSONDecodeError:
            logger.warning(f"Skipping malformed Skyler chunk: {data[:80]!r}")
            return False
        if not isinstance(payload, dict):
            logger.warning(f"Skipping unexpected Skyler chunk: {data[:80]!r}")
            return False
        if payload.get("error"):
            raise SkylerStreamError(str(payload["error"]))
        content = payload.get("content")
        if content:
            self._append(EventKind.CHUNK, content)
        return False

    def _fail(self, error: Exception) -> None:
        message = error.message if isinstance(error, ApiError) else f"Network error: {error}"
        self._append(EventKind.STREAM_FAILED, message)

    async def send_streaming_message(self, content: str) -> str:
        """
        Send a user turn and stream Skyler's reply.

        Returns:
            The committed assistant message

        Raises:
            AuthenticationRequiredError: On HTTP 401
            ApiError: On any other failure; no assistant message is committed
        """
        if self.state == ConversationState.AWAITING_RESPONSE:
            raise RuntimeError("A response is already being streamed")

        self._append(EventKind.USER_MESSAGE, content)
        self._append(EventKind.STREAM_STARTED)

        try:
            async with self.client.stream("POST", CHAT_STREAM_PATH, json=self._payload()) as response:
                await raise_for_api_error(response)
                async for line in response.aiter_lines():
                    if self._handle_line(line):
                        break
        except ApiError as e:
            self._fail(e)
            raise
        except httpx.HTTPError as e:
            self._fail(e)
            raise ApiError(f"Network error: {e}") from e

        reply = self.streaming_message
        self._append(EventKind.ASSISTANT_MESSAGE, reply)
        return reply

    async def send_message(self, content: str) -> str:
        """Non-streaming fallback through the plain chat endpoint."""
        self._append(EventKind.USER_MESSAGE, content)
        self._append(EventKind.STREAM_STARTED)
        try:
            data = await self.client.send_json("POST", CHAT_PATH, self._payload())
        except ApiError as e:
            self._fail(e)
            raise
        reply = (data or {}).get("message", "")
        self._append(EventKind.ASSISTANT_MESSAGE, reply)
        return reply
