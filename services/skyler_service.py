"""
Skyler Service - OpenAI chat completions behind the will-creation assistant
"""

import json
import logging
from typing import AsyncIterator, List, Optional

import openai
from openai import AsyncOpenAI

from config.settings import settings

logger = logging.getLogger(__name__)

TEMPERATURE = 0.7
MAX_TOKENS = 500
DONE_EVENT = "data: [DONE]\n\n"

SKYLER_SYSTEM_PROMPT = """You are Skyler, WillTank's friendly estate-planning assistant.
Guide the user step by step through writing their will: ask one question at a time,
confirm names and relationships of beneficiaries, executors and guardians, capture
specific bequests and how the remaining estate should be divided, and summarize
what you have recorded before moving on. Use plain language. You do not give
jurisdiction-specific legal advice; suggest consulting a lawyer for complex situations."""

TEMPLATE_HINTS = {
    "family": "The user chose the Family template: focus on spouse, children and guardianship.",
    "business-owner": "The user chose the Business Owner template: cover business succession and ownership shares.",
    "single": "The user chose the Single Person template: focus on chosen beneficiaries and charities.",
    "elderly": "The user chose the Elderly template: cover care wishes, property and memorable gifts.",
}

CONTACT_EXTRACTION_PROMPT = """You extract contact information from conversations about wills and estate planning.
Identify every person the user names as a beneficiary, executor, witness or recipient of assets
(never the will creator). Respond with JSON of the form
{"contacts": [{"name": "...", "relationship": "...", "role": "beneficiary|executor|witness|other",
"email": "...", "phone": "...", "address": "...", "notes": "..."}]}
omitting unknown fields. Return {"contacts": []} if nobody qualifies."""

DOCUMENT_SUGGESTION_PROMPT = """You analyze will content and recommend supporting documents that should be
stored with the will (property deeds, vehicle titles, account statements, business ownership papers,
insurance policies, certificates, medical directives, powers of attorney). Only suggest documents tied to
assets or arrangements the will mentions. Respond with JSON of the form
{"suggestions": [{"documentType": "...", "description": "...", "importance": "high|medium|low", "reason": "..."}]}"""

IMPORTANCE_ORDER = {"high": 0, "medium": 1, "low": 2}
VALID_ROLES = {"beneficiary", "executor", "witness", "other"}
# Below this length a will has nothing to base suggestions on
MIN_SUGGESTION_CONTENT = 100


class SkylerUnavailableError(Exception):
    """Raised when the OpenAI API key is not configured."""


class SkylerRequestError(Exception):
    """Raised when the completion request fails."""


def format_sse(payload: dict) -> str:
    return f"data: {json.dumps(payload)}\n\n"


class SkylerService:
    """Service class wrapping the chat-completion provider."""

    def __init__(self, client: Optional[AsyncOpenAI] = None):
        self.api_key = settings.openai_api_key
        self.model = settings.openai_model
        self._client = client

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            if not self.api_key:
                raise SkylerUnavailableError("Skyler is unavailable: OPENAI_API_KEY is not set.")
            self._client = AsyncOpenAI(api_key=self.api_key)
        return self._client

    def build_messages(self, messages: List[dict], template_id: Optional[str] = None) -> List[dict]:
        """Prepend the Skyler persona unless the transcript already carries a system message."""
        transcript = [{"role": m["role"], "content": m["content"]} for m in messages]
        if transcript and transcript[0]["role"] == "system":
            return transcript
        system_prompt = SKYLER_SYSTEM_PROMPT
        hint = TEMPLATE_HINTS.get((template_id or "").lower())
        if hint:
            system_prompt = f"{system_prompt}\n\n{hint}"
        return [{"role": "system", "content": system_prompt}] + transcript

    async def complete(self, messages: List[dict], template_id: Optional[str] = None) -> str:
        """
        Non-streaming completion.

        Raises:
            SkylerUnavailableError: If no API key is configured
            SkylerRequestError: If the provider call fails
        """
        client = self.client
        try:
            response = await client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(messages, template_id),
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
            )
        except openai.OpenAIError as e:
            logger.error(f"Skyler completion failed: {e}", exc_info=True)
            raise SkylerRequestError("Failed to get a response from Skyler") from e
        return response.choices[0].message.content or ""

    async def stream_events(self, messages: List[dict], template_id: Optional[str] = None) -> AsyncIterator[str]:
        """
        Yield server-sent events for a streamed completion.

        Each fragment becomes `data: {"content": ...}`; the stream always ends
        with `data: [DONE]`. Provider failures are reported as an `error`
        event before the terminator.
        """
        client = self.client
        try:
            stream = await client.chat.completions.create(
                model=self.model,
                messages=self.build_messages(messages, template_id),
                temperature=TEMPERATURE,
                max_tokens=MAX_TOKENS,
                stream=True,
            )
            async for chunk in stream:
                if not chunk.choices:
                    continue
                fragment = chunk.choices[0].delta.content
                if fragment:
                    yield format_sse({"content": fragment})
        except openai.OpenAIError as e:
            logger.error(f"Skyler stream failed: {e}", exc_info=True)
            yield format_sse({"error": "Skyler could not finish the response. Please try again."})
        yield DONE_EVENT

    async def _json_completion(self, messages: List[dict], temperature: float) -> dict:
        response = await self.client.chat.completions.create(
            model=self.model,
            messages=messages,
            response_format={"type": "json_object"},
            temperature=temperature,
        )
        return json.loads(response.choices[0].message.content or "{}")

    async def extract_contacts(self, messages: List[dict]) -> List[dict]:
        """
        Ask the model for the people named in a Skyler conversation.

        Returns:
            Contact dicts with at least `name` and a valid `role`; an empty
            list when the provider fails or answers with invalid JSON
        """
        conversation = [
            {"role": m["role"], "content": m["content"]}
            for m in messages if m["role"] in ("user", "assistant")
        ]
        prompt = [{"role": "system", "content": CONTACT_EXTRACTION_PROMPT}] + conversation + [{
            "role": "user",
            "content": "Based on our conversation about my will, list every beneficiary, executor and witness I mentioned as JSON.",
        }]
        try:
            data = await self._json_completion(prompt, temperature=0.2)
        except (openai.OpenAIError, json.JSONDecodeError) as e:
            logger.error(f"Contact extraction failed: {e}", exc_info=True)
            return []

        contacts = []
        for raw in data.get("contacts") or []:
            if not isinstance(raw, dict) or not raw.get("name"):
                continue
            role = raw.get("role") if raw.get("role") in VALID_ROLES else "beneficiary"
            contacts.append({
                "name": raw["name"],
                "relationship": raw.get("relationship") or "",
                "role": role,
                "email": raw.get("email"),
                "phone": raw.get("phone"),
                "address": raw.get("address"),
                "notes": raw.get("notes"),
            })
        return contacts

    async def suggest_documents(self, will_content: str) -> List[dict]:
        """Supporting-document suggestions for a will, most important first, at most five."""
        if not will_content or len(will_content) < MIN_SUGGESTION_CONTENT:
            return []
        prompt = [
            {"role": "system", "content": DOCUMENT_SUGGESTION_PROMPT},
            {"role": "user", "content": f"Please analyze this will content and suggest supporting documents:\n\n{will_content}"},
        ]
        try:
            data = await self._json_completion(prompt, temperature=0.3)
        except (openai.OpenAIError, json.JSONDecodeError) as e:
            logger.error(f"Document suggestion failed: {e}", exc_info=True)
            return []

        suggestions = [
            {
                "document_type": s.get("documentType", ""),
                "description": s.get("description", ""),
                "importance": s.get("importance") if s.get("importance") in IMPORTANCE_ORDER else "medium",
                "reason": s.get("reason", ""),
            }
            for s in data.get("suggestions") or []
            if isinstance(s, dict) and s.get("documentType")
        ]
        suggestions.sort(key=lambda s: IMPORTANCE_ORDER[s["importance"]])
        return suggestions[:5]


def document_upload_prompt(suggestions: List[dict]) -> str:
    """The message Skyler shows when asking the user to upload documents."""
    if not suggestions:
        return (
            "Based on your will, you might want to upload supporting documents like property deeds, "
            "financial statements, or other important papers. These documents will help ensure your "
            "will can be properly executed."
        )
    lines = ["Based on your will, I recommend uploading the following supporting documents:", ""]
    for index, suggestion in enumerate(suggestions, start=1):
        flag = " (Important)" if suggestion["importance"] == "high" else ""
        lines.append(f"{index}. **{suggestion['document_type']}**: {suggestion['description']}{flag}")
    lines.append("")
    lines.append("Would you like to upload any of these documents now?")
    return "\n".join(lines)


def get_skyler_service() -> SkylerService:
    """FastAPI dependency."""
    return SkylerService()
