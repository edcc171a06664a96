"""
HTTP client for the WillTank API.

Every non-2xx response is turned into an ApiError carrying a human-readable
message, so callers never inspect status codes or raw bodies themselves.
Reads are retried twice on failure (never for auth errors); writes are not retried.
"""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)

AUTH_REQUIRED_MESSAGE = "Authentication required. Please log in again."
PERMISSION_DENIED_MESSAGE = "You do not have permission to access this resource."
READ_RETRIES = 2


class ApiError(Exception):
    """A failed API call, normalized to a message fit for display."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class AuthenticationRequiredError(ApiError):
    def __init__(self, message: str = AUTH_REQUIRED_MESSAGE):
        super().__init__(message, 401)


class PermissionDeniedError(ApiError):
    def __init__(self, message: str = PERMISSION_DENIED_MESSAGE):
        super().__init__(message, 403)


def _message_from_body(response: httpx.Response) -> Optional[str]:
    try:
        body = response.json()
    except ValueError:
        text = response.text.strip()
        return text or None

    if isinstance(body, dict):
        for key in ("message", "detail", "error"):
            value = body.get(key)
            if isinstance(value, str) and value:
                return value
            if isinstance(value, list) and value:
                # FastAPI validation errors
                return "; ".join(str(item.get("msg", item)) if isinstance(item, dict) else str(item) for item in value)
    return None


async def raise_for_api_error(response: httpx.Response) -> None:
    """
    Raise the normalized error for a non-2xx response.

    Works for streamed responses too: the body is read before inspection.
    """
    if response.is_success:
        return
    if response.status_code == 401:
        raise AuthenticationRequiredError()
    if response.status_code == 403:
        raise PermissionDeniedError()

    await response.aread()
    message = _message_from_body(response) or f"{response.status_code}: {response.reason_phrase}"
    raise ApiError(message, response.status_code)


class WillTankClient:
    """
    Async client for the WillTank REST API.

    Args:
        base_url: API origin, e.g. "https://app.willtank.com"
        token: JWT sent as a Bearer header (the cookie is used by browsers)
        transport: Optional httpx transport, e.g. httpx.MockTransport or ASGITransport
    """

    def __init__(self, base_url: str, token: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None, timeout: float = 30.0):
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self._client = httpx.AsyncClient(base_url=base_url, headers=headers, transport=transport, timeout=timeout)

    async def __aenter__(self) -> "WillTankClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def request(self, method: str, path: str, **kwargs) -> httpx.Response:
        """Send a request and raise ApiError on failure. GET requests are retried."""
        attempts = 1 + (READ_RETRIES if method.upper() == "GET" else 0)
        for attempt in range(1, attempts + 1):
            try:
                response = await self._client.request(method, path, **kwargs)
                await raise_for_api_error(response)
                return response
            except (AuthenticationRequiredError, PermissionDeniedError):
                raise
            except (ApiError, httpx.TransportError) as e:
                if attempt == attempts:
                    if isinstance(e, httpx.TransportError):
                        raise ApiError(f"Network error: {e}") from e
                    raise
                logger.warning(f"{method} {path} failed (attempt {attempt}/{attempts}): {e}")

    def stream(self, method: str, path: str, **kwargs):
        """Open a streamed request; use as `async with client.stream(...) as response`."""
        return self._client.stream(method, path, **kwargs)

    async def get_json(self, path: str, **params) -> Any:
        response = await self.request("GET", path, params=params or None)
        return response.json()

    async def send_json(self, method: str, path: str, payload: Optional[dict] = None) -> Any:
        response = await self.request(method, path, json=payload)
        if not response.content:
            return None
        return response.json()

    # Convenience wrappers for the will flow

    async def list_wills(self) -> list:
        return await self.get_json("/api/wills")

    async def get_will(self, will_id: int) -> dict:
        return await self.get_json(f"/api/wills/{will_id}")

    async def create_will(self, template_id: Optional[str] = None, title: Optional[str] = None) -> dict:
        return await self.send_json("POST", "/api/wills", {"templateId": template_id, "title": title})

    async def update_will(self, will_id: int, **fields) -> dict:
        return await self.send_json("PUT", f"/api/wills/{will_id}", fields)

    async def resume(self, will_id: Optional[int] = None) -> dict:
        if will_id is None:
            return await self.get_json("/api/wills/resume")
        return await self.get_json("/api/wills/resume", willId=will_id)

    async def advance(self, will_id: int) -> dict:
        return await self.send_json("POST", f"/api/wills/{will_id}/progress/advance")

    async def download_package(self, will_id: int) -> tuple[bytes, str]:
        """Returns (archive or text bytes, user-facing download message)."""
        response = await self.request("GET", f"/api/wills/{will_id}/package")
        return response.content, response.headers.get("x-download-message", "")
