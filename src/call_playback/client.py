"""
Call-records API client for call-playback.

Async HTTP access to the collaborators the engine consumes: call
lookup, recording lookup, conversation history, and the authorized
binary recording download.  Uses :mod:`httpx`.  Status codes map onto
the engine's error taxonomy; the client never retries, never clears
credentials, and never redirects anywhere.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any
from urllib.parse import quote, urljoin

import httpx
import structlog

from call_playback.config import Settings, get_settings
from call_playback.errors import FetchFailed, ResourceUnavailable, Unauthorized
from call_playback.models.call import CallRecord, RecordingRef
from call_playback.models.media import RecordingPayload

logger = structlog.get_logger()

CredentialProvider = Callable[[], str | None]


def _segment(call_id: str) -> str:
    """Encode *call_id* as a single path segment."""
    return quote(call_id, safe="")


def _raise_for_status(resp: httpx.Response, what: str) -> None:
    if resp.status_code == 401:
        raise Unauthorized(f"{what}: credential rejected")
    if resp.status_code in (403, 404):
        raise ResourceUnavailable(f"{what}: not found (HTTP {resp.status_code})")
    if resp.is_error:
        raise FetchFailed(f"{what}: HTTP {resp.status_code}")


class CallApiClient:
    """Async client for the call-records API.

    Args:
        base_url: API base URL.  Falls back to ``Settings.api_base_url``.
        credential_provider: Returns the current bearer credential, or
            ``None`` when the user is not signed in.
        timeout: Per-request timeout in seconds.
        settings: Explicit settings (defaults to ``get_settings()``).
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        credential_provider: CredentialProvider,
        timeout: float | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self.base_url = (base_url or self._settings.api_base_url).rstrip("/")
        self.timeout = timeout if timeout is not None else self._settings.request_timeout_s
        self._credential_provider = credential_provider
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Return (and lazily create) the shared ``httpx.AsyncClient``."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    def _auth_headers(self, credential: str | None = None) -> dict[str, str]:
        token = credential if credential is not None else self._credential_provider()
        if not token:
            raise Unauthorized("no credential available")
        return {"Authorization": f"Bearer {token}"}

    def resolve(self, url: str) -> str:
        """Make *url* absolute against the API base URL."""
        if url.startswith(("http://", "https://")):
            return url
        return urljoin(self.base_url + "/", url.lstrip("/"))

    async def _get(self, path: str, what: str, **kwargs: Any) -> httpx.Response:
        client = await self._get_client()
        try:
            resp = await client.get(self.resolve(path), **kwargs)
        except httpx.TransportError as exc:
            logger.warning("collaborator_transport_error", what=what, error=str(exc))
            raise FetchFailed(f"{what}: {exc}") from exc
        _raise_for_status(resp, what)
        return resp

    async def _get_json(self, path: str, what: str) -> Any:
        resp = await self._get(path, what, headers=self._auth_headers())
        if resp.status_code in (204, 205) or not resp.content:
            return {}
        try:
            return resp.json()
        except ValueError as exc:
            raise FetchFailed(f"{what}: response is not JSON") from exc

    # ── collaborators ──

    async def get_call_by_id(self, call_id: str) -> CallRecord:
        """Fetch one call record.

        Raises:
            ResourceUnavailable: Unknown id or not visible to this user.
            Unauthorized: Credential missing or rejected.
            FetchFailed: Transport or server failure, or an invalid body.
        """
        data = await self._get_json(f"/agent/calls/{_segment(call_id)}", "get_call_by_id")
        if isinstance(data, dict) and "id" not in data and "call_id" not in data:
            data = {**data, "id": call_id}
        try:
            return CallRecord.model_validate(data)
        except ValueError as exc:
            raise FetchFailed(f"get_call_by_id: invalid call payload: {exc}") from exc

    async def get_call_recording(self, call_id: str) -> RecordingRef:
        """Look up the recording resource for *call_id*.

        Raises:
            ResourceUnavailable: The call has no recording.
        """
        data = await self._get_json(f"/agent/calls/{_segment(call_id)}/recording", "get_call_recording")
        url = data.get("recording_url") if isinstance(data, dict) else None
        if not url:
            raise ResourceUnavailable(f"get_call_recording: call {call_id} has no recording")
        return RecordingRef(url=self.resolve(url))

    def recording_stream_ref(self, call_id: str) -> RecordingRef:
        """Reference to the proxied recording stream for *call_id*."""
        path = self._settings.recording_stream_path.format(call_id=_segment(call_id))
        return RecordingRef(url=self.resolve(path))

    async def get_conversation_history(self, call_id: str) -> list[Any]:
        """Fetch structured conversation turns for *call_id*.

        Returns the raw turn list (validated later by the transcript
        builder).  An empty list means the history exists but is empty.
        """
        data = await self._get_json(
            f"/agent/calls/{_segment(call_id)}/conversation-history",
            "get_conversation_history",
        )
        if isinstance(data, list):
            return data
        if isinstance(data, dict):
            turns = data.get("history", data.get("turns"))
            if isinstance(turns, list):
                return turns
        raise ResourceUnavailable(f"get_conversation_history: no history for call {call_id}")

    async def fetch_recording(self, ref: RecordingRef, credential: str) -> RecordingPayload:
        """Download the recording bytes with an explicit bearer *credential*.

        Raises:
            Unauthorized: 401 from the server.
            ResourceUnavailable: 403/404 from the server.
            FetchFailed: Any other failure.
        """
        resp = await self._get(ref.url, "fetch_recording", headers=self._auth_headers(credential))
        content_type = resp.headers.get("content-type", "application/octet-stream")
        return RecordingPayload(content=resp.content, content_type=content_type)

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None and not self._client.is_closed:
            await self._client.aclose()
            self._client = None
