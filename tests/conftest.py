"""Shared fixtures for call-playback tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from call_playback.clock import MediaPlayer
from call_playback.config import Settings
from call_playback.models.call import CallRecord, RecordingRef
from call_playback.models.media import RecordingPayload

CALL_STARTED_AT = datetime(2024, 5, 1, 12, 0, 0, tzinfo=timezone.utc)
RECORDING_URL = "http://api.test/agent/calls/call-1/recording.mp3"


class FakePlayer(MediaPlayer):
    """In-memory media primitive that records every command it receives."""

    def __init__(self) -> None:
        self.loaded: str | None = None
        self.calls: list[tuple[str, Any]] = []

    def load(self, uri: str) -> None:
        self.loaded = uri
        self.calls.append(("load", uri))

    def unload(self) -> None:
        self.loaded = None
        self.calls.append(("unload", None))

    def play(self) -> None:
        self.calls.append(("play", None))

    def pause(self) -> None:
        self.calls.append(("pause", None))

    def seek(self, position: float) -> None:
        self.calls.append(("seek", position))


def timed_history(offsets: list[float], started_at: datetime = CALL_STARTED_AT) -> list[dict]:
    """Raw conversation-history turns at *offsets* seconds after the start."""
    roles = ("assistant", "user")
    return [
        {
            "role": roles[i % 2],
            "content": f"turn {i}",
            "timestamp": (started_at + timedelta(seconds=offset)).isoformat(),
        }
        for i, offset in enumerate(offsets)
    ]


# ─── Fixtures ────────────────────────────────────────────────────


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    return Settings(
        api_base_url="http://api.test",
        spool_dir=str(tmp_path / "spool"),
        download_dir=str(tmp_path / "downloads"),
    )


@pytest.fixture()
def player() -> FakePlayer:
    return FakePlayer()


@pytest.fixture()
def recording_ref() -> RecordingRef:
    return RecordingRef(url=RECORDING_URL)


@pytest.fixture()
def payload() -> RecordingPayload:
    return RecordingPayload(content=b"ID3-fake-mp3-bytes", content_type="audio/mpeg")


@pytest.fixture()
def mock_source(payload: RecordingPayload) -> MagicMock:
    """Recording source whose ``fetch_recording`` succeeds by default."""
    source = MagicMock()
    source.fetch_recording = AsyncMock(return_value=payload)
    return source


@pytest.fixture()
def outbound_plain_call() -> CallRecord:
    return CallRecord(
        id="call-1",
        direction="outbound",
        status="completed",
        duration_seconds=120,
        started_at=CALL_STARTED_AT,
        transcript="Hello. How are you? Fine thanks.",
        recording_url=RECORDING_URL,
        voice_agent_name="Ava",
        contact_name="Jordan",
    )


@pytest.fixture()
def timed_call() -> CallRecord:
    return CallRecord(
        id="call-2",
        direction="inbound",
        status="completed",
        duration_seconds=30,
        started_at=CALL_STARTED_AT,
        transcript_json=timed_history([0, 5, 12]),
        recording_url=RECORDING_URL,
    )


@pytest.fixture()
def bare_call() -> CallRecord:
    return CallRecord(id="call-3", direction="inbound", status="no-answer")
