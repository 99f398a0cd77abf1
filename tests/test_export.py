"""
Tests for the export manager.

Validates saving to the download directory, name sanitising, never
overwriting, failure reporting and the short-lived export handle.
"""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from call_playback.errors import FailureKind, FetchFailed, Unauthorized
from call_playback.export import ExportManager
from call_playback.fetcher import MediaFetcher
from call_playback.models.media import MediaPurpose


@pytest.fixture()
def fetcher(mock_source, tmp_path: Path) -> MediaFetcher:
    return MediaFetcher(mock_source, spool_dir=tmp_path / "spool")


@pytest.fixture()
def downloads(tmp_path: Path) -> Path:
    return tmp_path / "downloads"


@pytest.fixture()
def exporter(fetcher, downloads) -> ExportManager:
    return ExportManager(fetcher, download_dir=downloads)


# ── successful export ──


class TestDownload:
    """Tests for saving recordings."""

    async def test_saves_bytes(self, exporter, recording_ref, payload, downloads) -> None:
        result = await exporter.download(recording_ref, "recording_call-1.mp3", "tok")
        assert result.ok
        assert result.failure is None
        assert result.saved_path == downloads / "recording_call-1.mp3"
        assert result.saved_path.read_bytes() == payload.content

    async def test_export_handle_is_released(self, exporter, fetcher, recording_ref) -> None:
        await exporter.download(recording_ref, "a.mp3", "tok")
        assert fetcher.current(MediaPurpose.EXPORT) is None
        assert fetcher.acquired_count(MediaPurpose.EXPORT) == 1
        assert fetcher.released_count(MediaPurpose.EXPORT) == 1

    async def test_playback_handle_untouched(self, exporter, fetcher, recording_ref) -> None:
        playback = await fetcher.acquire(recording_ref, MediaPurpose.PLAYBACK, "tok")
        await exporter.download(recording_ref, "a.mp3", "tok")
        assert playback.revoked is False
        assert fetcher.current(MediaPurpose.PLAYBACK) is playback

    async def test_never_overwrites(self, exporter, recording_ref, downloads) -> None:
        first = await exporter.download(recording_ref, "a.mp3", "tok")
        second = await exporter.download(recording_ref, "a.mp3", "tok")
        third = await exporter.download(recording_ref, "a.mp3", "tok")
        assert first.saved_path.name == "a.mp3"
        assert second.saved_path.name == "a (1).mp3"
        assert third.saved_path.name == "a (2).mp3"

    @pytest.mark.parametrize(
        ("suggested", "expected"),
        [
            ("../../etc/passwd", "passwd"),
            ("..\\evil.mp3", "evil.mp3"),
            ("", "recording"),
            ("..", "recording"),
        ],
    )
    async def test_name_is_sanitised(self, exporter, recording_ref, downloads, suggested, expected) -> None:
        result = await exporter.download(recording_ref, suggested, "tok")
        assert result.saved_path == downloads / expected


# ── failures ──


class TestDownloadFailures:
    """Tests for reported export failures (never retried)."""

    async def test_fetch_failure_is_reported(self, exporter, mock_source, recording_ref, downloads) -> None:
        mock_source.fetch_recording = AsyncMock(side_effect=FetchFailed("down"))
        result = await exporter.download(recording_ref, "a.mp3", "tok")
        assert not result.ok
        assert result.failure.kind == FailureKind.NETWORK_ERROR
        assert mock_source.fetch_recording.await_count == 1
        assert not downloads.exists()

    async def test_unauthorized_is_reported(self, exporter, mock_source, recording_ref) -> None:
        mock_source.fetch_recording = AsyncMock(side_effect=Unauthorized("401"))
        result = await exporter.download(recording_ref, "a.mp3", "tok")
        assert result.failure.kind == FailureKind.UNAUTHORIZED

    async def test_write_error_releases_handle(self, exporter, fetcher, recording_ref) -> None:
        with patch("call_playback.export.shutil.copyfile", side_effect=OSError("disk full")):
            result = await exporter.download(recording_ref, "a.mp3", "tok")
        assert result.failure.kind == FailureKind.WRITE_ERROR
        assert fetcher.live_count() == 0
        assert fetcher.released_count(MediaPurpose.EXPORT) == 1
