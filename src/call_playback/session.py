"""
Call playback session for call-playback.

One ``CallPlaybackSession`` backs one open call view.  It loads the
call and its transcript, owns the playback clock and the media slots,
keeps the active turn and the reveal window in step with playback, and
tears everything down explicitly on ``close()``.

Data flows one way: the transcript builder feeds the synchronizer and
the revealer; the clock's position updates feed the synchronizer; the
fetcher feeds the clock a handle.  Exports go through their own slot.

Re-opening the session with another call supersedes the previous one:
results of lookups that were still in flight for the old call are
discarded and its playback handle is released.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Callable
from pathlib import Path
from types import TracebackType
from typing import Any

import structlog

from call_playback.client import CallApiClient, CredentialProvider
from call_playback.clock import MediaPlayer, PlaybackClock, PlaybackEvent, PlaybackEventKind
from call_playback.config import Settings, get_settings
from call_playback.errors import (
    CallPlaybackError,
    FailureKind,
    FetchFailed,
    FetchFailure,
    ResourceUnavailable,
)
from call_playback.export import ExportManager, ExportResult
from call_playback.fetcher import MediaFetcher
from call_playback.models.call import CallRecord, RecordingRef
from call_playback.models.media import MediaPurpose
from call_playback.models.playback import PlaybackState
from call_playback.models.transcript import Transcript, TranscriptTurn
from call_playback.revealer import WindowedRevealer
from call_playback.synchronizer import Synchronizer
from call_playback.transcript_builder import build_transcript
from call_playback.utils import default_export_name

logger = structlog.get_logger()

EMPTY_TRANSCRIPT_MESSAGE = "No transcript available"


class RecordingStatus(str, enum.Enum):
    """Availability of the recording for playback controls."""

    UNAVAILABLE = "unavailable"
    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


class CallPlaybackSession:
    """Playback and transcript synchronization for one call view.

    Args:
        client: Call-records API client (also the recording source).
        player: Media playback primitive supplied by the UI.
        credential_provider: Returns the caller's bearer credential.
        settings: Explicit settings (defaults to ``get_settings()``).
        on_scroll_to: Called with the active turn index whenever it
            changes to a turn, after the reveal window has been expanded
            to include it.
        spool_dir: Override for the media spool directory.
        download_dir: Override for the export directory.
    """

    def __init__(
        self,
        client: CallApiClient,
        player: MediaPlayer,
        *,
        credential_provider: CredentialProvider,
        settings: Settings | None = None,
        on_scroll_to: Callable[[int], None] | None = None,
        spool_dir: str | Path | None = None,
        download_dir: str | Path | None = None,
    ) -> None:
        self._settings = settings or get_settings()
        self._client = client
        self._credentials = credential_provider
        self.on_scroll_to = on_scroll_to

        self._fetcher = MediaFetcher(client, spool_dir=spool_dir or self._settings.spool_dir or None)
        self._exporter = ExportManager(
            self._fetcher,
            download_dir=download_dir or self._settings.download_dir,
        )
        self._clock = PlaybackClock(player)
        self._unsubscribe = self._clock.subscribe(self._on_playback_event)
        self._revealer = WindowedRevealer(
            page_size=self._settings.page_size,
            near_bottom_threshold=self._settings.near_bottom_threshold_px,
        )

        self._call: CallRecord | None = None
        self._transcript: Transcript | None = None
        self._synchronizer: Synchronizer | None = None
        self._recording_ref: RecordingRef | None = None
        self._recording_status = RecordingStatus.UNAVAILABLE
        self._last_failure: FetchFailure | None = None
        self._acquiring: asyncio.Task[FetchFailure | None] | None = None
        self._generation = 0
        self._closed = False

    # ── context manager ──

    async def __aenter__(self) -> CallPlaybackSession:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()

    # ── read-only views ──

    @property
    def call(self) -> CallRecord | None:
        return self._call

    @property
    def transcript(self) -> Transcript | None:
        return self._transcript

    @property
    def state(self) -> PlaybackState:
        return self._clock.state

    @property
    def active_index(self) -> int | None:
        if self._synchronizer is None:
            return None
        return self._synchronizer.active_index

    @property
    def revealed_turns(self) -> tuple[TranscriptTurn, ...]:
        if self._transcript is None:
            return ()
        return self._revealer.visible(self._transcript.turns)

    @property
    def reveal_window(self) -> int:
        return self._revealer.window

    @property
    def has_more_turns(self) -> bool:
        return self._revealer.has_more

    @property
    def recording_status(self) -> RecordingStatus:
        return self._recording_status

    @property
    def controls_enabled(self) -> bool:
        return self._recording_status in (RecordingStatus.PENDING, RecordingStatus.READY)

    @property
    def last_failure(self) -> FetchFailure | None:
        return self._last_failure

    @property
    def empty_message(self) -> str | None:
        """Message for the transcript pane when there is nothing to show."""
        if self._transcript is None or self._transcript.is_empty:
            return EMPTY_TRANSCRIPT_MESSAGE
        return None

    @property
    def fetcher(self) -> MediaFetcher:
        return self._fetcher

    @property
    def closed(self) -> bool:
        return self._closed

    # ── loading ──

    def _is_current(self, generation: int) -> bool:
        return not self._closed and generation == self._generation

    def _reset_media(self) -> None:
        self._clock.detach()
        self._fetcher.invalidate(MediaPurpose.PLAYBACK)
        self._acquiring = None

    async def open(self, call_id: str) -> Transcript | None:
        """Load *call_id* into the session.

        Returns:
            The built transcript, or ``None`` when this open was
            superseded by a newer ``open`` or by ``close`` before it
            finished.

        Raises:
            ResourceUnavailable: The call does not exist.
            Unauthorized: The credential was rejected.
            FetchFailed: The call lookup failed.
        """
        if self._closed:
            raise RuntimeError("session is closed")
        self._generation += 1
        generation = self._generation
        self._reset_media()
        self._recording_ref = None
        self._recording_status = RecordingStatus.UNAVAILABLE
        log = logger.bind(call_id=call_id)

        try:
            loaded = await self._load(call_id, generation, log)
        except CallPlaybackError as exc:
            if self._is_current(generation):
                self._clear_view()
                log.warning("call_open_failed", error=str(exc))
            raise
        if loaded is None:
            return None
        call, history, ref = loaded

        transcript = build_transcript(call, history)
        self._call = call
        self._transcript = transcript
        self._synchronizer = Synchronizer(transcript)
        self._revealer.load(call.call_id, len(transcript.turns))
        self._recording_ref = ref
        self._recording_status = RecordingStatus.PENDING if ref else RecordingStatus.UNAVAILABLE
        self._last_failure = None
        log.info(
            "call_opened",
            turns=len(transcript.turns),
            timing=transcript.timing.value,
            recording=self._recording_status.value,
        )

        if ref is not None and self._settings.preload_recording:
            await self._ensure_media()
        return transcript

    async def _load(
        self, call_id: str, generation: int, log: Any
    ) -> tuple[CallRecord, list[Any] | None, RecordingRef | None] | None:
        call = await self._client.get_call_by_id(call_id)
        if not self._is_current(generation):
            log.debug("call_open_superseded", stage="call")
            return None

        history: list[Any] | None
        try:
            history = await self._client.get_conversation_history(call_id)
        except (ResourceUnavailable, FetchFailed) as exc:
            log.info("conversation_history_unavailable", error=str(exc))
            history = None
        if not self._is_current(generation):
            log.debug("call_open_superseded", stage="history")
            return None

        ref = await self._resolve_recording(call, log)
        if not self._is_current(generation):
            log.debug("call_open_superseded", stage="recording")
            return None
        return call, history, ref

    def _clear_view(self) -> None:
        """Forget the previous call so a failed open never shows stale turns."""
        self._call = None
        self._transcript = None
        self._synchronizer = None
        self._revealer.reset()
        self._last_failure = None

    async def _resolve_recording(self, call: CallRecord, log: Any) -> RecordingRef | None:
        if not call.recording_url:
            return None
        try:
            return await self._client.get_call_recording(call.call_id)
        except (ResourceUnavailable, FetchFailed) as exc:
            log.info("recording_lookup_fallback", error=str(exc))
            return self._client.recording_stream_ref(call.call_id)

    # ── media ──

    async def _acquire_playback(self, ref: RecordingRef, generation: int) -> FetchFailure | None:
        if not self._is_current(generation):
            return FetchFailure(FailureKind.SUPERSEDED, "call view was replaced")
        result = await self._fetcher.acquire(ref, MediaPurpose.PLAYBACK, self._credentials())
        if isinstance(result, FetchFailure):
            if result.kind != FailureKind.SUPERSEDED and self._is_current(generation):
                self._recording_status = RecordingStatus.FAILED
                self._last_failure = result
            return result
        self._clock.attach(result)
        self._recording_status = RecordingStatus.READY
        self._last_failure = None
        return None

    async def _ensure_media(self) -> FetchFailure | None:
        if self._clock.has_media:
            return None
        if self._recording_ref is None:
            return FetchFailure(FailureKind.NOT_FOUND, "call has no recording")
        if self._acquiring is None or self._acquiring.done():
            self._acquiring = asyncio.ensure_future(
                self._acquire_playback(self._recording_ref, self._generation)
            )
        return await self._acquiring

    # ── controls ──

    async def play(self) -> FetchFailure | None:
        """Start playback, fetching the recording on first use.

        Returns:
            ``None`` when playing, otherwise the typed failure that kept
            playback from starting.
        """
        if self._closed:
            return FetchFailure(FailureKind.SUPERSEDED, "session is closed")
        failure = await self._ensure_media()
        if failure is not None:
            return failure
        self._clock.play()
        return None

    def pause(self) -> bool:
        return self._clock.pause()

    async def toggle(self) -> FetchFailure | None:
        if self._clock.state.playing:
            self._clock.pause()
            return None
        return await self.play()

    def seek(self, position: float) -> float | None:
        return self._clock.seek(position)

    def request_more_turns(self) -> bool:
        return self._revealer.request_more()

    def on_scroll(self, scroll_top: float, viewport_height: float, content_height: float) -> bool:
        return self._revealer.on_scroll(scroll_top, viewport_height, content_height)

    @property
    def clock(self) -> PlaybackClock:
        """The clock, so the media primitive can report ticks/metadata/end."""
        return self._clock

    async def download(self, destination_name: str | None = None) -> ExportResult:
        """Save the recording into the download directory."""
        if self._call is None or self._recording_ref is None:
            return ExportResult(failure=FetchFailure(FailureKind.NOT_FOUND, "call has no recording"))
        name = destination_name or default_export_name(self._call.call_id, self._settings.export_extension)
        return await self._exporter.download(self._recording_ref, name, self._credentials())

    # ── synchronization ──

    def _on_playback_event(self, event: PlaybackEvent) -> None:
        if self._synchronizer is None:
            return
        if event.kind == PlaybackEventKind.ENDED:
            self._synchronizer.clear()
            return
        if event.kind not in (PlaybackEventKind.POSITION, PlaybackEventKind.DURATION):
            return
        update = self._synchronizer.update(event.state)
        if update.index is None:
            return
        self._revealer.reconcile(update.index)
        if update.changed and self.on_scroll_to is not None:
            self.on_scroll_to(update.index)

    # ── teardown ──

    async def close(self) -> None:
        """Tear the view down: detach media and release every handle.  Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._generation += 1
        self._clock.detach()
        self._unsubscribe()
        self._fetcher.close()
        acquiring, self._acquiring = self._acquiring, None
        if acquiring is not None and not acquiring.done():
            await acquiring
        logger.info(
            "call_session_closed",
            call_id=self._call.call_id if self._call else None,
            acquired=self._fetcher.acquired_count(MediaPurpose.PLAYBACK),
            released=self._fetcher.released_count(MediaPurpose.PLAYBACK),
        )
