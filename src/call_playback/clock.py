"""
Playback clock for call-playback.

Wraps a single media playback session.  The clock owns the
``PlaybackState``; the media primitive drives it through
:meth:`PlaybackClock.on_time_update`, :meth:`PlaybackClock.on_metadata`
and :meth:`PlaybackClock.on_ended`, and user intent drives it through
``play``/``pause``/``seek``.  Every state change is published to
subscribers synchronously, in emission order.
"""

from __future__ import annotations

import enum
import math
from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass

import structlog

from call_playback.models.media import MediaHandle
from call_playback.models.playback import PlaybackState

logger = structlog.get_logger()


class MediaPlayer(ABC):
    """The media playback primitive supplied by the surrounding UI.

    Implementations report progress back to the clock that controls
    them; the clock never polls.
    """

    @abstractmethod
    def load(self, uri: str) -> None:
        """Point the player at a local media URI."""
        ...  # pragma: no cover

    @abstractmethod
    def unload(self) -> None:
        """Drop the current media source."""
        ...  # pragma: no cover

    @abstractmethod
    def play(self) -> None:
        ...  # pragma: no cover

    @abstractmethod
    def pause(self) -> None:
        ...  # pragma: no cover

    @abstractmethod
    def seek(self, position: float) -> None:
        """Move the playhead to *position* seconds."""
        ...  # pragma: no cover


class PlaybackEventKind(str, enum.Enum):
    """What changed in a ``PlaybackEvent``."""

    POSITION = "position"
    DURATION = "duration"
    PLAYING = "playing"
    ENDED = "ended"


@dataclass(frozen=True, slots=True)
class PlaybackEvent:
    kind: PlaybackEventKind
    state: PlaybackState


PlaybackListener = Callable[[PlaybackEvent], None]


class PlaybackClock:
    """Own the playback state of one media session.

    Args:
        player: Media primitive the clock controls.
    """

    def __init__(self, player: MediaPlayer) -> None:
        self._player = player
        self._handle: MediaHandle | None = None
        self._state = PlaybackState()
        self._listeners: list[PlaybackListener] = []

    # ── inspection ──

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def handle(self) -> MediaHandle | None:
        return self._handle

    @property
    def has_media(self) -> bool:
        return self._handle is not None

    # ── subscription ──

    def subscribe(self, listener: PlaybackListener) -> Callable[[], None]:
        """Register *listener*; returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _emit(self, kind: PlaybackEventKind) -> None:
        event = PlaybackEvent(kind=kind, state=self._state)
        for listener in list(self._listeners):
            listener(event)

    def _set(self, **changes: float | bool) -> None:
        self._state = self._state.model_copy(update=changes)

    # ── media attachment ──

    def attach(self, handle: MediaHandle) -> None:
        """Load *handle* into the player, resetting the state."""
        if self._handle is not None:
            self.detach()
        self._handle = handle
        self._state = PlaybackState()
        self._player.load(handle.uri)
        logger.debug("playback_media_attached", handle_id=str(handle.handle_id))

    def detach(self) -> None:
        """Unload media from the player.  The handle itself is not released here."""
        if self._handle is None:
            return
        was_playing = self._state.playing
        self._player.unload()
        self._handle = None
        self._state = PlaybackState()
        if was_playing:
            self._emit(PlaybackEventKind.PLAYING)
        logger.debug("playback_media_detached")

    # ── user intent ──

    def play(self) -> bool:
        """Start playback.  Returns ``False`` (no-op) when no media is attached."""
        if self._handle is None:
            return False
        if not self._state.playing:
            self._player.play()
            self._set(playing=True)
            self._emit(PlaybackEventKind.PLAYING)
        return True

    def pause(self) -> bool:
        """Pause playback.  Returns ``False`` (no-op) when no media is attached."""
        if self._handle is None:
            return False
        if self._state.playing:
            self._player.pause()
            self._set(playing=False)
            self._emit(PlaybackEventKind.PLAYING)
        return True

    def toggle(self) -> bool:
        if self._state.playing:
            return self.pause()
        return self.play()

    def seek(self, position: float) -> float | None:
        """Jump to *position*, clamped to ``[0, duration]``.

        Applied immediately; a later seek simply overwrites an earlier one.

        Returns:
            The clamped position, or ``None`` when no media is attached.
        """
        if self._handle is None:
            return None
        target = self._clamp(position)
        self._player.seek(target)
        self._set(position=target)
        self._emit(PlaybackEventKind.POSITION)
        return target

    def _clamp(self, position: float) -> float:
        if not math.isfinite(position) or position < 0:
            return 0.0
        return min(position, self._state.duration)

    # ── media primitive callbacks ──

    def on_time_update(self, position: float) -> None:
        """Natural playback tick reported by the player."""
        if self._handle is None:
            return
        self._set(position=self._clamp(position))
        self._emit(PlaybackEventKind.POSITION)

    def on_metadata(self, duration: float) -> None:
        """Duration became known (or changed)."""
        if self._handle is None:
            return
        value = duration if math.isfinite(duration) and duration > 0 else 0.0
        if value == self._state.duration:
            return
        self._set(duration=value, position=min(self._state.position, value))
        self._emit(PlaybackEventKind.DURATION)

    def on_ended(self) -> None:
        """Media reached its end: rewind to 0 and stop."""
        if self._handle is None:
            return
        self._set(position=0.0, playing=False)
        self._emit(PlaybackEventKind.ENDED)
