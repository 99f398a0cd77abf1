"""
Playback-to-transcript synchronizer for call-playback.

Maps the current playback position onto the single active turn index.

Mapping strategy:
  1. Absolute (timestamps trustworthy): ``now = call_started_at +
     position``; the active turn is the last turn whose timestamp is at
     or before ``now``.  Before the first turn there is no active turn.
  2. Proportional fallback: turns are assumed evenly spaced over the
     media duration, ``floor(position / duration * N)`` clamped to
     ``[0, N - 1]``.  Unknown duration means no active turn.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import timedelta

import structlog

from call_playback.models.playback import PlaybackState
from call_playback.models.transcript import TimedTurn, TimingMode, Transcript

logger = structlog.get_logger()


def _absolute_index(position: float, transcript: Transcript) -> int | None:
    started_at = transcript.call_started_at
    if started_at is None or not transcript.turns:
        return None
    now = started_at + timedelta(seconds=position)
    first = transcript.turns[0]
    if not isinstance(first, TimedTurn) or now < first.timestamp:
        return None
    active: int | None = None
    for index, turn in enumerate(transcript.turns):
        if isinstance(turn, TimedTurn) and turn.timestamp <= now:
            active = index
    return active


def _proportional_index(position: float, duration: float, count: int) -> int | None:
    if count == 0 or not math.isfinite(duration) or duration <= 0:
        return None
    index = math.floor((position / duration) * count)
    return max(0, min(index, count - 1))


def active_turn_index(position: float, duration: float, transcript: Transcript) -> int | None:
    """Return the active turn index for a playback position, or ``None``.

    Pure: depends only on its arguments.
    """
    if transcript.timing == TimingMode.ABSOLUTE:
        return _absolute_index(position, transcript)
    return _proportional_index(position, duration, len(transcript.turns))


@dataclass(frozen=True, slots=True)
class SyncUpdate:
    """Result of one recomputation.

    Attributes:
        index: Active turn index, or ``None`` for no highlight.
        changed: The index differs from the previous one (scroll trigger).
    """

    index: int | None
    changed: bool


class Synchronizer:
    """Track the active turn across playback updates.

    The only memory kept is the previous index, used to decide whether
    the view should auto-scroll.
    """

    def __init__(self, transcript: Transcript) -> None:
        self._transcript = transcript
        self._active: int | None = None

    @property
    def active_index(self) -> int | None:
        return self._active

    @property
    def transcript(self) -> Transcript:
        return self._transcript

    def update(self, state: PlaybackState) -> SyncUpdate:
        """Recompute the active index for *state*."""
        index = active_turn_index(state.position, state.duration, self._transcript)
        changed = index != self._active
        self._active = index
        if changed:
            logger.debug("active_turn_changed", call_id=self._transcript.call_id, index=index)
        return SyncUpdate(index=index, changed=changed)

    def clear(self) -> SyncUpdate:
        """Drop the highlight (e.g. when playback ends)."""
        changed = self._active is not None
        self._active = None
        return SyncUpdate(index=None, changed=changed)
