"""
Data models for call-playback.

Call records, transcript turns, playback state snapshots, and media
handles shared by every engine component.
"""

from call_playback.models.call import CallDirection, CallRecord, RecordingRef
from call_playback.models.media import MediaHandle, MediaPurpose, RecordingPayload
from call_playback.models.playback import PlaybackState
from call_playback.models.transcript import (
    SpeakerRole,
    TimedTurn,
    TimingMode,
    Transcript,
    TranscriptSource,
    TranscriptTurn,
    UntimedTurn,
)

__all__ = [
    "CallDirection",
    "CallRecord",
    "MediaHandle",
    "MediaPurpose",
    "PlaybackState",
    "RecordingPayload",
    "RecordingRef",
    "SpeakerRole",
    "TimedTurn",
    "TimingMode",
    "Transcript",
    "TranscriptSource",
    "TranscriptTurn",
    "UntimedTurn",
]
