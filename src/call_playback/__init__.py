"""
Call Playback & Transcript Synchronization Engine.

Plays back a recorded call fetched under authorization, keeps the
active transcript turn in step with playback, and reveals long
transcripts page by page.  One ``CallPlaybackSession`` backs one open
call view.
"""

from call_playback.client import CallApiClient
from call_playback.clock import MediaPlayer, PlaybackClock
from call_playback.errors import (
    CallPlaybackError,
    FailureKind,
    FetchFailed,
    FetchFailure,
    MalformedTranscript,
    ResourceUnavailable,
    Unauthorized,
)
from call_playback.session import CallPlaybackSession, RecordingStatus

__all__ = [
    "CallApiClient",
    "CallPlaybackError",
    "CallPlaybackSession",
    "FailureKind",
    "FetchFailed",
    "FetchFailure",
    "MalformedTranscript",
    "MediaPlayer",
    "PlaybackClock",
    "RecordingStatus",
    "ResourceUnavailable",
    "Unauthorized",
]
