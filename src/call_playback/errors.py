"""
Error taxonomy for call-playback.

Collaborator calls raise these exceptions. Operations that must hand a
typed result back to the view (media acquisition, export) convert them
into :class:`FetchFailure` values instead of raising.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass


class CallPlaybackError(Exception):
    """Base class for every error raised by the engine."""


class ResourceUnavailable(CallPlaybackError):
    """The call, recording, or transcript does not exist (or is hidden)."""


class FetchFailed(CallPlaybackError):
    """Network or server failure while talking to a collaborator."""


class Unauthorized(CallPlaybackError):
    """The credential was missing or rejected. Propagated unchanged."""


class MalformedTranscript(CallPlaybackError):
    """Structured transcript turns are present but cannot be parsed."""


class FailureKind(str, enum.Enum):
    """Why a media acquisition produced no handle."""

    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    NETWORK_ERROR = "network_error"
    SUPERSEDED = "superseded"
    WRITE_ERROR = "write_error"


@dataclass(frozen=True, slots=True)
class FetchFailure:
    """Typed failure returned from media acquisition.

    Attributes:
        kind: Failure category.
        message: Human-readable detail for logs and error banners.
    """

    kind: FailureKind
    message: str = ""

    @classmethod
    def from_error(cls, exc: CallPlaybackError) -> FetchFailure:
        """Map a collaborator exception onto a failure kind."""
        if isinstance(exc, Unauthorized):
            kind = FailureKind.UNAUTHORIZED
        elif isinstance(exc, ResourceUnavailable):
            kind = FailureKind.NOT_FOUND
        else:
            kind = FailureKind.NETWORK_ERROR
        return cls(kind=kind, message=str(exc))
