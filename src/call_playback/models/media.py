"""
Media handle models for call-playback.

A ``MediaHandle`` is a process-local reference to recording bytes that
were fetched under authorization and spooled to a local file.  Each
purpose (playback, export) has its own slot with at most one live
handle.
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass, field
from pathlib import Path


class MediaPurpose(str, enum.Enum):
    """Which slot a handle belongs to."""

    PLAYBACK = "playback"
    EXPORT = "export"


@dataclass(frozen=True, slots=True)
class RecordingPayload:
    """Bytes of a fetched recording plus its declared content type."""

    content: bytes
    content_type: str = "application/octet-stream"


@dataclass(slots=True)
class MediaHandle:
    """A locally dereferenceable reference to fetched recording bytes.

    Attributes:
        purpose: Slot that owns this handle.
        path: Spool file holding the bytes.
        size_bytes: Number of bytes written.
        content_type: Content type reported by the server.
        source_ref: URL the bytes were fetched from.
        handle_id: Unique identifier.
        revoked: Set once the handle has been released.
    """

    purpose: MediaPurpose
    path: Path
    size_bytes: int
    content_type: str
    source_ref: str
    handle_id: uuid.UUID = field(default_factory=uuid.uuid4)
    revoked: bool = False

    @property
    def uri(self) -> str:
        """``file://`` URI a media player can load."""
        return self.path.resolve().as_uri()
