"""
Playback state model for call-playback.

``PlaybackState`` is an immutable snapshot owned by the playback clock.
Everything else reads snapshots; nothing mutates them.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PlaybackState(BaseModel):
    """Position, duration and playing flag of one playback session.

    Attributes:
        position: Current position in seconds.
        duration: Media duration in seconds (0 until metadata loads).
        playing: Whether media is currently playing.
    """

    model_config = ConfigDict(frozen=True)

    position: float = Field(default=0.0, ge=0.0, description="Position in seconds.")
    duration: float = Field(default=0.0, ge=0.0, description="Duration in seconds.")
    playing: bool = Field(default=False, description="Whether media is playing.")

    @model_validator(mode="after")
    def _position_within_duration(self) -> PlaybackState:
        if self.duration > 0 and self.position > self.duration:
            raise ValueError("position must not exceed duration")
        return self

    @property
    def progress(self) -> float:
        """Fraction of the media played, 0.0 when duration is unknown."""
        if self.duration <= 0:
            return 0.0
        return self.position / self.duration
