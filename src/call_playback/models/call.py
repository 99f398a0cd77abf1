"""
Call record models for call-playback.

Defines the read-only ``CallRecord`` returned by the call-records API
and the ``RecordingRef`` that points at its protected recording.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class CallDirection(str, enum.Enum):
    """Which side placed the call."""

    INBOUND = "inbound"
    OUTBOUND = "outbound"


class CallRecord(BaseModel):
    """A completed call as reported by the call-records API.

    Exactly one of ``transcript`` / ``transcript_json`` is usually set,
    but both or neither are tolerated.  ``transcript_json`` is kept raw
    so the transcript builder can degrade gracefully when it is malformed.

    Attributes:
        call_id: Call identifier (``id`` on the wire).
        direction: Inbound or outbound.
        status: Provider status string (``completed``, ``no-answer``, ...).
        duration_seconds: Whole-second call duration.
        started_at: When the call started (absolute).
        answered_at: When the call was answered.
        ended_at: When the call ended.
        transcript: Plain-text transcript.
        transcript_json: Raw structured transcript turns.
        recording_url: Provider recording reference, if one exists.
        contact_name: Display name of the counterparty.
        voice_agent_name: Display name of the voice agent.
        from_number: Calling number.
        to_number: Called number.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    call_id: str = Field(..., alias="id", min_length=1, description="Call identifier.")
    direction: CallDirection = Field(
        default=CallDirection.OUTBOUND,
        description="Inbound or outbound.",
    )
    status: str = Field(default="unknown", description="Provider call status.")
    duration_seconds: int = Field(default=0, ge=0, description="Call duration in seconds.")
    started_at: datetime | None = Field(default=None, description="Call start time.")
    answered_at: datetime | None = Field(default=None, description="Answer time.")
    ended_at: datetime | None = Field(default=None, description="Hang-up time.")
    transcript: str | None = Field(default=None, description="Plain-text transcript.")
    transcript_json: Any = Field(default=None, description="Raw structured turns.")
    recording_url: str | None = Field(default=None, description="Recording reference.")
    contact_name: str | None = Field(default=None, description="Counterparty name.")
    voice_agent_name: str | None = Field(default=None, description="Voice agent name.")
    from_number: str | None = Field(default=None, description="Calling number.")
    to_number: str | None = Field(default=None, description="Called number.")

    @field_validator("call_id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @field_validator("direction", mode="before")
    @classmethod
    def _default_direction(cls, value: Any) -> Any:
        if value in (None, ""):
            return CallDirection.OUTBOUND
        if isinstance(value, str):
            return value.lower()
        return value

    @field_validator("duration_seconds", mode="before")
    @classmethod
    def _whole_seconds(cls, value: Any) -> Any:
        if value is None:
            return 0
        if isinstance(value, float):
            return int(value)
        return value

    @property
    def has_structured_turns(self) -> bool:
        return self.transcript_json is not None and self.transcript_json != []

    @property
    def has_plain_transcript(self) -> bool:
        return bool(self.transcript and self.transcript.strip())


class RecordingRef(BaseModel):
    """Absolute URL of a protected recording resource."""

    model_config = ConfigDict(frozen=True)

    url: str = Field(..., min_length=1, description="Absolute recording URL.")
