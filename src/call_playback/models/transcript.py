"""
Transcript data models for call-playback.

A transcript is an ordered, immutable sequence of speaker turns.  Turns
are a tagged union discriminated by ``kind``: ``TimedTurn`` carries a
real absolute timestamp, ``UntimedTurn`` does not.  The order set at
construction is the single source of truth for both display order and
index lookups; nothing downstream reorders, reindexes, or deduplicates.
"""

from __future__ import annotations

import enum
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, ConfigDict, Field


class SpeakerRole(str, enum.Enum):
    """Who spoke a turn."""

    AGENT = "agent"
    COUNTERPARTY = "counterparty"


class TimingMode(str, enum.Enum):
    """How playback position maps onto turns."""

    ABSOLUTE = "absolute"
    PROPORTIONAL = "proportional"


class TranscriptSource(str, enum.Enum):
    """Where the turns came from."""

    CONVERSATION_HISTORY = "conversation_history"
    STRUCTURED = "structured"
    PLAIN_TEXT = "plain_text"
    NONE = "none"


class TimedTurn(BaseModel):
    """A turn with a trustworthy absolute timestamp."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["timed"] = "timed"
    role: SpeakerRole
    text: str
    timestamp: datetime


class UntimedTurn(BaseModel):
    """A turn without a timestamp (synthesized or partially-timed source)."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["untimed"] = "untimed"
    role: SpeakerRole
    text: str


TranscriptTurn = Annotated[Union[TimedTurn, UntimedTurn], Field(discriminator="kind")]


class Transcript(BaseModel):
    """The turn sequence for one call plus how to synchronise against it.

    Attributes:
        call_id: Owning call identifier.
        turns: Ordered turns, fixed at construction.
        timing: ``absolute`` when every turn is timed and the call start
            is known, otherwise ``proportional``.
        source: Which input produced the turns.
        call_started_at: Absolute call start used by absolute timing.
        degraded: Structured input was present but malformed and was
            discarded in favour of a weaker source.
    """

    model_config = ConfigDict(frozen=True)

    call_id: str
    turns: tuple[TranscriptTurn, ...] = ()
    timing: TimingMode = TimingMode.PROPORTIONAL
    source: TranscriptSource = TranscriptSource.NONE
    call_started_at: datetime | None = None
    degraded: bool = False

    @property
    def is_empty(self) -> bool:
        return not self.turns

    def __len__(self) -> int:
        return len(self.turns)
