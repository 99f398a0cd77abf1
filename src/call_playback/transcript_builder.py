"""
Transcript model builder for call-playback.

Normalises whatever transcript data a call has into an ordered sequence
of speaker turns.

Source precedence:
  1. Conversation history turns (fetched separately), verbatim.
  2. The call's own structured turns (``transcript_json``), verbatim.
  3. The plain-text transcript, segmented into sentences with speaker
     roles assigned by alternation.  Synthesized turns are untimed.
  4. Nothing: an empty transcript (the view shows an empty state).

Structured input that cannot be parsed degrades to the next source.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator, model_validator

from call_playback.errors import MalformedTranscript
from call_playback.models.call import CallDirection, CallRecord
from call_playback.models.transcript import (
    SpeakerRole,
    TimedTurn,
    TimingMode,
    Transcript,
    TranscriptSource,
    TranscriptTurn,
    UntimedTurn,
)

logger = structlog.get_logger()

# Sentence-terminal punctuation followed by whitespace, or a period
# followed by line breaks.
SENTENCE_SPLIT_RE = re.compile(r"[.!?]\s+|\.\n+")
MIN_FRAGMENT_CHARS = 3

_ROLE_ALIASES: dict[str, SpeakerRole] = {
    "agent": SpeakerRole.AGENT,
    "assistant": SpeakerRole.AGENT,
    "bot": SpeakerRole.AGENT,
    "counterparty": SpeakerRole.COUNTERPARTY,
    "user": SpeakerRole.COUNTERPARTY,
    "customer": SpeakerRole.COUNTERPARTY,
    "contact": SpeakerRole.COUNTERPARTY,
}


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC so timed comparisons never mix kinds."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class _RawTurn(BaseModel):
    """Wire shape of one structured turn (``role``/``content``/``timestamp``)."""

    model_config = ConfigDict(extra="ignore")

    role: SpeakerRole
    content: str
    timestamp: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _accept_text_key(cls, data: Any) -> Any:
        if isinstance(data, dict) and "content" not in data and "text" in data:
            data = {**data, "content": data["text"]}
        return data

    @field_validator("role", mode="before")
    @classmethod
    def _normalise_role(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in _ROLE_ALIASES:
            return _ROLE_ALIASES[value.strip().lower()]
        return value

    @field_validator("timestamp", mode="before")
    @classmethod
    def _blank_timestamp(cls, value: Any) -> Any:
        if value == "":
            return None
        return value


# ── plain-text segmentation ──


def segment_plain_text(text: str) -> list[str]:
    """Split *text* into candidate sentences.

    Fragments are trimmed and anything of ``MIN_FRAGMENT_CHARS`` characters
    or fewer is dropped as noise.
    """
    fragments = (part.strip() for part in SENTENCE_SPLIT_RE.split(text))
    return [frag for frag in fragments if len(frag) > MIN_FRAGMENT_CHARS]


def synthesize_turns(text: str, direction: CallDirection) -> tuple[UntimedTurn, ...]:
    """Build untimed turns from plain text by alternating speakers.

    Outbound calls open with the agent; inbound calls open with the
    counterparty.
    """
    role = SpeakerRole.AGENT if direction == CallDirection.OUTBOUND else SpeakerRole.COUNTERPARTY
    turns: list[UntimedTurn] = []
    for sentence in segment_plain_text(text):
        turns.append(UntimedTurn(role=role, text=sentence))
        role = SpeakerRole.COUNTERPARTY if role == SpeakerRole.AGENT else SpeakerRole.AGENT
    return tuple(turns)


# ── structured turns ──


def parse_structured_turns(raw: Any) -> tuple[TranscriptTurn, ...]:
    """Validate raw structured turns, preserving their order.

    Args:
        raw: A list of ``{"role", "content", "timestamp"?}`` mappings.

    Returns:
        ``TimedTurn`` for entries with a timestamp, ``UntimedTurn`` otherwise.

    Raises:
        MalformedTranscript: If *raw* is not a list or any entry is invalid.
    """
    if not isinstance(raw, (list, tuple)):
        raise MalformedTranscript(f"structured turns must be a list, got {type(raw).__name__}")

    turns: list[TranscriptTurn] = []
    for position, entry in enumerate(raw):
        if not isinstance(entry, dict):
            raise MalformedTranscript(f"turn {position} is not an object")
        try:
            parsed = _RawTurn.model_validate(entry)
        except ValidationError as exc:
            raise MalformedTranscript(f"turn {position} is invalid: {exc.error_count()} error(s)") from exc
        if parsed.timestamp is not None:
            turns.append(
                TimedTurn(role=parsed.role, text=parsed.content, timestamp=_as_utc(parsed.timestamp))
            )
        else:
            turns.append(UntimedTurn(role=parsed.role, text=parsed.content))
    return tuple(turns)


def _timing_for(turns: tuple[TranscriptTurn, ...], started_at: datetime | None) -> TimingMode:
    if turns and started_at is not None and all(isinstance(t, TimedTurn) for t in turns):
        return TimingMode.ABSOLUTE
    return TimingMode.PROPORTIONAL


# ── public entry point ──


def build_transcript(call: CallRecord, history: Any = None) -> Transcript:
    """Build the turn sequence for *call*.

    Args:
        call: The call record.
        history: Raw conversation-history turns, or ``None`` when the
            history endpoint had nothing.

    Returns:
        A ``Transcript``; empty (``source=none``) when the call has no
        usable transcript data.
    """
    log = logger.bind(call_id=call.call_id)
    started_at = _as_utc(call.started_at) if call.started_at is not None else None
    degraded = False

    candidates: list[tuple[TranscriptSource, Any]] = []
    if history:
        candidates.append((TranscriptSource.CONVERSATION_HISTORY, history))
    if call.has_structured_turns:
        candidates.append((TranscriptSource.STRUCTURED, call.transcript_json))

    for source, raw in candidates:
        try:
            turns = parse_structured_turns(raw)
        except MalformedTranscript as exc:
            degraded = True
            log.warning("transcript_malformed", source=source.value, error=str(exc))
            continue
        if not turns:
            continue
        timing = _timing_for(turns, started_at)
        log.info("transcript_built", source=source.value, turns=len(turns), timing=timing.value)
        return Transcript(
            call_id=call.call_id,
            turns=turns,
            timing=timing,
            source=source,
            call_started_at=started_at,
            degraded=degraded,
        )

    if call.has_plain_transcript:
        turns = synthesize_turns(call.transcript or "", call.direction)
        if turns:
            log.info(
                "transcript_built",
                source=TranscriptSource.PLAIN_TEXT.value,
                turns=len(turns),
                timing=TimingMode.PROPORTIONAL.value,
            )
            return Transcript(
                call_id=call.call_id,
                turns=turns,
                timing=TimingMode.PROPORTIONAL,
                source=TranscriptSource.PLAIN_TEXT,
                call_started_at=started_at,
                degraded=degraded,
            )

    log.info("transcript_empty", degraded=degraded)
    return Transcript(
        call_id=call.call_id,
        source=TranscriptSource.NONE,
        call_started_at=started_at,
        degraded=degraded,
    )
