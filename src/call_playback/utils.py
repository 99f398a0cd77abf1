"""
Shared display helpers for call-playback.

Time formatting for the player and call details, participant and
speaker labels derived from the call direction, and the default file
name for exported recordings.
"""

from __future__ import annotations

import math

from call_playback.models.call import CallDirection, CallRecord
from call_playback.models.transcript import SpeakerRole

DEFAULT_AGENT_LABEL = "Voice Agent"
DEFAULT_COUNTERPARTY_LABEL = "User"
UNKNOWN_CALLER_LABEL = "Unknown Caller"


def format_clock(seconds: float) -> str:
    """Player clock format, ``m:ss``."""
    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0
    total = int(seconds)
    return f"{total // 60}:{total % 60:02d}"


def format_compact(seconds: float) -> str:
    """Compact duration, ``42s`` or ``3m 5s``."""
    if not math.isfinite(seconds) or seconds < 0:
        return "0s"
    total = int(seconds)
    mins, secs = divmod(total, 60)
    if mins == 0:
        return f"{secs}s"
    return f"{mins}m {secs}s"


def format_duration(seconds: int) -> str:
    """Call duration for details panes; ``N/A`` when unknown (0)."""
    if seconds <= 0:
        return "N/A"
    return format_clock(seconds)


def participants(call: CallRecord) -> tuple[str, str]:
    """Return ``(caller, receiver)`` display names for *call*."""
    agent = call.voice_agent_name or DEFAULT_AGENT_LABEL
    if call.direction == CallDirection.OUTBOUND:
        return agent, call.contact_name or call.to_number or UNKNOWN_CALLER_LABEL
    return call.contact_name or call.from_number or UNKNOWN_CALLER_LABEL, agent


def speaker_label(call: CallRecord, role: SpeakerRole) -> str:
    if role == SpeakerRole.AGENT:
        return call.voice_agent_name or DEFAULT_AGENT_LABEL
    return call.contact_name or DEFAULT_COUNTERPARTY_LABEL


def default_export_name(call_id: str, extension: str = "mp3") -> str:
    return f"recording_{call_id}.{extension.lstrip('.')}"
