"""
Tests for the transcript model builder.

Validates plain-text segmentation, role alternation, structured turn
parsing, source precedence and degradation of malformed input.
"""

from __future__ import annotations

import pytest

from call_playback.errors import MalformedTranscript
from call_playback.models.call import CallDirection, CallRecord
from call_playback.models.transcript import (
    SpeakerRole,
    TimedTurn,
    TimingMode,
    TranscriptSource,
    UntimedTurn,
)
from call_playback.transcript_builder import (
    build_transcript,
    parse_structured_turns,
    segment_plain_text,
    synthesize_turns,
)

from conftest import CALL_STARTED_AT, timed_history


# ── plain-text segmentation ──


class TestSegmentPlainText:
    """Tests for sentence splitting and noise filtering."""

    def test_splits_on_terminal_punctuation(self) -> None:
        assert segment_plain_text("Hello. How are you? Fine thanks.") == [
            "Hello",
            "How are you",
            "Fine thanks.",
        ]

    def test_splits_on_exclamation(self) -> None:
        assert segment_plain_text("Great news! We are done here") == [
            "Great news",
            "We are done here",
        ]

    def test_splits_on_period_followed_by_newlines(self) -> None:
        assert segment_plain_text("First line.\n\nSecond line") == ["First line", "Second line"]

    def test_drops_short_fragments(self) -> None:
        assert segment_plain_text("Ok. Yes. Sure thing") == ["Sure thing"]

    def test_fragment_of_exactly_four_chars_is_kept(self) -> None:
        assert segment_plain_text("Yeah. No. Okay") == ["Yeah", "Okay"]

    def test_trims_whitespace(self) -> None:
        assert segment_plain_text("   Hello there.   General Kenobi  ") == [
            "Hello there",
            "General Kenobi",
        ]

    def test_empty_text_yields_nothing(self) -> None:
        assert segment_plain_text("") == []
        assert segment_plain_text("   ") == []

    def test_decimal_numbers_are_not_split(self) -> None:
        assert segment_plain_text("It costs 3.50 dollars") == ["It costs 3.50 dollars"]


# ── role alternation ──


class TestSynthesizeTurns:
    """Tests for untimed turn synthesis from plain text."""

    def test_outbound_starts_with_agent(self) -> None:
        turns = synthesize_turns("Hello. How are you? Fine thanks.", CallDirection.OUTBOUND)
        assert len(turns) == 3
        assert [t.role for t in turns] == [
            SpeakerRole.AGENT,
            SpeakerRole.COUNTERPARTY,
            SpeakerRole.AGENT,
        ]
        assert all(isinstance(t, UntimedTurn) for t in turns)

    def test_inbound_starts_with_counterparty(self) -> None:
        turns = synthesize_turns("Hello there. Good morning.", CallDirection.INBOUND)
        assert [t.role for t in turns] == [SpeakerRole.COUNTERPARTY, SpeakerRole.AGENT]

    def test_preserves_sentence_order(self) -> None:
        turns = synthesize_turns("First one. Second one. Third one", CallDirection.OUTBOUND)
        assert [t.text for t in turns] == ["First one", "Second one", "Third one"]


# ── structured parsing ──


class TestParseStructuredTurns:
    """Tests for validation of raw structured turns."""

    def test_maps_wire_roles(self) -> None:
        turns = parse_structured_turns(
            [{"role": "assistant", "content": "Hi"}, {"role": "user", "content": "Hello"}]
        )
        assert [t.role for t in turns] == [SpeakerRole.AGENT, SpeakerRole.COUNTERPARTY]

    def test_timestamped_entries_become_timed_turns(self) -> None:
        turns = parse_structured_turns(timed_history([0, 5]))
        assert all(isinstance(t, TimedTurn) for t in turns)
        assert turns[1].timestamp == CALL_STARTED_AT.replace(second=5)

    def test_naive_timestamps_are_treated_as_utc(self) -> None:
        turns = parse_structured_turns(
            [{"role": "agent", "content": "Hi", "timestamp": "2024-05-01T12:00:03"}]
        )
        assert turns[0].timestamp.tzinfo is not None
        assert turns[0].timestamp == CALL_STARTED_AT.replace(second=3)

    def test_missing_timestamp_becomes_untimed(self) -> None:
        turns = parse_structured_turns(
            [{"role": "agent", "content": "Hi", "timestamp": ""}, {"role": "user", "text": "Yo"}]
        )
        assert all(isinstance(t, UntimedTurn) for t in turns)
        assert turns[1].text == "Yo"

    def test_order_is_preserved_even_when_timestamps_are_not_sorted(self) -> None:
        raw = timed_history([10, 2])
        turns = parse_structured_turns(raw)
        assert [t.text for t in turns] == ["turn 0", "turn 1"]

    def test_duplicates_are_kept(self) -> None:
        raw = [{"role": "agent", "content": "Same"}] * 2
        assert len(parse_structured_turns(raw)) == 2

    @pytest.mark.parametrize(
        "raw",
        [
            "not a list",
            {"role": "agent"},
            ["just a string"],
            [{"role": "narrator", "content": "?"}],
            [{"role": "agent"}],
            [{"role": "agent", "content": "Hi", "timestamp": "yesterday-ish"}],
        ],
    )
    def test_malformed_input_raises(self, raw) -> None:
        with pytest.raises(MalformedTranscript):
            parse_structured_turns(raw)


# ── build_transcript ──


class TestBuildTranscript:
    """Tests for source precedence, timing mode and degradation."""

    def test_plain_text_call(self, outbound_plain_call) -> None:
        transcript = build_transcript(outbound_plain_call)
        assert transcript.source == TranscriptSource.PLAIN_TEXT
        assert transcript.timing == TimingMode.PROPORTIONAL
        assert len(transcript) == 3
        assert not transcript.degraded

    def test_structured_turns_with_start_time_are_absolute(self, timed_call) -> None:
        transcript = build_transcript(timed_call)
        assert transcript.source == TranscriptSource.STRUCTURED
        assert transcript.timing == TimingMode.ABSOLUTE
        assert transcript.call_started_at == CALL_STARTED_AT

    def test_structured_turns_without_start_time_are_proportional(self) -> None:
        call = CallRecord(id="c", transcript_json=timed_history([0, 5]))
        assert build_transcript(call).timing == TimingMode.PROPORTIONAL

    def test_partially_timed_turns_are_proportional(self) -> None:
        raw = timed_history([0]) + [{"role": "user", "content": "untimed"}]
        call = CallRecord(id="c", started_at=CALL_STARTED_AT, transcript_json=raw)
        assert build_transcript(call).timing == TimingMode.PROPORTIONAL

    def test_history_takes_precedence(self, timed_call) -> None:
        history = [{"role": "assistant", "content": "from history"}]
        transcript = build_transcript(timed_call, history)
        assert transcript.source == TranscriptSource.CONVERSATION_HISTORY
        assert [t.text for t in transcript.turns] == ["from history"]

    def test_empty_history_falls_through(self, outbound_plain_call) -> None:
        transcript = build_transcript(outbound_plain_call, [])
        assert transcript.source == TranscriptSource.PLAIN_TEXT

    def test_both_sources_present_prefers_structured(self) -> None:
        call = CallRecord(
            id="c",
            transcript="Plain words here. And more words.",
            transcript_json=[{"role": "agent", "content": "structured"}],
        )
        transcript = build_transcript(call)
        assert transcript.source == TranscriptSource.STRUCTURED

    def test_malformed_structured_degrades_to_plain_text(self) -> None:
        call = CallRecord(
            id="c",
            direction="inbound",
            transcript="Plain words here. And more words.",
            transcript_json=[{"oops": True}],
        )
        transcript = build_transcript(call)
        assert transcript.source == TranscriptSource.PLAIN_TEXT
        assert transcript.degraded is True
        assert transcript.turns[0].role == SpeakerRole.COUNTERPARTY

    def test_malformed_structured_without_plain_text_is_empty(self) -> None:
        call = CallRecord(id="c", transcript_json="garbage")
        transcript = build_transcript(call)
        assert transcript.is_empty
        assert transcript.source == TranscriptSource.NONE
        assert transcript.degraded is True

    def test_no_sources_is_empty_not_an_error(self, bare_call) -> None:
        transcript = build_transcript(bare_call)
        assert transcript.is_empty
        assert transcript.source == TranscriptSource.NONE
        assert transcript.degraded is False

    def test_noise_only_plain_text_is_empty(self) -> None:
        call = CallRecord(id="c", transcript="Ok. Hi. No.")
        assert build_transcript(call).is_empty
