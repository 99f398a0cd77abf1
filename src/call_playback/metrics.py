"""
Prometheus metrics for call-playback.

Counts media handle acquisitions and revocations per purpose so the
acquire/release balance can be watched from outside the process, plus
fetch failures and export outcomes.
"""

from __future__ import annotations

from prometheus_client import Counter, Gauge

MEDIA_ACQUIRED = Counter(
    "call_playback_media_acquired_total",
    "Media handles created from a successful fetch.",
    ["purpose"],
)
MEDIA_RELEASED = Counter(
    "call_playback_media_released_total",
    "Media handles revoked.",
    ["purpose"],
)
MEDIA_FETCH_FAILURES = Counter(
    "call_playback_media_fetch_failures_total",
    "Recording fetches that did not produce a handle.",
    ["purpose", "kind"],
)
LIVE_MEDIA_HANDLES = Gauge(
    "call_playback_live_media_handles",
    "Media handles currently alive.",
    ["purpose"],
)
EXPORTS = Counter(
    "call_playback_exports_total",
    "Recording downloads by outcome.",
    ["outcome"],
)
