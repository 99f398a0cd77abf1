"""
Windowed transcript revealer for call-playback.

Bounds how many turns are rendered at once for long transcripts.  The
window grows a page at a time when the viewer scrolls near the bottom,
and is force-expanded whenever the synchronizer's active turn lies
beyond it.  For one call identity the window never shrinks.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

import structlog

logger = structlog.get_logger()

DEFAULT_PAGE_SIZE = 30
DEFAULT_NEAR_BOTTOM_THRESHOLD = 80.0

T = TypeVar("T")


class WindowedRevealer:
    """Count of currently revealed turns for one transcript view.

    Args:
        page_size: Turns revealed per page.
        near_bottom_threshold: Scroll slack, in the same unit as the
            scroll metrics, that still counts as reaching the bottom.
    """

    def __init__(
        self,
        *,
        page_size: int = DEFAULT_PAGE_SIZE,
        near_bottom_threshold: float = DEFAULT_NEAR_BOTTOM_THRESHOLD,
    ) -> None:
        if page_size < 1:
            raise ValueError("page_size must be >= 1")
        self.page_size = page_size
        self.near_bottom_threshold = near_bottom_threshold
        self._call_id: str | None = None
        self._total = 0
        self._window = 0

    # ── inspection ──

    @property
    def window(self) -> int:
        return self._window

    @property
    def total(self) -> int:
        return self._total

    @property
    def call_id(self) -> str | None:
        return self._call_id

    @property
    def has_more(self) -> bool:
        return self._window < self._total

    def visible(self, turns: Sequence[T]) -> tuple[T, ...]:
        """Return the revealed prefix of *turns*."""
        return tuple(turns[: self._window])

    # ── lifecycle ──

    def load(self, call_id: str, total: int) -> None:
        """Bind the revealer to a transcript.

        A different *call_id* resets the window to the first page.  The
        same call keeps its window (never shrinking it).
        """
        if total < 0:
            raise ValueError("total must be >= 0")
        if call_id == self._call_id:
            self._total = total
            self._window = min(max(self._window, min(self.page_size, total)), total)
            return
        self._call_id = call_id
        self._total = total
        self._window = min(self.page_size, total)
        logger.debug("reveal_window_reset", call_id=call_id, window=self._window, total=total)

    def reset(self) -> None:
        """Unbind from any transcript; nothing is visible until the next ``load``."""
        self._call_id = None
        self._total = 0
        self._window = 0

    # ── growth rules ──

    def _grow_to(self, target: int, reason: str) -> bool:
        target = min(target, self._total)
        if target <= self._window:
            return False
        previous = self._window
        self._window = target
        logger.debug(
            "reveal_window_expanded",
            call_id=self._call_id,
            previous=previous,
            window=target,
            reason=reason,
        )
        return True

    def request_more(self) -> bool:
        """Reveal one more page.  Returns ``True`` if the window grew."""
        return self._grow_to(self._window + self.page_size, "request")

    def on_scroll(self, scroll_top: float, viewport_height: float, content_height: float) -> bool:
        """Grow by a page when the viewport is near the bottom of the content."""
        if not self.has_more:
            return False
        if scroll_top + viewport_height >= content_height - self.near_bottom_threshold:
            return self._grow_to(self._window + self.page_size, "scroll")
        return False

    def reconcile(self, active_index: int | None) -> bool:
        """Make sure *active_index* is revealed.

        Takes precedence over the scroll rule and never decreases the window.
        """
        if active_index is None or active_index < self._window:
            return False
        return self._grow_to(active_index + 1, "sync")
