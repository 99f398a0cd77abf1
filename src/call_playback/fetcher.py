"""
Authenticated media fetcher for call-playback.

Turns a protected recording reference into a locally usable
``MediaHandle`` by fetching the bytes with the caller's credential and
spooling them to a file.  The fetcher owns handle lifecycle:

* one slot per ``MediaPurpose``, never more than one live handle each;
* acquiring a handle for a purpose first releases that purpose's
  current handle;
* every acquisition is stamped with a per-purpose generation.  When the
  fetch completes the result is applied only if the fetcher is still
  open and no newer acquisition for the same purpose has started.
  Outstanding network calls are never cancelled, their results are
  simply discarded.
"""

from __future__ import annotations

import mimetypes
import os
import tempfile
from pathlib import Path
from typing import Protocol

import structlog

from call_playback import metrics
from call_playback.errors import CallPlaybackError, FailureKind, FetchFailure
from call_playback.models.call import RecordingRef
from call_playback.models.media import MediaHandle, MediaPurpose, RecordingPayload

logger = structlog.get_logger()


class RecordingSource(Protocol):
    """Anything that can perform an authorized recording fetch."""

    async def fetch_recording(self, ref: RecordingRef, credential: str) -> RecordingPayload:
        ...  # pragma: no cover


def _suffix_for(content_type: str, ref: RecordingRef) -> str:
    suffix = Path(ref.url.split("?", 1)[0]).suffix
    if suffix and len(suffix) <= 6:
        return suffix
    guessed = mimetypes.guess_extension(content_type.split(";", 1)[0].strip())
    return guessed or ".bin"


class MediaFetcher:
    """Fetch protected recordings and manage the resulting handles.

    Args:
        source: Performs the authorized byte-stream retrieval.
        spool_dir: Directory for handle files (``None`` = system temp).
    """

    def __init__(self, source: RecordingSource, *, spool_dir: str | Path | None = None) -> None:
        self._source = source
        self._spool_dir = Path(spool_dir) if spool_dir else Path(tempfile.gettempdir())
        self._slots: dict[MediaPurpose, MediaHandle | None] = {p: None for p in MediaPurpose}
        self._generations: dict[MediaPurpose, int] = {p: 0 for p in MediaPurpose}
        self._acquired: dict[MediaPurpose, int] = {p: 0 for p in MediaPurpose}
        self._released: dict[MediaPurpose, int] = {p: 0 for p in MediaPurpose}
        self._closed = False

    # ── inspection ──

    @property
    def closed(self) -> bool:
        return self._closed

    def current(self, purpose: MediaPurpose) -> MediaHandle | None:
        """Return the live handle for *purpose*, if any."""
        return self._slots[purpose]

    def acquired_count(self, purpose: MediaPurpose) -> int:
        return self._acquired[purpose]

    def released_count(self, purpose: MediaPurpose) -> int:
        return self._released[purpose]

    def live_count(self) -> int:
        return sum(1 for handle in self._slots.values() if handle is not None)

    # ── acquisition ──

    async def acquire(
        self,
        ref: RecordingRef,
        purpose: MediaPurpose,
        credential: str | None,
    ) -> MediaHandle | FetchFailure:
        """Fetch *ref* and wrap the bytes in a handle for *purpose*.

        Args:
            ref: Recording to fetch.
            purpose: Slot that will own the handle.
            credential: Bearer credential supplied by the caller.

        Returns:
            The new ``MediaHandle``, or a ``FetchFailure`` describing why
            no handle was produced.
        """
        log = logger.bind(purpose=purpose.value, ref=ref.url)
        if self._closed:
            return self._fail(purpose, FetchFailure(FailureKind.SUPERSEDED, "fetcher is closed"), log)

        self.release_purpose(purpose)
        self._generations[purpose] += 1
        generation = self._generations[purpose]

        if not credential:
            return self._fail(purpose, FetchFailure(FailureKind.UNAUTHORIZED, "no credential"), log)

        try:
            payload = await self._source.fetch_recording(ref, credential)
        except CallPlaybackError as exc:
            return self._fail(purpose, FetchFailure.from_error(exc), log)

        if self._closed or generation != self._generations[purpose]:
            return self._fail(
                purpose,
                FetchFailure(FailureKind.SUPERSEDED, "acquisition superseded before completion"),
                log,
            )

        try:
            handle = self._materialise(payload, ref, purpose)
        except OSError as exc:
            return self._fail(
                purpose,
                FetchFailure(FailureKind.WRITE_ERROR, f"could not spool recording: {exc}"),
                log,
            )
        self._slots[purpose] = handle
        self._acquired[purpose] += 1
        metrics.MEDIA_ACQUIRED.labels(purpose=purpose.value).inc()
        metrics.LIVE_MEDIA_HANDLES.labels(purpose=purpose.value).inc()
        log.info("media_acquired", handle_id=str(handle.handle_id), size_bytes=handle.size_bytes)
        return handle

    def _fail(self, purpose: MediaPurpose, failure: FetchFailure, log: structlog.BoundLogger) -> FetchFailure:
        metrics.MEDIA_FETCH_FAILURES.labels(purpose=purpose.value, kind=failure.kind.value).inc()
        if failure.kind == FailureKind.SUPERSEDED:
            log.debug("media_fetch_discarded", reason=failure.message)
        else:
            log.warning("media_fetch_failed", kind=failure.kind.value, error=failure.message)
        return failure

    def _materialise(
        self,
        payload: RecordingPayload,
        ref: RecordingRef,
        purpose: MediaPurpose,
    ) -> MediaHandle:
        self._spool_dir.mkdir(parents=True, exist_ok=True)
        fd, name = tempfile.mkstemp(
            prefix=f"{purpose.value}-",
            suffix=_suffix_for(payload.content_type, ref),
            dir=self._spool_dir,
        )
        try:
            with os.fdopen(fd, "wb") as handle_file:
                handle_file.write(payload.content)
        except OSError:
            Path(name).unlink(missing_ok=True)
            raise
        return MediaHandle(
            purpose=purpose,
            path=Path(name),
            size_bytes=len(payload.content),
            content_type=payload.content_type,
            source_ref=ref.url,
        )

    # ── release ──

    def release(self, handle: MediaHandle) -> bool:
        """Revoke *handle*.

        Returns:
            ``True`` if the handle was live and is now revoked, ``False``
            if it had already been released or is not the slot's handle.
        """
        if handle.revoked or self._slots[handle.purpose] is not handle:
            return False
        self._slots[handle.purpose] = None
        handle.revoked = True
        handle.path.unlink(missing_ok=True)
        self._released[handle.purpose] += 1
        metrics.MEDIA_RELEASED.labels(purpose=handle.purpose.value).inc()
        metrics.LIVE_MEDIA_HANDLES.labels(purpose=handle.purpose.value).dec()
        logger.info("media_released", purpose=handle.purpose.value, handle_id=str(handle.handle_id))
        return True

    def release_purpose(self, purpose: MediaPurpose) -> bool:
        """Release whatever handle currently occupies *purpose*."""
        handle = self._slots[purpose]
        if handle is None:
            return False
        return self.release(handle)

    def invalidate(self, purpose: MediaPurpose) -> None:
        """Make any in-flight acquisition for *purpose* stale and release the slot."""
        self._generations[purpose] += 1
        self.release_purpose(purpose)

    def close(self) -> None:
        """Invalidate outstanding acquisitions and release every slot.  Idempotent."""
        if self._closed:
            return
        self._closed = True
        for purpose in MediaPurpose:
            self.invalidate(purpose)
        logger.debug("media_fetcher_closed")
