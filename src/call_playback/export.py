"""
Recording export for call-playback.

Downloads a recording into a local directory through its own ``export``
media slot.  The export handle is short-lived: acquired, copied to the
destination, and released before ``download`` returns, whatever the
outcome.  A playback handle held at the same time is never touched.
"""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path

import structlog

from call_playback import metrics
from call_playback.errors import FailureKind, FetchFailure
from call_playback.fetcher import MediaFetcher
from call_playback.models.call import RecordingRef
from call_playback.models.media import MediaPurpose

logger = structlog.get_logger()


@dataclass(frozen=True, slots=True)
class ExportResult:
    """Outcome of a download: a saved path or a typed failure."""

    saved_path: Path | None = None
    failure: FetchFailure | None = None

    @property
    def ok(self) -> bool:
        return self.saved_path is not None


def _safe_name(suggested_name: str) -> str:
    name = Path(suggested_name.replace("\\", "/")).name.strip()
    if name in ("", ".", ".."):
        return "recording"
    return name


def _unique_path(directory: Path, name: str) -> Path:
    candidate = directory / name
    stem, suffix = Path(name).stem, Path(name).suffix
    counter = 1
    while candidate.exists():
        candidate = directory / f"{stem} ({counter}){suffix}"
        counter += 1
    return candidate


class ExportManager:
    """Save recordings to disk via a dedicated export handle.

    Args:
        fetcher: Shared fetcher; only its ``export`` slot is used.
        download_dir: Directory exports are written to.
    """

    def __init__(self, fetcher: MediaFetcher, *, download_dir: str | Path) -> None:
        self._fetcher = fetcher
        self.download_dir = Path(download_dir)

    async def download(
        self,
        ref: RecordingRef,
        suggested_name: str,
        credential: str | None,
    ) -> ExportResult:
        """Fetch *ref* and save it as *suggested_name*.

        Never retries.  An existing file is never overwritten; a numbered
        suffix is added instead.
        """
        log = logger.bind(ref=ref.url, suggested_name=suggested_name)
        acquired = await self._fetcher.acquire(ref, MediaPurpose.EXPORT, credential)
        if isinstance(acquired, FetchFailure):
            metrics.EXPORTS.labels(outcome=acquired.kind.value).inc()
            log.warning("export_failed", kind=acquired.kind.value, error=acquired.message)
            return ExportResult(failure=acquired)

        try:
            self.download_dir.mkdir(parents=True, exist_ok=True)
            target = _unique_path(self.download_dir, _safe_name(suggested_name))
            shutil.copyfile(acquired.path, target)
        except OSError as exc:
            metrics.EXPORTS.labels(outcome=FailureKind.WRITE_ERROR.value).inc()
            log.error("export_write_failed", error=str(exc))
            return ExportResult(failure=FetchFailure(FailureKind.WRITE_ERROR, f"could not save: {exc}"))
        finally:
            self._fetcher.release(acquired)

        metrics.EXPORTS.labels(outcome="saved").inc()
        log.info("export_saved", path=str(target), size_bytes=acquired.size_bytes)
        return ExportResult(saved_path=target)
