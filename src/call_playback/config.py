"""
Environment-based configuration management for call-playback.

Uses pydantic-settings to load configuration values from environment
variables and .env files. Engine components accept an explicit
``Settings`` instance; ``get_settings()`` is the default source.

All environment variables are prefixed with ``CP_`` to avoid collisions.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Central configuration loaded from ``CP_``-prefixed environment variables.

    Attributes:
        api_base_url: Base URL of the call-records REST API.
        request_timeout_s: Per-request timeout for collaborator calls.
        page_size: Number of transcript turns revealed per page.
        near_bottom_threshold_px: Distance from the bottom of the
            transcript pane that counts as "near the bottom".
        spool_dir: Directory for materialised media handles (empty means
            the system temp directory).
        download_dir: Directory that exported recordings are saved into.
        recording_stream_path: Fallback recording resource path template.
        export_extension: File extension for default export names.
        preload_recording: Acquire the playback handle when a call is
            opened instead of on first play.
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        log_json: Render logs as JSON lines instead of console output.
    """

    model_config = SettingsConfigDict(
        env_prefix="CP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Collaborator API ──
    api_base_url: str = Field(
        default="http://localhost:8000",
        description="Base URL of the call-records REST API.",
    )
    request_timeout_s: float = Field(
        default=30.0,
        gt=0.0,
        description="Per-request timeout in seconds.",
    )
    recording_stream_path: str = Field(
        default="/agent/calls/{call_id}/recording/stream",
        description="Fallback recording resource path template.",
    )

    # ── Transcript pane ──
    page_size: int = Field(default=30, ge=1, description="Turns revealed per page.")
    near_bottom_threshold_px: float = Field(
        default=80.0,
        ge=0.0,
        description="Scroll slack that still counts as reaching the bottom.",
    )

    # ── Media handles ──
    spool_dir: str = Field(default="", description="Directory for media handle files.")
    download_dir: str = Field(default=".", description="Directory for saved exports.")
    export_extension: str = Field(
        default="mp3",
        min_length=1,
        description="Extension used for default export file names.",
    )
    preload_recording: bool = Field(
        default=False,
        description="Acquire the playback handle at open time.",
    )

    # ── Logging ──
    log_level: str = Field(default="INFO", description="Logging level.")
    log_json: bool = Field(default=True, description="Emit JSON log lines.")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the cached application settings singleton.

    Returns:
        The global ``Settings`` instance.
    """
    return Settings()
