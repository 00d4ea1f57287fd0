"""Reconciliation configuration loaded from environment variables and CLI flags."""

from __future__ import annotations

from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from reconciler.exceptions import ConfigurationError
from reconciler.filesystem.snapshot_reader import DEFAULT_ENCODING
from reconciler.services.compare_service import CompareMode
from reconciler.services.pipeline_service import (
    DEFAULT_CAPACITY,
    LabelStyle,
    resolve_worker_count,
)


class Settings(BaseSettings):
    """Inventory reconciler settings.

    Every field can be set through a ``RECONCILER_*`` environment variable or
    the ``.env`` file; CLI flags are passed as constructor arguments and take
    precedence. The object is frozen once built.
    """

    model_config = SettingsConfigDict(
        env_prefix="RECONCILER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    # Inputs
    base_dir: str | None = None
    cloud_dir: str = ""
    source_path: Path | None = None
    dest_path: Path | None = None
    dest_old_path: Path | None = None

    # Outputs
    output_path: Path | None = None
    label_style: LabelStyle = LabelStyle.LOCALIZED

    # Filtering and comparison
    ignore: str = ""
    compare_mode: CompareMode | None = None

    # Execution
    concurrency: int = Field(default=0, ge=0)
    queue_capacity: int = Field(default=DEFAULT_CAPACITY, ge=1)
    input_encoding: str = DEFAULT_ENCODING

    debug: bool = False

    def require(self, *names: str) -> None:
        """Raise ``ConfigurationError`` naming every missing required setting."""
        missing = [name for name in names if getattr(self, name) in (None, "")]
        if missing:
            flags = ", ".join(name.upper() for name in missing)
            raise ConfigurationError(f"Missing required settings: {flags}")

    def worker_count(self) -> int:
        """Configured concurrency, with 0 meaning half the available CPUs."""
        return resolve_worker_count(self.concurrency)

    def mode_or(self, default: CompareMode) -> CompareMode:
        return self.compare_mode if self.compare_mode is not None else default

    def required_path(self, name: str) -> Path:
        value = getattr(self, name)
        if not isinstance(value, Path):
            raise ConfigurationError(f"Missing required setting: {name.upper()}")
        return value
