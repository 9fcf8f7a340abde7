"""
Configuration Schema

Pydantic models for validating vibe-check configuration.
"""

import json
import logging
from pathlib import Path
from typing import List, Optional

from pydantic import BaseModel, Field, ValidationError

from vibe_check.config.defaults import (
    CONFIG_FILENAME,
    DEFAULT_GAP_MINUTES,
    SPIRAL_THRESHOLD,
    TRUST_WINDOW_MINUTES,
)

logger = logging.getLogger(__name__)


class VibeConfig(BaseModel):
    """Top-level vibe-check configuration."""

    # Segmentation
    gap_minutes: int = Field(default=DEFAULT_GAP_MINUTES, ge=1, le=1440)

    # Fix chains
    spiral_threshold: int = Field(default=SPIRAL_THRESHOLD, ge=2, le=20)
    trust_window_minutes: int = Field(default=TRUST_WINDOW_MINUTES, ge=1, le=240)

    # Storage
    data_dir: Optional[str] = None  # uses default if None
    record_sessions: bool = True

    # Pattern score signals
    enabled_signals: Optional[List[str]] = None
    disabled_signals: Optional[List[str]] = None

    def get_data_dir(self) -> Path:
        if self.data_dir:
            return Path(self.data_dir).expanduser()
        from vibe_check.config.defaults import DEFAULT_DATA_DIR
        return DEFAULT_DATA_DIR


def load_config(path: Optional[Path] = None) -> VibeConfig:
    """Load configuration from a JSON file, falling back to defaults.

    A missing file is normal. An unreadable or invalid file is logged and
    ignored so a bad edit never blocks analysis.
    """
    if path is None:
        from vibe_check.config.defaults import DEFAULT_DATA_DIR
        path = DEFAULT_DATA_DIR / CONFIG_FILENAME
    if not path.exists():
        return VibeConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return VibeConfig(**data)
    except (OSError, json.JSONDecodeError, TypeError, ValidationError) as e:
        logger.warning("Ignoring invalid config %s: %s", path, e)
        return VibeConfig()
