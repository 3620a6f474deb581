from __future__ import annotations

import os
from pathlib import Path
from typing import Tuple

from dotenv import load_dotenv

load_dotenv(Path.cwd() / ".env")


def _parse_color(name: str, default: str) -> Tuple[float, float, float]:
    raw = os.getenv(name, default)
    try:
        parts = [float(part) for part in raw.split(",") if part.strip()]
    except ValueError:
        parts = []
    if len(parts) != 3:
        parts = [float(part) for part in default.split(",")]
    return tuple(min(max(part, 0.0), 1.0) for part in parts)  # type: ignore[return-value]


class BaseConfig:
    LOG_LEVEL = os.getenv("PDFSURGEON_LOG_LEVEL", "INFO")
    # Undo depth per edit session; oldest snapshots are dropped beyond this
    HISTORY_LIMIT = int(os.getenv("PDFSURGEON_HISTORY_LIMIT", "50"))
    COVER_MARGIN = float(os.getenv("PDFSURGEON_COVER_MARGIN", "4.0"))
    LINE_HEIGHT_FACTOR = float(os.getenv("PDFSURGEON_LINE_HEIGHT_FACTOR", "1.2"))
    DEFAULT_FONT = os.getenv("PDFSURGEON_DEFAULT_FONT", "Helvetica")
    SAMPLE_BACKGROUND = os.getenv("PDFSURGEON_SAMPLE_BACKGROUND", "true").lower() == "true"
    HIGHLIGHT_COLOR = _parse_color("PDFSURGEON_HIGHLIGHT_COLOR", "1,1,0")
    HIGHLIGHT_OPACITY = float(os.getenv("PDFSURGEON_HIGHLIGHT_OPACITY", "0.3"))
    MIN_DOCUMENT_BYTES = int(os.getenv("PDFSURGEON_MIN_DOCUMENT_BYTES", "26"))
    MAX_DOCUMENT_BYTES = int(os.getenv("PDFSURGEON_MAX_DOCUMENT_BYTES", str(200 * 1024 * 1024)))
    # "average" (glyph-average heuristic) or "glyph_table" (PyMuPDF base-14 widths)
    METRICS_PROVIDER = os.getenv("PDFSURGEON_METRICS_PROVIDER", "average")


class TestConfig(BaseConfig):
    TESTING = True
    LOG_LEVEL = "DEBUG"
    HISTORY_LIMIT = 5
    SAMPLE_BACKGROUND = False


class DevConfig(BaseConfig):
    DEBUG = True
    LOG_LEVEL = "DEBUG"


config_by_name = {
    "development": DevConfig,
    "testing": TestConfig,
    "production": BaseConfig,
}


def get_config(config_name: str | None = None):
    if not config_name:
        config_name = os.getenv("PDFSURGEON_ENV", "production")
    return config_by_name.get(config_name.lower(), BaseConfig)
