"""
config.py — Configuration loader.

Reads config.yaml and deep-merges it over the built-in defaults so every
module can rely on all keys being present. A missing file is not an error:
the defaults alone produce a working setup for local runs and tests.
"""

import copy
import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULTS: dict[str, Any] = {
    "report": {
        "client_name": "Demo Client",
        "period": {"start": "", "end": ""},
        "profit_callout": (
            "Additional profitability a top 10% practice captures averages "
            "<strong>$162,548</strong> per year."
        ),
        "category_note": (
            "Score represents only KPIs currently scored. Score will adjust "
            "after completion of part 2 and 3 of analysis."
        ),
        "summary_note": (
            "* Ask about our Profit Accelerator to turn these projected gains "
            "into your actual profit."
        ),
        "closing": (
            "Learn more about GROWTH Practice Optimization Partnership, the new "
            "Zero Risk way to win in dentistry!"
        ),
        "quote": (
            "We love helping practices double their profitability risk free "
            "without having to come up with money out of their pocket. It's a "
            "game changer for the practice and unbelievably fulfilling for our "
            "team, for practices that qualify."
        ),
        "quote_author": "Shawn Rowbotham",
        "brand": {
            "text": "111111",
            "muted": "4B5563",
            "light": "F8FAFC",
            "track": "E2E8F0",
            "badge": "D1FAE5",
            "badge_text": "047857",
            "gradient": ["F84949", "FEDC4F", "30BD7E"],
        },
    },
    "csv": {
        "strict_quotes": False,
    },
    "pdf": {
        "format": "Letter",
        "wait_until": "networkidle",
        "print_background": True,
        "prefer_css_page_size": True,
        "timeout_ms": 30000,
        "launch_args": ["--no-sandbox"],
    },
    "server": {
        "host": "0.0.0.0",
        "port": 3001,
        "max_body_bytes": 4 * 1024 * 1024,
        "pdf_url": "http://localhost:3001/pdf",
    },
    "paths": {
        "output_dir": "data/output",
        "log_dir": "logs",
        "templates_dir": str(Path(__file__).parent / "templates"),
    },
}


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: str | None = "config.yaml") -> dict[str, Any]:
    """Load configuration, falling back to defaults for anything missing.

    Args:
        config_path: Path to config.yaml. ``None`` returns the defaults.

    Returns:
        Fully-populated configuration dict.
    """
    cfg: dict[str, Any] = {}
    if config_path:
        path = Path(config_path)
        if path.exists():
            with open(path, "r", encoding="utf-8") as fh:
                cfg = yaml.safe_load(fh) or {}
            logger.debug("Loaded configuration from %s", path)
        else:
            logger.debug("Config %s not found -- using defaults", path)

    merged = _deep_merge(DEFAULTS, cfg)
    if os.environ.get("PORT"):
        merged["server"]["port"] = int(os.environ["PORT"])
    return merged
