"""
YAML → typed config loader.

Loads client and prediction settings from settings.yaml (bundled with the
package) and merges user overrides from ~/.gzclp-sync/config.yaml.

Usage:
    from gzclp_sync.io.config_loader import load_client_settings
    settings = load_client_settings()
    client = HevyClient(settings.api_key, timeout=settings.timeout)

The API key is read from the HEVY_API_KEY environment variable first and
the config file second. A user file that cannot be parsed is ignored with
a warning.
"""

from __future__ import annotations

import importlib.resources
import os
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from ..core.config import (
    CONFIDENCE_DECAY,
    MIN_CONFIDENCE,
    PREDICTION_HORIZON,
    WORKOUTS_PER_STAGE,
)
from ..core.prediction import PredictionConfig
from .hevy_client import (
    DEFAULT_BASE_URL,
    DEFAULT_MAX_RETRIES,
    DEFAULT_RETRY_BASE_DELAY,
    DEFAULT_TIMEOUT,
)

API_KEY_ENV = "HEVY_API_KEY"
DEFAULT_SYNC_PAGES = 3

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML mapping; anything else yields {}."""
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def _deep_merge(base: dict, override: dict) -> dict:
    """Recursively merge *override* into *base* (non-destructive to base)."""
    result = dict(base)
    for k, v in override.items():
        if isinstance(v, dict) and isinstance(result.get(k), dict):
            result[k] = _deep_merge(result[k], v)
        else:
            result[k] = v
    return result


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def get_config_dir() -> Path:
    home = Path(os.environ.get("HOME", "~")).expanduser()
    return home / ".gzclp-sync"


def get_user_yaml_path() -> Path | None:
    """Return ~/.gzclp-sync/config.yaml if it exists, else None."""
    p = get_config_dir() / "config.yaml"
    return p if p.exists() else None


def load_config(user_path: Path | None = None) -> dict[str, Any]:
    """
    Load and merge configuration from YAML sources.

    Load order (later overrides earlier):
    1. Bundled gzclp_sync/settings.yaml
    2. User override (user_path, or ~/.gzclp-sync/config.yaml)

    Returns:
        Merged dict of config sections
    """
    ref = importlib.resources.files("gzclp_sync").joinpath("settings.yaml")
    config = yaml.safe_load(ref.read_text(encoding="utf-8")) or {}

    user = user_path or get_user_yaml_path()
    if user is not None and user.exists():
        try:
            user_cfg = _load_yaml_file(user)
        except (OSError, yaml.YAMLError) as e:
            warnings.warn(f"Ignoring unreadable config {user}: {e}", stacklevel=2)
            user_cfg = {}
        config = _deep_merge(config, user_cfg)

    return config


@dataclass
class ClientSettings:
    """Settings for HevyClient."""

    api_key: str | None
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    max_retries: int = DEFAULT_MAX_RETRIES
    retry_base_delay: float = DEFAULT_RETRY_BASE_DELAY


def load_client_settings(config: dict[str, Any] | None = None) -> ClientSettings:
    """Typed view of the 'hevy' section plus the API key."""
    config = load_config() if config is None else config
    section = config.get("hevy") or {}
    return ClientSettings(
        api_key=os.environ.get(API_KEY_ENV) or section.get("api_key") or None,
        base_url=section.get("base_url", DEFAULT_BASE_URL),
        timeout=float(section.get("timeout", DEFAULT_TIMEOUT)),
        max_retries=int(section.get("max_retries", DEFAULT_MAX_RETRIES)),
        retry_base_delay=float(section.get("retry_base_delay", DEFAULT_RETRY_BASE_DELAY)),
    )


def load_prediction_config(config: dict[str, Any] | None = None) -> PredictionConfig:
    """Typed view of the 'prediction' section."""
    config = load_config() if config is None else config
    section = config.get("prediction") or {}
    return PredictionConfig(
        horizon=int(section.get("horizon", PREDICTION_HORIZON)),
        workouts_per_stage=int(section.get("workouts_per_stage", WORKOUTS_PER_STAGE)),
        min_confidence=float(section.get("min_confidence", MIN_CONFIDENCE)),
        confidence_decay=float(section.get("confidence_decay", CONFIDENCE_DECAY)),
        assume_success=bool(section.get("assume_success", False)),
    )


def load_sync_pages(config: dict[str, Any] | None = None) -> int | None:
    """Workout pages fetched per sync; 0 or null means every page."""
    config = load_config() if config is None else config
    pages = (config.get("sync") or {}).get("max_pages", DEFAULT_SYNC_PAGES)
    if not pages:
        return None
    return int(pages)
