"""
YAML → typed config loader.

Loads engine tunables from engine.yaml (bundled with the package) and
optionally merges user overrides from ~/.training-intel/engine.yaml.
The same two-layer lookup serves the exercise library (exercises.yaml) and
the achievement catalog (achievements.yaml).

Usage:
    from training_intel.core.engine.config_loader import load_model_config
    cfg = load_model_config()
    ttl = cfg.get("forecast", {}).get("ttl_hours", 24.0)

If the bundled YAML cannot be parsed, lookups fall back to the Python
defaults from config.py.  If the user override file exists but has parse
errors, a warning is emitted and the file is ignored.
"""

from __future__ import annotations

import importlib.resources
import logging
import os
import warnings
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

ENGINE_FILE = "engine.yaml"
EXERCISES_FILE = "exercises.yaml"
ACHIEVEMENTS_FILE = "achievements.yaml"

# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _load_yaml_file(path: Path) -> dict[str, Any]:
    """Load a single YAML file; raise on unreadable or malformed content."""
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


def get_config_home() -> Path:
    """Return the per-user config/data directory (~/.training-intel by default)."""
    override = os.environ.get("TRAINING_INTEL_HOME")
    if override:
        return Path(override).expanduser()
    home = Path(os.environ.get("HOME", "~")).expanduser()
    return home / ".training-intel"


def get_bundled_yaml_path(filename: str = ENGINE_FILE) -> Path | None:
    """Return the path to a bundled YAML file, or None if not found."""
    ref = importlib.resources.files("training_intel").joinpath(filename)
    if ref.is_file():
        with importlib.resources.as_file(ref) as p:
            return p
    candidate = Path(__file__).parent.parent.parent / filename
    return candidate if candidate.exists() else None


def get_user_yaml_path(filename: str = ENGINE_FILE) -> Path | None:
    """Return the user override for *filename* if it exists, else None."""
    p = get_config_home() / filename
    return p if p.exists() else None


def load_yaml_layers(filename: str) -> dict[str, Any]:
    """
    Load and merge a bundled YAML file with its user override.

    Load order (later overrides earlier):
    1. Bundled src/training_intel/<filename>
    2. User override at ~/.training-intel/<filename>

    Args:
        filename: YAML file name, e.g. "engine.yaml"

    Returns:
        Merged dict.  Empty dict if no YAML available.
    """
    config: dict[str, Any] = {}

    bundled = get_bundled_yaml_path(filename)
    if bundled is not None:
        try:
            config = _deep_merge(config, _load_yaml_file(bundled))
        except (OSError, yaml.YAMLError) as e:
            logger.error("Bundled %s unreadable, using built-in defaults: %s", filename, e)

    user = get_user_yaml_path(filename)
    if user is not None:
        try:
            user_cfg = _load_yaml_file(user)
        except (OSError, yaml.YAMLError) as e:
            warnings.warn(f"Ignoring user override {user}: {e}", stacklevel=2)
            user_cfg = {}
        if user_cfg:
            logger.debug("Merging user override %s", user)
            config = _deep_merge(config, user_cfg)

    return config


def load_model_config() -> dict[str, Any]:
    """Load and merge engine tunables (engine.yaml)."""
    return load_yaml_layers(ENGINE_FILE)
