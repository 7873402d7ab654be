"""
Central configuration loader for the ModelTriage decision engine.

Reads ``config/config.yaml`` and ``.env``, merges environment-variable
overrides (``MODELTRIAGE_`` prefix), and exposes a typed :class:`Settings`
singleton via :func:`get_settings`.
"""

import logging
import os
import threading
from dataclasses import dataclass, field, is_dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Resolve project root (directory containing ``config/``)
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent          # modeltriage/
_PROJECT_ROOT = _THIS_DIR.parent                     # repo root


def _project_path(*parts: str) -> Path:
    """Build an absolute path relative to the project root."""
    return _PROJECT_ROOT.joinpath(*parts)


# ---------------------------------------------------------------------------
# Nested settings dataclasses
# ---------------------------------------------------------------------------


@dataclass
class RoutingSettings:
    capabilities_path: str = "config/capabilities.yaml"
    roster: List[str] = field(default_factory=list)
    confidence_floor: float = 0.5
    safe_default_model: str = "gpt-5-mini"
    candidate_tolerance: float = 3.0
    confidence_scalars: Dict[str, float] = field(default_factory=lambda: {
        "High": 0.9, "Medium": 0.7, "Low": 0.5,
    })


@dataclass
class ScoringSettings:
    negligible_weight: float = 0.05
    max_key_factors: int = 4
    adjustment_rules: Optional[List[Dict[str, Any]]] = None
    calibration: Dict[str, Any] = field(default_factory=dict)


@dataclass
class OverrideSettings:
    vision_lightweight_model: str = "gemini-3-flash-preview"
    vision_standard_model: str = "gemini-3-pro-preview"
    deep_reasoning_model: str = "gpt-5.2"
    workhorse_model: str = "claude-sonnet-4-5-20250929"
    deep_reasoning_chars: int = 12000
    multi_file_chars: int = 6000
    lightweight_image_prompt_chars: int = 100
    lightweight_text_prompt_chars: int = 200
    lightweight_text_chars: int = 4000
    vision_confidence: float = 0.95
    file_confidence: float = 0.9


@dataclass
class ClassifierSettings:
    strategy: str = "heuristic"
    model: str = "gpt-5-mini"
    api_key_env: str = "OPENAI_API_KEY"
    base_url: str = ""
    timeout_seconds: float = 10.0
    max_completion_tokens: int = 2000
    # Heuristic confidence at which the external call is skipped; 1.0 disables
    fast_path_confidence: float = 0.78


@dataclass
class LoggingSettings:
    level: str = "INFO"
    format: str = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass
class Settings:
    """Top-level settings container."""
    routing: RoutingSettings = field(default_factory=RoutingSettings)
    scoring: ScoringSettings = field(default_factory=ScoringSettings)
    overrides: OverrideSettings = field(default_factory=OverrideSettings)
    classifier: ClassifierSettings = field(default_factory=ClassifierSettings)
    logging: LoggingSettings = field(default_factory=LoggingSettings)


# ---------------------------------------------------------------------------
# YAML loader
# ---------------------------------------------------------------------------

def _load_yaml(path: Path) -> Dict[str, Any]:
    """Read and parse a YAML file.  Returns ``{}`` if the file is missing."""
    if not path.exists():
        logger.warning("Config file not found: %s", path)
        return {}
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    return data if isinstance(data, dict) else {}


def _apply_dict(target: object, data: Dict[str, Any]) -> None:
    """Recursively apply *data* values onto a dataclass instance."""
    for key, value in data.items():
        if not hasattr(target, key):
            continue
        current = getattr(target, key)
        if is_dataclass(current) and isinstance(value, dict):
            _apply_dict(current, value)
        else:
            setattr(target, key, value)


# ---------------------------------------------------------------------------
# Env-var overrides  (MODELTRIAGE_SECTION_KEY  e.g. MODELTRIAGE_ROUTING_CONFIDENCE_FLOOR)
# ---------------------------------------------------------------------------

_FLAT_SECTIONS = ["routing", "scoring", "overrides", "classifier", "logging"]

_TYPE_MAP = {
    int: int,
    float: float,
    bool: lambda v: v.lower() in ("1", "true", "yes"),
    str: str,
}


def _apply_env_overrides(settings: Settings) -> None:
    """Override flat scalar fields via ``MODELTRIAGE_<SECTION>_<KEY>`` env vars."""
    for section_name in _FLAT_SECTIONS:
        section = getattr(settings, section_name, None)
        if section is None:
            continue
        prefix = f"MODELTRIAGE_{section_name.upper()}_"
        for key in list(vars(section)):
            env_key = prefix + key.upper()
            env_val = os.environ.get(env_key)
            if env_val is None:
                continue
            current = getattr(section, key)
            cast = _TYPE_MAP.get(type(current))
            if cast is None:
                logger.warning("Env override ignored for non-scalar %s", env_key)
                continue
            try:
                setattr(section, key, cast(env_val))
                logger.debug("Env override applied: %s=%s", env_key, env_val)
            except (ValueError, TypeError):
                logger.warning("Invalid env override %s=%s", env_key, env_val)


# ---------------------------------------------------------------------------
# Singleton
# ---------------------------------------------------------------------------

_settings: Optional[Settings] = None
_lock = threading.Lock()


def get_settings(
    *,
    yaml_path: Optional[Path] = None,
    env_path: Optional[Path] = None,
    _force_reload: bool = False,
) -> Settings:
    """Return the application-wide :class:`Settings` singleton.

    On first call (or when ``_force_reload=True``) the function:

    1. Calls ``load_dotenv()`` to populate env vars from ``.env``.
    2. Reads ``config/config.yaml``.
    3. Applies ``MODELTRIAGE_*`` environment-variable overrides.

    Args:
        yaml_path: Override the YAML config file path (testing).
        env_path: Override the ``.env`` file path (testing).
        _force_reload: Re-read everything even if already loaded.

    Returns:
        The global ``Settings`` instance.
    """
    global _settings

    if _settings is not None and not _force_reload:
        return _settings

    with _lock:
        # Double-check after acquiring lock
        if _settings is not None and not _force_reload:
            return _settings

        dotenv_path = env_path or _project_path(".env")
        load_dotenv(dotenv_path, override=True)

        config_path = yaml_path or _project_path("config", "config.yaml")
        raw = _load_yaml(config_path)

        settings = Settings()
        for section_name in _FLAT_SECTIONS:
            section_data = raw.get(section_name)
            if isinstance(section_data, dict):
                _apply_dict(getattr(settings, section_name), section_data)

        _apply_env_overrides(settings)

        _settings = settings
        logger.info("Settings loaded from %s", config_path)
        return _settings


def reset_settings() -> None:
    """Clear the cached singleton (for testing)."""
    global _settings
    with _lock:
        _settings = None


def resolve_path(path: str) -> Path:
    """Resolve a config-relative path against the project root."""
    candidate = Path(path)
    return candidate if candidate.is_absolute() else _project_path(path)
