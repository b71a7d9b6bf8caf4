"""YAML configuration loader with environment variable overrides.

# ─── CONFIGURATION HIERARCHY (Junior Developer Guide) ──────────────────
#
#   1. config/config.yaml  -- static defaults checked into the repo
#   2. .env file           -- local developer overrides (not committed)
#   3. Environment vars    -- set at deploy time
#
# load_config() reads the YAML file first, then deep-merges the
# environment-based values on top:
#   base      = {"pipeline": {"policies": {"processing": "degrade"}}}
#   overrides = {"pipeline": {"gate_delay_seconds": 0.15}}
#   result    = {"pipeline": {"policies": {...}, "gate_delay_seconds": 0.15}}
# ──────────────────────────────────────────────────────────────────────
"""

from pathlib import Path

import yaml

from notebook_ingest.config.settings import Settings
from notebook_ingest.models.pipeline import FailurePolicy, StagePolicies
from notebook_ingest.utils.errors import ConfigurationError


def load_config(path: str = "config/config.yaml", settings: Settings | None = None) -> dict:
    """Load YAML config and merge with environment-based Settings.

    Args:
        path: Path to the YAML configuration file.
        settings: Pre-built settings; a fresh ``Settings()`` when omitted.

    Returns:
        Fully resolved configuration dictionary.
    """
    config_path = Path(path)
    if config_path.exists():
        with open(config_path) as f:
            yaml_config = yaml.safe_load(f) or {}
    else:
        yaml_config = {}

    settings = settings or Settings()
    env_overrides = {
        "app": {
            "host": settings.app_host,
            "port": settings.app_port,
            "env": settings.app_env,
        },
        "backends": {
            "record_store": settings.record_store,
            "blob_storage": settings.blob_storage,
            "content_processor": settings.content_processor,
            "available": settings.get_available_backends(),
        },
        "pipeline": _explicit_pipeline_values(settings),
        "logging": {
            "level": settings.log_level,
        },
    }

    _deep_merge(yaml_config, env_overrides)
    return yaml_config


# Settings field -> pipeline key.  Only values set explicitly (environment,
# .env or constructor) override the YAML.
_PIPELINE_FIELDS = {
    "max_file_size_bytes": "max_file_size_bytes",
    "batch_gate_delay_seconds": "gate_delay_seconds",
    "max_concurrent_items": "max_concurrent_items",
}


def _explicit_pipeline_values(settings: Settings) -> dict:
    return {
        key: getattr(settings, field)
        for field, key in _PIPELINE_FIELDS.items()
        if field in settings.model_fields_set
    }


def stage_policies_from_config(config: dict) -> StagePolicies:
    """Build :class:`StagePolicies` from ``pipeline.policies`` in *config*.

    Raises:
        ConfigurationError: If a policy value is not ``degrade`` or ``fail``.
    """
    raw = (config.get("pipeline") or {}).get("policies") or {}
    try:
        return StagePolicies(
            processing=FailurePolicy(str(raw.get("processing", "degrade")).lower()),
            metadata=FailurePolicy(str(raw.get("metadata", "degrade")).lower()),
        )
    except ValueError as exc:
        raise ConfigurationError(message=f"Invalid stage policy: {exc}") from exc


def _deep_merge(base: dict, overrides: dict) -> None:
    """Recursively merge overrides into base dict, mutating base in place."""
    for key, value in overrides.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
