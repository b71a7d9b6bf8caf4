"""Configuration: pydantic-settings environment values plus YAML defaults."""

from notebook_ingest.config.loader import load_config, stage_policies_from_config
from notebook_ingest.config.settings import Settings

__all__ = ["Settings", "load_config", "stage_policies_from_config"]
