"""Application settings loaded from environment variables via pydantic-settings.

# ─── HOW SETTINGS WORK (Junior Developer Guide) ───────────────────────
#
# Values are read from TWO sources (in priority order):
#
#   1. **Environment variables** -- e.g. SUPABASE_URL=https://x.supabase.co
#   2. **.env file** -- key=value lines in the project root .env file
#
# Field `supabase_service_key` maps to env var `SUPABASE_SERVICE_KEY`.
# Defaults apply when neither source sets a field, so a fresh checkout
# runs fully offline: SQLite records, filesystem blobs, local processing.
# ──────────────────────────────────────────────────────────────────────
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """notebook-ingest application settings.

    Environment variables override defaults. Loaded from .env file when present.
    """

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # === Backends ===
    record_store: str = "sqlite"  # memory | sqlite | supabase
    sqlite_db_path: str = "data/notebooks.db"
    blob_storage: str = "local"  # local | supabase
    local_storage_root: str = "data/blobs"
    content_processor: str = "local"  # local | edge_function

    # === Hosted platform ===
    supabase_url: str = ""
    supabase_service_key: str = ""
    supabase_bucket: str = "sources"

    # === Notebook metadata generation ===
    # Empty URL = offline SimpleMetadataGenerator.
    notebook_generation_url: str = ""
    notebook_generation_auth: str = ""

    # === Pipeline ===
    max_file_size_bytes: int = 52_428_800
    batch_gate_delay_seconds: float = 0.15
    max_concurrent_items: int = 8
    http_timeout_seconds: float = 30.0

    # === App Config ===
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    app_env: str = "development"
    log_level: str = "INFO"

    def get_available_backends(self) -> list[str]:
        """Return the hosted backends that have credentials configured."""
        backends: list[str] = []
        if self.supabase_url and self.supabase_service_key:
            backends.append("supabase")
        if self.notebook_generation_url:
            backends.append("notebook-generation")
        return backends
