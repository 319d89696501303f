from __future__ import annotations

from pathlib import Path

from pydantic_settings import BaseSettings

DATA_DIR = Path(__file__).parent.parent / "data"


class Settings(BaseSettings):
    """Central configuration loaded from environment / .env file."""

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    # API
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    api_token: str = ""  # empty = no auth (dev mode)

    # Logging
    log_level: str = "INFO"

    # Check sources (built-in names, in collection order)
    sources: list[str] = ["core"]
    load_plugins: bool = True  # also load the healthdesk.sources entry-point group
    disabled_checks: list[str] = []  # check slugs to skip

    # Host application flags read by the core checks
    debug: bool = False
    site_name: str = "healthdesk"  # title of exported reports

    # Snapshot cache
    cache_db_path: str = str(DATA_DIR / "cache.db")
    cache_ttl: int = 900  # seconds; 0 disables caching

    # Report client
    client_base_url: str = "http://127.0.0.1:8000"
    client_timeout: float = 30.0
    client_state_file: str = str(DATA_DIR / "client_state.json")


settings = Settings()
