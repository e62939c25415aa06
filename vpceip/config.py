"""vpceip configuration — loads from environment and a local .env file."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Adapter settings — populated from VPCEIP_* env vars or .env file."""

    app_name: str = "vpceip"
    app_version: str = "0.1.0"
    debug: bool = False

    # Identity (Keystone v3). Either a pre-issued token or user/password.
    auth_url: str = ""
    username: str = ""
    password: str = ""
    domain_name: str = ""
    project_id: str = ""
    project_name: str = ""
    token: Optional[str] = None
    insecure: bool = False

    # Endpoint selection
    region: str = ""
    interface: str = "public"
    vpc_endpoint: str = ""

    # Polling, in seconds
    create_timeout: float = 600.0
    delete_timeout: float = 600.0
    poll_delay: float = 5.0
    poll_min_timeout: float = 3.0

    log_dir: Path = Path.home() / ".vpceip" / "logs"

    model_config = {"env_prefix": "VPCEIP_", "env_file": ".env"}


settings = Settings()
