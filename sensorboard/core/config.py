#!/usr/bin/env python3
"""
sensorboard Server Configuration Management

Policy:
- YAML file holds server settings and the default InfluxDB endpoint.
- Blank default credentials are filled from the environment (.env supported):
    INFLUX_URL, INFLUX_TOKEN, INFLUX_ORG
- Admin token lives in <auth_dir>/admin_token
    PROD (test_mode: false): must exist, else startup fails
    DEV  (test_mode: true):  generated and logged if missing
"""

import logging
import os
import secrets
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field

logger = logging.getLogger("sensorboard.server")


class InfluxSettings(BaseModel):
    """Process-wide default time-series endpoint."""
    url: str = ""
    token: str = ""
    org: str = ""


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3100
    log_level: str = "INFO"
    # File paths - explicit configuration
    auth_dir: str = "./auth"
    db_path: str = "./sensorboard.db"
    # Default endpoint used when an organization has no url/token of its own
    influx: InfluxSettings = Field(default_factory=InfluxSettings)
    # Query defaults
    default_measurement: str = "home_pt"
    value_field: str = "value"
    reserved_bucket_prefix: str = "_"
    max_readings: int = 100000
    # Behavior controls
    test_mode: bool = False           # Only controls admin token fallback
    mock_data_fallback: bool = False  # Serve synthetic readings when every bucket fails


def apply_env_defaults(cfg: ServerConfig) -> ServerConfig:
    """Fill blank default influx settings from the environment."""
    load_dotenv()
    influx = cfg.influx.model_copy(update={
        "url": cfg.influx.url or os.environ.get("INFLUX_URL", ""),
        "token": cfg.influx.token or os.environ.get("INFLUX_TOKEN", ""),
        "org": cfg.influx.org or os.environ.get("INFLUX_ORG", ""),
    })
    return cfg.model_copy(update={"influx": influx})


def load_config_from(path: str) -> ServerConfig:
    """Load server configuration from YAML file."""
    with open(path, "r") as f:
        data = yaml.safe_load(f) or {}
    return apply_env_defaults(ServerConfig(**data))


def admin_token_path(cfg: ServerConfig) -> Path:
    return Path(cfg.auth_dir) / "admin_token"


def read_admin_token(path: Path) -> Optional[str]:
    """Read admin token from file, return None if not readable."""
    try:
        with open(path, "r") as f:
            tok = f.read().strip()
            return tok or None
    except OSError as e:
        logger.debug("admin token file not readable (%s): %s", path, e)
        return None


def resolve_admin_token(cfg: ServerConfig) -> str:
    """
    Return the admin token for Basic Auth on admin routes.

    Raises RuntimeError in production mode when the token file is missing.
    """
    path = admin_token_path(cfg)
    token = read_admin_token(path)
    if token:
        return token

    if not cfg.test_mode:
        raise RuntimeError(f"admin token not found at {path} (required when test_mode is false)")

    token = secrets.token_urlsafe(24)
    logger.warning(f"test mode: generated ephemeral admin token: {token}")
    return token
