"""Application settings."""

from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 8790
    debug: bool = False
    config_path: Path = Path.home() / ".switchproxy" / "proxy-config.json"
    marker_path: Path = Path.home() / ".switchproxy-auth"
    sudoers_path: Path = Path("/etc/sudoers.d/switchproxy")
    networksetup_path: str = "/usr/sbin/networksetup"
    recent_elevation_seconds: float = 30.0
    elevation_timeout: float = 30.0
    exec_timeout: float = 60.0
    # Install the sudoers grant instead of warming the session cache
    prefer_persistent_grant: bool = False

    model_config = {"env_prefix": "SWITCHPROXY_"}


settings = Settings()
