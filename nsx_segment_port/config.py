from pathlib import Path
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_version() -> str:
    version_path = Path(__file__).resolve().parent / "VERSION"
    try:
        return version_path.read_text().strip()
    except FileNotFoundError:
        return "0.1.0"


# Sent on every request so manager audit logs can attribute the calls
USER_AGENT = f"nsx-segment-port/{_load_version()}"


class Settings(BaseSettings):
    """Client configuration using Pydantic settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # Application
    APP_NAME: str = "nsx-segment-port"
    APP_VERSION: str = _load_version()

    # ── NSX Manager endpoint ───────────────────────────────────────────
    # Unset values fall back to the provider defaults (with a warning).
    NSX_HOST: Optional[str] = None
    NSX_USERNAME: Optional[str] = None
    NSX_PASSWORD: Optional[str] = None
    NSX_INSECURE: Optional[bool] = None  # http:// default scheme + no TLS verify

    # Transport
    NSX_TIMEOUT_SECONDS: float = 30.0

    # Fail login when the manager returns 200 without token and cookie
    NSX_STRICT_AUTH: bool = False

    # Logging
    NSX_DEBUG: bool = False


settings = Settings()
