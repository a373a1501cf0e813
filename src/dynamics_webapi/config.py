"""
Configuration management for DynamicsWebApi
"""

from pathlib import Path
from typing import Any, Literal, Optional

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Client-wide defaults loaded from keyword arguments or environment variables"""

    # Web API endpoint; derived from server_url when not given
    web_api_url: str = ""
    server_url: Optional[str] = None
    web_api_version: str = "9.1"

    # Request defaults (per-request fields take precedence)
    return_representation: Optional[bool] = None
    include_annotations: Optional[str] = None
    max_page_size: Optional[int] = None
    use_entity_names: bool = False
    timeout: Optional[float] = None

    # Implementation selection
    transport: Literal["httpx", "mock"] = "httpx"
    log_level: str = "info"

    model_config = SettingsConfigDict(
        env_prefix="DYNAMICS_WEBAPI_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    @model_validator(mode="before")
    @classmethod
    def _derive_web_api_url(cls, data: Any) -> Any:
        if isinstance(data, dict) and not data.get("web_api_url") and data.get("server_url"):
            version = data.get("web_api_version") or "9.1"
            data = dict(data)
            data["web_api_url"] = f"{str(data['server_url']).rstrip('/')}/api/data/v{version}/"
        return data

    @model_validator(mode="after")
    def _check_web_api_url(self) -> "Settings":
        if self.web_api_url and not self.web_api_url.endswith("/"):
            raise ValueError("web_api_url must end with '/'")
        return self


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """Get application settings singleton"""
    global _settings
    if _settings is None:
        load_dotenv_if_exists()

        import structlog
        logger = structlog.get_logger(__name__)

        try:
            _settings = Settings()
            logger.info("Settings loaded", web_api_url=_settings.web_api_url, transport=_settings.transport)
        except Exception as e:
            raise ValueError("Invalid DynamicsWebApi configuration. Check your environment or .env file.") from e
    return _settings


def set_settings(settings: Optional[Settings]) -> None:
    """Replace the settings singleton (``None`` forces a reload)"""
    global _settings
    _settings = settings


def load_dotenv_if_exists() -> None:
    """Load .env file if it exists"""
    from dotenv import load_dotenv

    env_path = Path(".env")
    if env_path.exists():
        load_dotenv(env_path)
    else:
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            env_path = parent / ".env"
            if env_path.exists():
                load_dotenv(env_path)
                break
