"""Configuration for the travel expense MCP server."""

from __future__ import annotations

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from .auth import Credentials


def _secret_value(value: SecretStr | str | None) -> str:
    if value is None:
        return ""
    if isinstance(value, SecretStr):
        return value.get_secret_value()
    return str(value)


class Settings(BaseSettings):
    """Runtime settings loaded from environment."""

    concur_access_token: SecretStr = SecretStr("")
    concur_refresh_token: SecretStr = SecretStr("")
    concur_client_id: str = ""
    concur_client_secret: SecretStr = SecretStr("")
    concur_base_url: str = "https://us2.api.concursolutions.com"
    concur_token_url: str = "https://us.api.concursolutions.com/oauth2/v0/token"

    tripit_api_key: str = ""
    tripit_api_secret: SecretStr = SecretStr("")
    tripit_access_token: SecretStr = SecretStr("")
    tripit_access_token_secret: SecretStr = SecretStr("")
    tripit_base_url: str = "https://api.tripit.com"

    mcp_api_token: SecretStr = SecretStr("")
    sentry_dsn: str | None = None
    environment: str = "development"
    port: int = 3000
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    def concur_credentials(self) -> Credentials:
        return Credentials(
            access_token=_secret_value(self.concur_access_token).strip() or None,
            refresh_token=_secret_value(self.concur_refresh_token).strip() or None,
            client_id=self.concur_client_id.strip() or None,
            client_secret=_secret_value(self.concur_client_secret).strip() or None,
        )

    @property
    def tripit_configured(self) -> bool:
        return bool(
            self.tripit_api_key.strip()
            and _secret_value(self.tripit_api_secret).strip()
            and _secret_value(self.tripit_access_token).strip()
            and _secret_value(self.tripit_access_token_secret).strip()
        )
