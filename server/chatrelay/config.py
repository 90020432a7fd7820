from functools import lru_cache
from pydantic import BaseModel, ConfigDict
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


class ProviderConfig(BaseModel):
    """Connection details for one upstream provider, fixed at startup."""

    model_config = ConfigDict(frozen=True)

    api_key: Optional[str] = None
    model_name: str
    endpoint_url: str


class Settings(BaseSettings):
    port: int = 3000
    # Comma separated; "*" allows any origin
    allowed_origins: str = "*"
    log_level: str = "INFO"

    openai_api_key: Optional[str] = None
    openai_model: str = "gpt-4o-mini"
    openai_base_url: str = "https://api.openai.com/v1"

    google_api_key: Optional[str] = None
    google_model: str = "models/text-bison-001"
    google_base_url: str = "https://generativelanguage.googleapis.com/v1beta2"

    # Unset means provider calls may wait indefinitely
    provider_timeout_seconds: Optional[float] = None

    # pydantic-settings v2 style config: load env from both ../.env (repo root) and .env
    model_config = SettingsConfigDict(
        env_prefix="",
        case_sensitive=False,
        env_file=("../.env", ".env"),
        extra="ignore",  # ignore env vars not defined as fields
    )

    @property
    def origins(self) -> List[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    def openai(self) -> ProviderConfig:
        return ProviderConfig(
            api_key=self.openai_api_key or None,
            model_name=self.openai_model,
            endpoint_url=self.openai_base_url.rstrip("/"),
        )

    def google(self) -> ProviderConfig:
        return ProviderConfig(
            api_key=self.google_api_key or None,
            model_name=self.google_model,
            endpoint_url=self.google_base_url.rstrip("/"),
        )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
