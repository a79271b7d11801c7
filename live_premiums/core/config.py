import logging

from pydantic import ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    port: int = 3000
    api_host: str = "0.0.0.0"
    environment: str = "development"
    log_level: str = "INFO"

    nse_base_url: str = "https://www.nseindia.com"
    nse_option_chain_path: str = "/api/option-chain-indices"
    nse_symbol: str = "NIFTY"

    cache_ttl_seconds: float = 9.0
    refresh_interval_seconds: float = 10.0
    request_timeout_seconds: float = 10.0
    background_refresh: bool = True

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @field_validator("cache_ttl_seconds", "refresh_interval_seconds", "request_timeout_seconds")
    @classmethod
    def must_be_positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("must be greater than zero")
        return value


try:
    settings = Settings()
except ValidationError as e:
    logger.error(f"Error loading settings: {e}")
    raise
