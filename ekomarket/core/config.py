"""Application configuration"""

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # API Configuration
    API_V1_PREFIX: str = "/api/v1"
    PROJECT_NAME: str = "EkoMarket"
    VERSION: str = "1.0.0"
    DESCRIPTION: str = "Direct-to-consumer marketplace for local producers"

    # Database
    DATABASE_URL: str = Field(default="sqlite+aiosqlite:///./ekomarket.db")

    # Payments
    PAYMENT_GATEWAY: str = Field(default="fake")  # stripe | fake
    STRIPE_SECRET_KEY: str = Field(default="")
    STRIPE_WEBHOOK_SECRET: str = Field(default="whsec_local")
    WEBHOOK_TOLERANCE_SECONDS: int = Field(default=300)
    GATEWAY_TIMEOUT_SECONDS: float = Field(default=10.0)
    DEFAULT_CURRENCY: str = Field(default="pln")

    # Carbon footprint heuristic
    CARBON_EMISSION_FACTOR: float = Field(default=0.12)  # kgCO2 per km per kg
    CARBON_LOCAL_MULTIPLIER: float = Field(default=0.7)
    CARBON_ECO_MULTIPLIER: float = Field(default=0.8)
    LOCAL_PRODUCTION_RADIUS_KM: float = Field(default=50.0)
    PIECE_WEIGHT_KG: float = Field(default=0.5)

    # Pagination
    DEFAULT_PAGE_LIMIT: int = Field(default=10)
    MAX_PAGE_LIMIT: int = Field(default=100)

    # CORS
    ALLOWED_HOSTS: list[str] = Field(default=["http://localhost:3000"])

    # Development
    DEBUG: bool = Field(default=False)
    TESTING: bool = Field(default=False)
    LOG_LEVEL: str = Field(default="INFO")


settings = Settings()
