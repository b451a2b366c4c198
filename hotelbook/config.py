from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from functools import lru_cache
from typing import List


class Settings(BaseSettings):
    # Environment
    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Database - PostgreSQL for production, SQLite for development
    database_url: str = Field(
        default="sqlite:///./hotelbook.db",
        alias="DATABASE_URL"
    )

    # Security
    secret_key: str = Field(default="dev-secret-key-at-least-32-characters-long-for-development", alias="SECRET_KEY")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = Field(default=60, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    # Default admin account created on startup
    admin_username: str = Field(default="admin", alias="ADMIN_USERNAME")
    admin_email: str = Field(default="admin@hotelbook.com", alias="ADMIN_EMAIL")
    admin_password: str = Field(default="Admin123!", alias="ADMIN_PASSWORD")

    # CORS - Frontend URLs (comma-separated)
    allowed_origins: str = Field(
        default="http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173",
        alias="ALLOWED_ORIGINS"
    )

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_json: bool = Field(default=False, alias="LOG_JSON")

    # ==============================================
    # Booking rules
    # ==============================================
    reference_prefix: str = Field(default="BK", alias="REFERENCE_PREFIX")
    reference_max_attempts: int = 5

    # Fees applied on top of nightly price x nights
    cleaning_fee: float = Field(default=30.0, alias="CLEANING_FEE")
    service_fee: float = Field(default=25.0, alias="SERVICE_FEE")
    tax_rate: float = Field(default=0.12, alias="TAX_RATE")

    max_advance_days: int = Field(default=730, alias="MAX_ADVANCE_DAYS")
    max_stay_nights: int = Field(default=365, alias="MAX_STAY_NIGHTS")
    allow_past_check_in: bool = Field(default=False, alias="ALLOW_PAST_CHECK_IN")

    # Longest range any calendar read or write may span
    max_calendar_nights: int = Field(default=1095, alias="MAX_CALENDAR_NIGHTS")

    # How many times a lost reservation race re-checks availability
    booking_conflict_retries: int = Field(default=1, alias="BOOKING_CONFLICT_RETRIES")

    seed_demo_data: bool = Field(default=False, alias="SEED_DEMO_DATA")

    @field_validator('secret_key')
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate SECRET_KEY is strong enough"""
        if not v:
            raise ValueError("SECRET_KEY is required and cannot be empty")
        if len(v) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long")
        return v

    @field_validator('tax_rate')
    @classmethod
    def validate_tax_rate(cls, v: float) -> float:
        if v < 0 or v > 1:
            raise ValueError("TAX_RATE must be between 0 and 1")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"

    @property
    def cors_origins(self) -> List[str]:
        """
        Parse allowed origins from comma-separated string.
        Returns a list suitable for CORSMiddleware.
        """
        origins = []
        seen = set()
        for origin in self.allowed_origins.split(","):
            origin = origin.strip().rstrip("/")
            if origin and origin not in seen:
                seen.add(origin)
                origins.append(origin)

        return origins or ["http://localhost:5173"]

    class Config:
        env_file = ".env"
        extra = "ignore"
        populate_by_name = True


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()


settings = get_settings()
