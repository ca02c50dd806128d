from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    ENV: str = "local"
    APP_NAME: str = "Rentwise Ledger API"
    # Comma-separated origins for CORS (e.g. https://rentwise.ph,https://admin.rentwise.ph). If empty, uses localhost defaults.
    CORS_ORIGINS: str = ""
    LOG_LEVEL: str = "INFO"

    DATABASE_URL: str

    @field_validator("DATABASE_URL", mode="after")
    @classmethod
    def normalize_database_url(cls, v: str) -> str:
        """Render and others give postgres://; SQLAlchemy expects postgresql+psycopg2://."""
        if v and v.startswith("postgres://"):
            return "postgresql+psycopg2://" + v[11:]
        return v
    REDIS_URL: str = "redis://localhost:6379/0"

    # Ledger
    EXTENSION_PAYMENT_DEADLINE_HOURS: int = 24
    EXTENSION_EXPIRY_INTERVAL_SECONDS: float = 3600.0  # hourly, same cadence as booking auto-cancel
    RECONCILE_INTERVAL_SECONDS: float = 86400.0

    # Return charge rates in pesos, used until an admin saves a FeeSchedule row.
    # Override with JSON, e.g. RETURN_FEES='{"damage_fee": 8000}'
    RETURN_FEES: dict[str, int] = {
        "gas_level_fee": 500,  # per level (High, Mid, Low) below the release level
        "equipment_loss_fee": 500,  # per missing item
        "damage_fee": 5000,  # minor; major is three times this
        "cleaning_fee": 200,
        "stain_removal_fee": 500,
    }


settings = Settings()
