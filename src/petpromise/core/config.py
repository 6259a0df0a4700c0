from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):

    ACCESS_TOKEN_SECRET: str
    TOKEN_TTL_HOURS: int = 3

    STRIPE_SECRET_KEY: str
    PAYMENT_CURRENCY: str = "usd"
    MINIMUM_DONATION_CENTS: int = 50

    AWS_REGION: str
    AWS_PROFILE: str | None = None
    DYNAMODB_ENDPOINT_URL: str | None = None
    USERS_TABLE_NAME: str
    PETS_TABLE_NAME: str
    ADOPTION_REQUESTS_TABLE_NAME: str
    CAMPAIGNS_TABLE_NAME: str
    DONATIONS_TABLE_NAME: str

    LOG_LEVEL: str = "INFO"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

@lru_cache()
def get_settings() -> Settings:
    return Settings()
