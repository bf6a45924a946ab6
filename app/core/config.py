from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict

from app.core.doppler import load_doppler_secrets


# Load Doppler secrets into environment BEFORE Settings is instantiated
load_doppler_secrets()


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Supabase
    supabase_url: str = ""
    supabase_publishable_key: str = ""
    supabase_secret_key: str = ""

    # Server
    environment: str = "development"
    base_url: str = "http://localhost:8000"
    cors_origins: list[str] = ["http://localhost:3000"]

    # Email (Resend)
    resend_api_key: str = ""
    resend_from_email: str = "onboarding@resend.dev"
    web_app_url: str = "http://localhost:3000"

    # Messages returned to the UI ("en" or "it")
    message_locale: str = "en"

    # Email verification codes
    otp_ttl_minutes: int = 10
    otp_length: int = 6
    otp_max_attempts: int = 5  # Wrong guesses before the code is deleted

    # Reward codes
    reward_code_length: int = 10
    code_generation_attempts: int = 5

    # Ledger
    balance_update_attempts: int = 5
    recent_activity_limit: int = 10


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
