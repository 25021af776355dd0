from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    database_url: str = "postgresql+psycopg://postgres:postgres@db:5432/billify"
    app_env: str = "dev"
    app_cors_origins: str = "*"
    # Upper bound for a single statement against the store.
    query_timeout_seconds: float = 5.0
    # business_number | customer_date
    invoice_uniqueness: str = "business_number"
    auth_secret: str = "change-me"
    auth_cookie_name: str = "billify_session"
    auth_session_hours: float = 72
    currency_symbol: str = "Rs."
    pdf_author: str = "Billify"


settings = Settings()
