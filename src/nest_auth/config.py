from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).parent.parent.parent / ".env"),
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = False
    log_level: str = "INFO"
    log_json: bool = False

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Database
    database_url: str
    db_echo: bool = False

    # JWT
    jwt_access_token_secret: str
    jwt_refresh_token_secret: str
    jwt_algorithm: str = "HS256"
    jwt_access_token_expiration_time_ms: int = 3_600_000  # 60 minutes
    jwt_refresh_token_expiration_time_ms: int = 604_800_000  # 7 days

    # API keys
    api_key: str
    api_key_hash_secret: str
    api_key_header: str = "Frankenstack-Api-Key"

    # Frontend
    auth_ui_redirect_url: str = "http://localhost:3000"

    # Google OAuth
    google_auth_client_id: str = ""
    google_auth_client_secret: str = ""
    google_auth_redirect_uri: str = "http://localhost:8000/api/v1/auth/google/callback"

    # Email (Resend)
    resend_api_key: str = ""
    no_reply_email: str = "no-reply@example.com"

    # One-off tokens
    password_reset_token_expire_minutes: int = 60
    email_verification_token_expire_hours: int = 24
    oauth_redirect_token_expire_seconds: int = 120

    @property
    def is_secure_environment(self) -> bool:
        return self.app_env.lower() in ("production", "staging")


settings = Settings()
