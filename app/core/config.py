"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from environment variables or .env file."""
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")

    # Application
    app_name: str = "Freshware"
    debug: bool = False
    log_file: str = ""  # Empty logs to stderr

    # Server
    allowed_origins: str = "*"  # Comma-separated origins, or "*" for all

    # Database
    database_url: str = "sqlite:///./freshware.db"

    # Auth backend (GoTrue-compatible, e.g. Supabase)
    supabase_url: str = "http://localhost:54321"
    supabase_anon_key: str = ""
    auth_timeout_seconds: float = 10.0

    # Session guard
    protected_prefixes: list[str] = ["/dashboard", "/admin"]
    login_path: str = "/login"
    access_cookie_name: str = "sb-access-token"
    refresh_cookie_name: str = "sb-refresh-token"
    session_cookie_max_age: int = 60 * 60 * 24 * 400
    session_cookie_secure: bool = True
    session_refresh_margin_seconds: int = 60

    # YouCanBookMe webhook
    ycbm_provider: str = "youcanbookme"
    ycbm_secret_header: str = "x-ycbm-secret"


settings = Settings()
