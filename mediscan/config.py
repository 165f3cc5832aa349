from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    database_url: str = "sqlite:///./mediscan.db"
    app_env: str = "dev"
    app_host: str = "0.0.0.0"
    app_port: int = 8000
    allowed_origins: str = "http://localhost:3000"
    site_url: str = "http://localhost:3000"

    session_cookie_name: str = "session"
    session_ttl_days: int = 7
    password_hash_rounds: int = 29000
    # Pages are matched exactly, API routes by prefix.
    public_pages: list[str] = ["/", "/login", "/register", "/health"]
    public_api_prefixes: list[str] = ["/api/auth/login", "/api/auth/register"]

    openai_api_key: str | None = None
    llm_model: str = "gpt-4o-mini"
    enhancement_step_delay_seconds: float = 1.0
    email_delay_seconds: float = 1.0

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


settings = Settings()
