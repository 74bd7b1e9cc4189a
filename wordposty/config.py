"""WordPosty configuration — loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_prefix": "WORDPOSTY_", "env_file": ".env"}

    # External service API keys
    perplexity_api_key: str = ""
    anthropic_api_key: str = ""
    google_api_key: str = ""
    jina_api_key: str = ""

    # Default publishing site (application password auth)
    wordpress_url: str = ""
    wordpress_username: str = ""
    wordpress_app_password: str = ""

    # Models
    research_model: str = "sonar"
    writer_model: str = "claude-sonnet-4-20250514"
    image_model: str = "imagen-4.0-generate-preview-06-06"

    # Rate limits, requests per window
    research_rate_limit: int = 20
    writer_rate_limit: int = 50
    default_rate_limit: int = 100
    rate_limit_window_seconds: float = 60.0
    rate_limit_cleanup_seconds: float = 300.0

    # Database
    database_path: str = "wordposty.db"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["http://localhost:3000"]
    log_level: str = "INFO"

    @property
    def has_default_site(self) -> bool:
        return bool(
            self.wordpress_url and self.wordpress_username and self.wordpress_app_password
        )


settings = Settings()
