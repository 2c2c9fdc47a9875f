"""Application configuration."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    data_dir: Path = Path("data/articles")
    debug: bool = False
    app_title: str = "PlainWiki"
    index_title: str = "index.md"
    secret_key: str = "plainwiki-development-key"
    default_language: str = "en"

    # External filter used for *.mmd6 articles
    multimarkdown_command: str = "multimarkdown"
    multimarkdown_timeout: float | None = None

    max_query_length: int = 256

    host: str = "127.0.0.1"
    port: int = 8000
    log_level: str = "info"

    model_config = SettingsConfigDict(
        env_prefix="PLAINWIKI_",
        env_file=".env",
        env_file_encoding="utf-8",
    )
