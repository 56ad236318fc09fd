"""Application configuration using pydantic-settings."""

from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict

# whoish_risk/core -> whoish_risk -> backend root
_BACKEND_DIR = Path(__file__).resolve().parent.parent.parent


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Application
    app_name: str = "WHO/ISH CVD Risk"
    debug: bool = False
    log_level: str = "INFO"

    # Reference chart assets
    data_dir: Path = _BACKEND_DIR / "data"
    who_2019_table_file: str = "WHO_2019_Scores.csv"
    who_ish_table_file: str = "WHO_ISH_Scores.csv"

    # API
    api_v1_prefix: str = "/api/v1"
    max_batch_size: int = 10000


settings = Settings()
