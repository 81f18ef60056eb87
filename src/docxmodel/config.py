"""Engine settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    dpi: int = 96

    # Caps against zip bombs; exceeding any of them aborts the parse.
    max_package_bytes: int = 200 * 1024 * 1024
    max_part_bytes: int = 50 * 1024 * 1024
    max_parts: int = 5000

    fallback_font: str = "Calibri"
    default_font_size: float = 11.0
    default_lang: str = "en-US"

    log_level: str = "WARNING"

    model_config = SettingsConfigDict(env_prefix="DOCXMODEL_", env_file=".env", extra="ignore")
