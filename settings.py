# settings.py
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LedgerSettings(BaseSettings):
    """Runtime configuration, read from LEDGER_* environment variables or .env."""

    model_config = SettingsConfigDict(
        env_prefix="LEDGER_",
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
    )

    data_file: Path = Field(
        Path("ledger_data.json"),
        description="JSON key-value file holding the persisted ledger.",
    )
    storage_key: str = Field(
        "transactions",
        min_length=1,
        description="Key under which the transaction array is stored.",
    )
    max_note_length: int = Field(50, ge=1, description="Notes are truncated to this length.")
    currency_symbol: str = Field("¥", description="Prefix used when formatting amounts.")
    export_directory: Path = Field(Path("."), description="Where CLI exports are written.")
    log_level: str = Field("INFO", description="Root logger level.")

    @field_validator("data_file", "export_directory", mode="before")
    @classmethod
    def _expand_path(cls, value):
        return Path(value).expanduser()

    @field_validator("log_level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache()
def get_settings() -> LedgerSettings:
    return LedgerSettings()
