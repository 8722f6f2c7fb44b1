"""
Centralized configuration management for PID Tagger.

Application settings are read from the environment (and an optional ``.env``
file). Pattern and tolerance settings are resolved separately into an
``ExtractionSettings`` object, which the extraction core receives per call.
"""

import json
from functools import lru_cache
from pathlib import Path
from typing import Optional, Dict, Any

from pydantic import Field, field_validator, ValidationError as PydanticValidationError
from pydantic_settings import BaseSettings

from ..exceptions import ConfigurationError
from ..models.settings import ExtractionSettings


class Settings(BaseSettings):
    """
    Centralized settings for PID Tagger.

    All configuration is loaded from environment variables prefixed with
    ``PID_TAGGER_`` with sensible defaults.
    """

    # === Application Settings ===
    app_name: str = Field(default="PID Tagger", description="Application name")
    app_version: str = Field(default="1.0.0", description="Application version")
    debug: bool = Field(default=False, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_file: Optional[str] = Field(default=None, description="Optional log file path")

    # === File Settings ===
    output_dir: Path = Field(default=Path("output"), description="Directory for exports")
    settings_file: Optional[Path] = Field(default=None, description="JSON file with patterns and tolerances")
    export_file_name: str = Field(default="P&ID_Tag_Export.xlsx", description="Default spreadsheet name")

    # === Logging Configuration ===
    @property
    def logging_config(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return {
            'level': self.log_level,
            'file': self.log_file,
            'format': '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        }

    @field_validator('log_level')
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of {valid_levels}")
        return v.upper()

    model_config = {
        "env_prefix": "PID_TAGGER_",
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore",
    }

    def extraction_settings(self) -> ExtractionSettings:
        """Resolve the pattern/tolerance configuration for this environment."""
        if self.settings_file:
            return load_extraction_settings(self.settings_file)
        return ExtractionSettings()


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once per application lifecycle.
    """
    return Settings()


def load_extraction_settings(path) -> ExtractionSettings:
    """
    Load patterns and tolerances from a JSON settings file.

    The file may hold either ``{"patterns": ..., "tolerances": ...}`` or a
    saved project document with a ``settings`` key. Legacy instrument patterns
    stored as a single string are migrated on load.
    """
    settings_path = Path(path)
    try:
        data = json.loads(settings_path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(f"Could not read settings file {settings_path}: {e}") from e

    if isinstance(data, dict) and isinstance(data.get("settings"), dict):
        data = data["settings"]
    if not isinstance(data, dict):
        raise ConfigurationError(f"Settings file {settings_path} must contain a JSON object")

    try:
        return ExtractionSettings.from_document(data)
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid settings in {settings_path}: {e}") from e
