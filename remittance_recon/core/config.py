"""
Centralized configuration management.
All environment variables and settings are defined here.
"""
from typing import Optional

from pydantic_settings import BaseSettings
from pydantic import Field, field_validator


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""
    
    # Application
    app_name: str = Field(default="Remittance Reconciliation", alias="APP_NAME")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    
    # Regions
    default_region: str = Field(default="TR", alias="DEFAULT_REGION")
    regions_file: Optional[str] = Field(default=None, alias="REGIONS_FILE")
    
    # Processing
    max_workers: int = Field(default=1, alias="MAX_WORKERS")
    hint_match_threshold: float = Field(default=0.85, alias="HINT_MATCH_THRESHOLD")
    balance_tolerance: float = Field(default=0.01, alias="BALANCE_TOLERANCE")
    
    # Shortage invoice matching
    match_amount_tolerance: float = Field(default=0.8, alias="MATCH_AMOUNT_TOLERANCE")
    match_date_offset_days: int = Field(default=33, alias="MATCH_DATE_OFFSET_DAYS")
    
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v_upper
    
    @field_validator("default_region")
    @classmethod
    def validate_default_region(cls, v):
        """Region codes are matched case-insensitively; store upper-case."""
        v = v.strip().upper()
        if not v:
            raise ValueError("Default region must not be empty")
        return v
    
    @field_validator("max_workers")
    @classmethod
    def validate_workers(cls, v):
        """Validate worker pool size."""
        if v < 1:
            raise ValueError("Max workers must be at least 1")
        if v > 64:
            raise ValueError("Max workers should not exceed 64")
        return v
    
    @field_validator("hint_match_threshold")
    @classmethod
    def validate_threshold(cls, v):
        """Validate similarity threshold is a ratio."""
        if not (0.0 <= v <= 1.0):
            raise ValueError("Hint match threshold must be between 0 and 1")
        return v
    
    @field_validator("balance_tolerance")
    @classmethod
    def validate_tolerance(cls, v):
        if v < 0:
            raise ValueError("Balance tolerance must not be negative")
        return v
    
    @field_validator("match_amount_tolerance", "match_date_offset_days")
    @classmethod
    def validate_matching(cls, v):
        """Validate matching windows are not negative."""
        if v < 0:
            raise ValueError("Matching tolerance and date offset must not be negative")
        return v
    
    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
_settings: Optional[Settings] = None


def get_settings() -> Settings:
    """
    Get application settings singleton.
    
    Returns:
        Settings instance
    """
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reset_settings() -> None:
    """Reset settings singleton (useful for testing)."""
    global _settings
    _settings = None
