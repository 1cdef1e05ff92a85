"""
Configuration module for Paranoia Toolkit.

Provides centralized configuration management for soft delete behaviour.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Union, get_args, get_origin

import pytz
from pydantic import BaseModel, Field, field_validator


class ParanoiaConfig(BaseModel):
    """Central configuration for soft delete features.

    Values apply process-wide. A model's marker column is read from this
    configuration once, when the model is enrolled, and never changes after.

    Configuration Sources (in order of precedence):
        1. Programmatic settings (highest priority)
        2. Environment variables (PARANOIA_ prefix)
        3. Default values (lowest priority)

    Example:
        >>> config = ParanoiaConfig(timezone="Europe/Berlin")
        >>> set_config(config)

        Loading from environment:

        >>> import os
        >>> os.environ['PARANOIA_TIMEZONE'] = 'UTC'
        >>> config = ParanoiaConfig.from_env()

    Environment Variables:
        - PARANOIA_DEFAULT_COLUMN
        - PARANOIA_TIMEZONE
        - PARANOIA_INCLUDE_DELETED_OPTION
        - PARANOIA_LOG_TRANSITIONS
        - PARANOIA_DATABASE_URL
    """

    default_column: str = Field(
        "deleted_at", description="Marker column used when a model does not name one"
    )
    timezone: str = Field("UTC", description="Timezone for deletion timestamps")
    include_deleted_option: str = Field(
        "include_deleted",
        description="Execution option that disables the default deleted-row filter",
    )
    log_transitions: bool = Field(
        True, description="Log soft delete, hard delete and restore transitions"
    )
    database_url: Optional[str] = Field(
        None, description="Database URL used by the command-line interface"
    )

    @field_validator("default_column", "include_deleted_option")
    @classmethod
    def validate_identifier(cls, v: str) -> str:
        """Ensure names are usable as attribute names."""
        if not v.isidentifier():
            raise ValueError(f"'{v}' is not a valid attribute name")
        return v

    @field_validator("timezone")
    @classmethod
    def validate_timezone(cls, v: str) -> str:
        """Ensure the timezone is known to pytz."""
        try:
            pytz.timezone(v)
        except pytz.UnknownTimeZoneError:
            raise ValueError(f"Unknown timezone: {v}")
        return v

    def now(self) -> datetime:
        """Return the current time in the configured timezone."""
        return datetime.now(pytz.timezone(self.timezone))

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return self.model_dump()

    @classmethod
    def from_env(cls, prefix: str = "PARANOIA_") -> "ParanoiaConfig":
        """
        Load configuration from environment variables.

        Args:
            prefix: Prefix for environment variables

        Returns:
            Configuration instance
        """
        import os

        config_dict: Dict[str, Any] = {}

        for field_name, field_info in cls.model_fields.items():
            env_var = f"{prefix}{field_name.upper()}"
            if env_var not in os.environ:
                continue
            value = os.environ[env_var]

            field_type = field_info.annotation
            # Optional[T] -> T
            if get_origin(field_type) is Union:
                args = get_args(field_type)
                field_type = next((arg for arg in args if arg is not type(None)), str)

            if field_type == bool:
                config_dict[field_name] = value.lower() in ("true", "1", "yes", "on")
            else:
                config_dict[field_name] = value

        return cls.model_validate(config_dict)


# Global configuration instance
_config: Optional[ParanoiaConfig] = None


def get_config() -> ParanoiaConfig:
    """
    Get the global configuration instance.

    Returns:
        Global configuration
    """
    global _config

    if _config is None:
        _config = ParanoiaConfig.from_env()

    return _config


def set_config(config: ParanoiaConfig) -> None:
    """
    Set the global configuration instance.

    Args:
        config: Configuration to set
    """
    global _config
    _config = config


def configure(**kwargs: Any) -> ParanoiaConfig:
    """
    Configure the toolkit with keyword arguments.

    Args:
        **kwargs: Configuration parameters

    Returns:
        Updated configuration
    """
    global _config

    if _config is None:
        _config = ParanoiaConfig(**kwargs)
    else:
        config_dict = _config.to_dict()
        config_dict.update(kwargs)
        _config = ParanoiaConfig(**config_dict)

    return _config
