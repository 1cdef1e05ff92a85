"""
Data models for soft delete enrollment and record state.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator


class LifecycleState(str, Enum):
    """Deletion state of a single record."""

    ACTIVE = "active"
    SOFT_DELETED = "soft_deleted"
    GONE = "gone"  # Removed from storage; terminal


class ParanoiaOptions(BaseModel):
    """Per-model soft delete options, fixed when the model is enrolled."""

    model_config = ConfigDict(frozen=True)

    column: str = Field(
        "deleted_at", description="Attribute holding the deletion timestamp"
    )

    @field_validator("column")
    @classmethod
    def validate_column(cls, v: str) -> str:
        """Ensure the marker names a usable attribute."""
        if not v.isidentifier():
            raise ValueError(f"'{v}' is not a valid attribute name")
        return v
