"""
Base models shared by every notemind model.
"""

from pydantic import BaseModel, ConfigDict


class NotemindBaseModel(BaseModel):
    """
    Base model for all notemind models.
    Common configuration and enhanced validation.
    """

    model_config = ConfigDict(
        # Validate values on assignment
        validate_assignment=True,
        # Use enum values, defaults included
        use_enum_values=True,
        validate_default=True,
        # Prevent extra fields
        extra="forbid",
        json_schema_extra={"additionalProperties": False},
    )


class FrozenModel(NotemindBaseModel):
    """
    Immutable variant.

    Documents and search results are shared between the cache, the
    strategies and callers; changes go through ``model_copy(update=...)``.
    """

    model_config = ConfigDict(
        use_enum_values=True,
        validate_default=True,
        extra="forbid",
        frozen=True,
    )


def clamp_unit(value: float) -> float:
    """Clamps a score to [0, 1]."""
    if value != value:  # NaN
        return 0.0
    return max(0.0, min(1.0, float(value)))
