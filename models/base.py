"""
Base model classes.
"""

from pydantic import BaseModel, ConfigDict


class FinderModel(BaseModel):
    """Shared config for all domain models."""
    model_config = ConfigDict(
        validate_assignment=True,
        extra="ignore",  # Ignore unknown fields from oracle output and older files
        str_strip_whitespace=True,
    )
