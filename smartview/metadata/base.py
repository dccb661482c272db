"""
Pydantic base class for SmartView metadata objects.

Metadata objects describe what the provider reports about a cube: member
filters and their arguments. They are created from provider responses and
are immutable afterwards.
"""

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..errors import ProtocolError


class MetadataObject(BaseModel):
    """
    Base class for all SmartView metadata objects.

    Uses Pydantic for validation and serialization. Instances are frozen,
    so they can be shared freely between calls and threads.
    """

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        arbitrary_types_allowed=True,
        populate_by_name=True,
    )

    name: str = Field(..., description="Name reported by the provider")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v: str) -> str:
        """Validate that name is a non-empty string."""
        if not isinstance(v, str) or not v.strip():
            raise ValueError("name must be a non-empty string")
        return v

    @classmethod
    def _require_name(cls, element) -> str:
        name = element.get("name")
        if not name:
            raise ProtocolError(
                f"Element '{element.tag}' has no name attribute"
            )
        return name

    def __str__(self) -> str:
        return self.name

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name!r})"
