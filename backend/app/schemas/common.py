"""
Shared schema base classes.

The API speaks camelCase JSON; Python code uses snake_case field names.
Both spellings are accepted on input.
"""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )

    @classmethod
    def from_row(cls, row: Any, **overrides: Any):
        """
        Build from an ORM row, copying every attribute that matches a field.

        ``overrides`` win over row attributes (JSON columns, computed values).
        """
        data = {
            name: getattr(row, name)
            for name in cls.model_fields
            if name not in overrides and hasattr(row, name)
        }
        data.update(overrides)
        return cls(**data)


class MessageResponse(CamelModel):
    message: str = Field(description="Human readable outcome")


class UserSummary(CamelModel):
    """Who an application belongs to or who acted on it."""
    id: str
    username: Optional[str] = None
    full_name: Optional[str] = None
    role: Optional[str] = None
    mobile: Optional[str] = None
    email: Optional[str] = None
    district: Optional[str] = None
