"""
System-wide settings store.

Key-value pairs with JSON values, editable at runtime by administrators
without schema migrations.
"""

from typing import Any

from sqlalchemy import Column, ForeignKey, String, Text
import json

from app.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class SystemSetting(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    A single runtime setting (payment workflow, send-back toggle, ...).

    Attributes:
        id: UUID primary key
        setting_key: Unique setting name
        setting_value: JSON-encoded value
        description: Human readable purpose
        updated_by: User who last changed the value
    """

    __tablename__ = "system_settings"

    setting_key = Column(String(100), nullable=False, unique=True, index=True)
    setting_value = Column(Text, nullable=False)
    description = Column(String(255), nullable=True)
    updated_by = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    def get_value(self) -> Any:
        """
        Parse setting_value JSON to Python object.

        Returns:
            Parsed JSON value, or the raw string if it is not valid JSON
        """
        if not self.setting_value:
            return None
        try:
            return json.loads(self.setting_value)
        except json.JSONDecodeError:
            return self.setting_value

    def set_value(self, value: Any) -> None:
        """
        Set setting_value from Python object.

        Raises:
            TypeError: If value is not JSON-serializable
        """
        self.setting_value = json.dumps(value)

    def __repr__(self) -> str:
        return f"SystemSetting(id='{self.id}', key='{self.setting_key}')"
