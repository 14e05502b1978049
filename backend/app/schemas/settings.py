"""
Schemas for admin system settings.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class SettingResponse(CamelModel):
    key: str
    value: Any = None
    description: Optional[str] = None
    updated_by: Optional[str] = None
    updated_at: Optional[str] = None


class SettingsListResponse(CamelModel):
    settings: Dict[str, Any]


class SettingUpdateRequest(CamelModel):
    value: Any = Field(..., description="JSON value for the setting")


class PaymentWorkflowSetting(CamelModel):
    workflow: Literal["upfront", "on_approval"] = "on_approval"
    upfront_submit_mode: Literal["auto", "manual"] = "auto"


class PaymentTestModeResponse(CamelModel):
    enabled: bool
