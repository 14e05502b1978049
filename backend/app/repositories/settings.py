"""
System settings repository.

Data access for the SystemSetting key/value store, plus typed readers for
the settings the workflow consults (payment workflow, send-back toggle,
legacy forwarding, payment test mode, HimKosh gateway overrides).
"""

from typing import Optional, Dict, Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.setting import SystemSetting

PAYMENT_WORKFLOW_KEY = "payment_workflow"
DA_SEND_BACK_KEY = "da_send_back_enabled"
LEGACY_DTDO_FORWARD_KEY = "legacy_dtdo_forward_enabled"
PAYMENT_TEST_MODE_KEY = "payment_test_mode"
HIMKOSH_GATEWAY_KEY = "himkosh_gateway"

DEFAULT_PAYMENT_WORKFLOW = {"workflow": "on_approval", "upfrontSubmitMode": "auto"}

# Known keys with their defaults and descriptions; anything else is rejected
KNOWN_SETTINGS: Dict[str, Dict[str, Any]] = {
    PAYMENT_WORKFLOW_KEY: {
        "default": DEFAULT_PAYMENT_WORKFLOW,
        "description": "When the registration fee is collected (upfront or on_approval)",
    },
    DA_SEND_BACK_KEY: {
        "default": False,
        "description": "Allow dealing assistants to send applications back to applicants",
    },
    LEGACY_DTDO_FORWARD_KEY: {
        "default": True,
        "description": "Allow legacy RC onboarding cases to be forwarded to the DTDO",
    },
    PAYMENT_TEST_MODE_KEY: {
        "default": False,
        "description": "Charge a nominal 1 rupee instead of the computed fee",
    },
    HIMKOSH_GATEWAY_KEY: {
        "default": None,
        "description": "HimKosh gateway overrides (merchant code, heads, DDO, return URL)",
    },
}


def normalize_boolean_setting(value: Any, default: bool) -> bool:
    """
    Interpret a stored setting as a boolean.

    Accepts real booleans, "true"/"false" style strings, 1/0, and
    ``{"enabled": bool}`` objects; anything else yields ``default``.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float)):
        return value != 0
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {"true", "1", "yes", "on"}:
            return True
        if normalized in {"false", "0", "no", "off"}:
            return False
        return default
    if isinstance(value, dict) and "enabled" in value:
        return normalize_boolean_setting(value["enabled"], default)
    return default


def normalize_payment_workflow(value: Any) -> Dict[str, str]:
    result = dict(DEFAULT_PAYMENT_WORKFLOW)
    if isinstance(value, dict):
        if value.get("workflow") in ("upfront", "on_approval"):
            result["workflow"] = value["workflow"]
        if value.get("upfrontSubmitMode") in ("auto", "manual"):
            result["upfrontSubmitMode"] = value["upfrontSubmitMode"]
    elif value in ("upfront", "on_approval"):
        result["workflow"] = value
    return result


class SettingsRepository:
    """
    Repository for system settings.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_record(self, key: str) -> Optional[SystemSetting]:
        result = await self.session.execute(
            select(SystemSetting).where(SystemSetting.setting_key == key)
        )
        return result.scalar_one_or_none()

    async def get_value(self, key: str, default: Any = None) -> Any:
        """Stored value for ``key``, or ``default`` when unset."""
        record = await self.get_record(key)
        if record is None:
            return default
        return record.get_value()

    async def get_all(self) -> Dict[str, Any]:
        """All known settings with defaults filled in for unset keys."""
        result = await self.session.execute(select(SystemSetting))
        stored = {row.setting_key: row.get_value() for row in result.scalars().all()}
        return {
            key: stored.get(key, meta["default"])
            for key, meta in KNOWN_SETTINGS.items()
        }

    async def set_value(
        self,
        key: str,
        value: Any,
        updated_by: Optional[str] = None,
    ) -> SystemSetting:
        """
        Create or update a setting (upsert).

        Raises:
            ValueError: If the key is not a known setting
            TypeError: If value is not JSON-serializable
        """
        if key not in KNOWN_SETTINGS:
            raise ValueError(f"Unknown setting key: {key}")

        record = await self.get_record(key)
        if record is None:
            record = SystemSetting(
                setting_key=key,
                description=KNOWN_SETTINGS[key]["description"],
            )
            self.session.add(record)

        record.set_value(value)
        record.updated_by = updated_by
        await self.session.flush()
        return record

    # Typed readers

    async def get_payment_workflow(self) -> Dict[str, str]:
        return normalize_payment_workflow(
            await self.get_value(PAYMENT_WORKFLOW_KEY)
        )

    async def is_send_back_enabled(self) -> bool:
        return normalize_boolean_setting(await self.get_value(DA_SEND_BACK_KEY), False)

    async def is_legacy_forward_enabled(self) -> bool:
        return normalize_boolean_setting(await self.get_value(LEGACY_DTDO_FORWARD_KEY), True)

    async def is_payment_test_mode(self) -> bool:
        return normalize_boolean_setting(await self.get_value(PAYMENT_TEST_MODE_KEY), False)

    async def get_himkosh_gateway(self) -> Optional[Dict[str, Any]]:
        value = await self.get_value(HIMKOSH_GATEWAY_KEY)
        return value if isinstance(value, dict) else None
