"""
Admin endpoints for runtime system settings.

Settings are JSON values keyed by name. Only the keys in KNOWN_SETTINGS
may be read or written; everything else is rejected with 400.
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from app.api.dependencies import DatabaseSession, require_roles
from app.core.security import ADMIN_ROLES, SUPER_ADMIN, User
from app.repositories.settings import (
    KNOWN_SETTINGS,
    PAYMENT_TEST_MODE_KEY,
    PAYMENT_WORKFLOW_KEY,
    SettingsRepository,
)
from app.schemas.settings import (
    PaymentTestModeResponse,
    PaymentWorkflowSetting,
    SettingResponse,
    SettingsListResponse,
    SettingUpdateRequest,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/settings")

admin_only = require_roles(*ADMIN_ROLES)
super_admin_only = require_roles(SUPER_ADMIN)


def get_settings_repository(db: DatabaseSession) -> SettingsRepository:
    """
    Dependency to inject SettingsRepository.

    Args:
        db: Database session from dependency injection
    """
    return SettingsRepository(db)


SettingsRepo = Annotated[SettingsRepository, Depends(get_settings_repository)]


def _ensure_known(key: str) -> None:
    if key not in KNOWN_SETTINGS:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown setting key: {key}",
        )


@router.get(
    "",
    response_model=SettingsListResponse,
    summary="List settings",
    description="All known settings with defaults filled in for unset keys",
)
async def list_settings(
    repo: SettingsRepo,
    current_user: User = Depends(admin_only),
) -> SettingsListResponse:
    return SettingsListResponse(settings=await repo.get_all())


@router.get(
    "/payment/workflow",
    response_model=PaymentWorkflowSetting,
    summary="Get payment workflow",
)
async def get_payment_workflow(
    repo: SettingsRepo,
    current_user: User = Depends(admin_only),
) -> PaymentWorkflowSetting:
    value = await repo.get_payment_workflow()
    return PaymentWorkflowSetting(
        workflow=value["workflow"],
        upfront_submit_mode=value["upfrontSubmitMode"],
    )


@router.put(
    "/payment/workflow",
    response_model=PaymentWorkflowSetting,
    summary="Set payment workflow",
    description="""
    Choose when the registration fee is collected.

    **Authorization:** super_admin only

    - `upfront`: owners pay before submitting; `upfrontSubmitMode` decides
      whether the application is submitted automatically after payment
    - `on_approval`: owners pay after the inspection is approved
    """,
)
async def set_payment_workflow(
    request: PaymentWorkflowSetting,
    repo: SettingsRepo,
    current_user: User = Depends(super_admin_only),
) -> PaymentWorkflowSetting:
    await repo.set_value(
        PAYMENT_WORKFLOW_KEY,
        {"workflow": request.workflow, "upfrontSubmitMode": request.upfront_submit_mode},
        updated_by=current_user.id,
    )
    logger.info(
        "Payment workflow changed",
        extra={"actor_id": current_user.id, "workflow": request.workflow},
    )
    return request


@router.post(
    "/payment/test-mode/toggle",
    response_model=PaymentTestModeResponse,
    summary="Toggle payment test mode",
    description="In test mode every payment is charged 1 rupee",
)
async def toggle_payment_test_mode(
    repo: SettingsRepo,
    current_user: User = Depends(admin_only),
) -> PaymentTestModeResponse:
    enabled = not await repo.is_payment_test_mode()
    await repo.set_value(PAYMENT_TEST_MODE_KEY, enabled, updated_by=current_user.id)
    logger.warning(
        "Payment test mode toggled",
        extra={"actor_id": current_user.id, "enabled": enabled},
    )
    return PaymentTestModeResponse(enabled=enabled)


@router.get(
    "/{key}",
    response_model=SettingResponse,
    summary="Get a setting",
)
async def get_setting(
    key: str,
    repo: SettingsRepo,
    current_user: User = Depends(admin_only),
) -> SettingResponse:
    """
    Raises:
        HTTPException 400: If the key is not a known setting
    """
    _ensure_known(key)
    record = await repo.get_record(key)
    if record is None:
        return SettingResponse(
            key=key,
            value=KNOWN_SETTINGS[key]["default"],
            description=KNOWN_SETTINGS[key]["description"],
        )
    return SettingResponse(
        key=key,
        value=record.get_value(),
        description=record.description,
        updated_by=record.updated_by,
        updated_at=record.updated_at,
    )


@router.put(
    "/{key}",
    response_model=SettingResponse,
    summary="Update a setting",
)
async def update_setting(
    key: str,
    request: SettingUpdateRequest,
    repo: SettingsRepo,
    current_user: User = Depends(admin_only),
) -> SettingResponse:
    """
    Create or replace a setting value.

    Raises:
        HTTPException 400: Unknown key or value that is not JSON-serializable
    """
    _ensure_known(key)
    try:
        record = await repo.set_value(key, request.value, updated_by=current_user.id)
    except TypeError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid value: {str(e)}"
        )

    logger.info("Setting updated", extra={"actor_id": current_user.id, "key": key})
    return SettingResponse(
        key=key,
        value=record.get_value(),
        description=record.description,
        updated_by=record.updated_by,
        updated_at=record.updated_at,
    )
