"""
HimKosh e-challan payment endpoints.
"""

from typing import Annotated, List

from fastapi import APIRouter, Depends, Form

from app.api.dependencies import CurrentActiveUser, DatabaseSession, require_roles
from app.api.errors import service_errors
from app.core.security import ADMIN_ROLES, PROPERTY_OWNER, User
from app.schemas.payment import (
    CallbackResponse,
    ConfigCheckResponse,
    PaymentInitiateResponse,
    TransactionResponse,
    VerificationResponse,
)
from app.services.payments import PaymentService

router = APIRouter(prefix="/payments")

owner_only = require_roles(PROPERTY_OWNER)
admin_only = require_roles(*ADMIN_ROLES)


@router.post(
    "/himkosh/initiate/{application_id}",
    response_model=PaymentInitiateResponse,
    summary="Initiate HimKosh payment",
)
async def initiate_payment(
    application_id: str,
    db: DatabaseSession,
    current_user: User = Depends(owner_only),
) -> PaymentInitiateResponse:
    """
    Create a transaction and return the encrypted challan request.

    Raises:
        HTTPException 400: Application is not in a payable state
        HTTPException 502: Gateway configuration or key file missing
    """
    with service_errors():
        request = await PaymentService(db).initiate(application_id, current_user)
    return PaymentInitiateResponse(
        payment_url=request.payment_url,
        encdata=request.encdata,
        merchant_code=request.merchant_code,
        app_ref_no=request.app_ref_no,
        amount=float(request.amount),
        test_mode=request.test_mode,
    )


@router.post(
    "/himkosh/callback",
    response_model=CallbackResponse,
    summary="HimKosh return URL",
    description="Receives the treasury's encrypted response (form field encdata)",
)
async def himkosh_callback(
    encdata: Annotated[str, Form()],
    db: DatabaseSession,
) -> CallbackResponse:
    """
    Settle a transaction from the gateway redirect.

    Unauthenticated: the payload is authenticated by its checksum.

    Raises:
        HTTPException 400: Missing payload or checksum mismatch
        HTTPException 404: Unknown AppRefNo
        HTTPException 502: Payload could not be decrypted
    """
    with service_errors():
        result = await PaymentService(db).handle_callback(encdata)
    return CallbackResponse(
        success=result.success,
        message=result.message,
        application_id=result.application.id,
        application_number=result.application.application_number,
        app_ref_no=result.transaction.app_ref_no,
        status=result.application.status,
        certificate_number=result.application.certificate_number,
    )


@router.get(
    "/himkosh/transactions/{application_id}",
    response_model=List[TransactionResponse],
    summary="Payment attempts",
)
async def list_transactions(
    application_id: str,
    db: DatabaseSession,
    current_user: CurrentActiveUser,
) -> List[TransactionResponse]:
    with service_errors():
        transactions = await PaymentService(db).list_transactions(application_id, current_user)
    return [TransactionResponse.from_row(t) for t in transactions]


@router.post(
    "/himkosh/verify/{app_ref_no}",
    response_model=VerificationResponse,
    summary="Double-verify a transaction",
    description="Ask the treasury for the authoritative status of a transaction",
)
async def verify_transaction(
    app_ref_no: str,
    db: DatabaseSession,
    current_user: User = Depends(admin_only),
) -> VerificationResponse:
    with service_errors():
        result = await PaymentService(db).verify_transaction(app_ref_no)
    return VerificationResponse(
        transaction=TransactionResponse.from_row(result["transaction"]),
        gateway_status=result["gateway_status"],
        matches=result["matches"],
    )


@router.get(
    "/config-check",
    response_model=ConfigCheckResponse,
    summary="Gateway configuration check",
)
async def config_check(
    db: DatabaseSession,
    current_user: User = Depends(admin_only),
) -> ConfigCheckResponse:
    """Resolved gateway configuration with secrets masked."""
    with service_errors():
        report = await PaymentService(db).config_check()
    return ConfigCheckResponse(**report)
