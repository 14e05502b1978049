"""
Schemas for HimKosh payment endpoints.
"""

from typing import Any, Dict, List, Optional

from app.schemas.common import CamelModel


class PaymentInitiateResponse(CamelModel):
    """
    Everything the browser needs to post the challan form to HimKosh.

    The client submits ``encdata`` and ``merchantCode`` as form fields to
    ``paymentUrl``.
    """
    payment_url: str
    encdata: str
    merchant_code: str
    app_ref_no: str
    amount: float
    test_mode: bool = False


class TransactionResponse(CamelModel):
    id: str
    application_id: str
    app_ref_no: str
    dept_ref_no: str
    total_amount: float
    transaction_status: str
    ech_txn_id: Optional[str] = None
    bank_cin: Optional[str] = None
    bank_name: Optional[str] = None
    status_cd: Optional[str] = None
    status_message: Optional[str] = None
    payment_date: Optional[str] = None
    is_double_verified: bool = False
    created_at: str


class CallbackResponse(CamelModel):
    success: bool
    message: str
    application_id: str
    application_number: str
    app_ref_no: str
    status: str
    certificate_number: Optional[str] = None


class ConfigCheckResponse(CamelModel):
    config: Dict[str, Any]
    missing_fields: List[str]
    key_file_present: bool
    test_mode: bool


class VerificationResponse(CamelModel):
    transaction: TransactionResponse
    gateway_status: Dict[str, str]
    matches: bool
