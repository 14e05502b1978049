"""
Payment service: HimKosh initiation and callback handling.

Flow:
1. Owner calls /payments/himkosh/initiate/{id} -> transaction row
   (``initiated``) + encrypted request for the treasury form post
2. Treasury redirects the browser back with ``encdata``
3. /payments/himkosh/callback decrypts, checks the checksum, settles the
   transaction and moves the application on (certificate or submission)
"""

import logging
import random
import time
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from sqlalchemy import desc, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import workflow
from app.core.errors import ApplicationNotFound, GatewayError, WorkflowError
from app.core.security import User
from app.models.application import HomestayApplication
from app.models.base import utc_now_iso
from app.models.payment import HimkoshTransaction, Payment
from app.repositories.applications import ApplicationRepository
from app.repositories.settings import SettingsRepository
from app.services import himkosh
from app.services.applications import ApplicationService, apply_fees, ensure_can_view, ensure_owner
from app.services.certificates import issue_certificate
from app.services.notifications import NotificationService

logger = logging.getLogger(__name__)

TEST_MODE_AMOUNT = Decimal("1")


def generate_app_ref_no() -> str:
    """``HPT`` + millisecond timestamp + random digits, 20 chars."""
    return f"HPT{int(time.time() * 1000)}{random.randint(0, 9999):04d}"[:20]


@dataclass
class PaymentRequest:
    payment_url: str
    encdata: str
    merchant_code: str
    app_ref_no: str
    amount: Decimal
    test_mode: bool


@dataclass
class CallbackResult:
    transaction: HimkoshTransaction
    application: HomestayApplication
    success: bool
    message: str


class PaymentService:
    """
    Attributes:
        session: SQLAlchemy async session for database operations
        crypto: HimKosh cipher (injectable for tests)
    """

    def __init__(self, session: AsyncSession, crypto: Optional[himkosh.HimKoshCrypto] = None):
        self.session = session
        self.crypto = crypto or himkosh.HimKoshCrypto()
        self.applications = ApplicationRepository(session)
        self.settings = SettingsRepository(session)

    async def gateway_config(self) -> himkosh.GatewayConfig:
        return himkosh.resolve_gateway_config(await self.settings.get_himkosh_gateway())

    async def payable_amount(self, application: HomestayApplication) -> Decimal:
        """Refresh the fee snapshot from the current form; test mode only changes the charge."""
        apply_fees(application)
        if await self.settings.is_payment_test_mode():
            return TEST_MODE_AMOUNT
        return Decimal(application.total_fee)

    async def initiate(self, application_id: str, user: User) -> PaymentRequest:
        """
        Raises:
            WorkflowError: Application not in a payable state or already paid
            GatewayError: Gateway configuration incomplete or key file missing
        """
        application = await self.applications.get_or_404(application_id)
        ensure_owner(application, user)

        payment_workflow = (await self.settings.get_payment_workflow())["workflow"]
        payable_status = (
            workflow.DRAFT if payment_workflow == "upfront" else workflow.VERIFIED_FOR_PAYMENT
        )
        if application.status != payable_status:
            raise WorkflowError("Payment is not due for this application")
        if application.is_paid:
            raise WorkflowError("This application has already been paid")

        config = await self.gateway_config()
        missing = config.missing_fields()
        if missing:
            raise GatewayError(f"HimKosh gateway is not configured: missing {', '.join(missing)}")

        test_mode = await self.settings.is_payment_test_mode()
        amount = await self.payable_amount(application)
        app_ref_no = generate_app_ref_no()
        plain = himkosh.build_request_string(
            config,
            dept_ref_no=application.application_number,
            total_amount=float(amount),
            tender_by=application.owner_name or user.full_name or user.username,
            app_ref_no=app_ref_no,
        )
        checksum = himkosh.HimKoshCrypto.checksum(plain)
        encdata = self.crypto.encrypt(f"{plain}|{himkosh.CHECKSUM_FIELD}={checksum}")

        self.session.add(HimkoshTransaction(
            application_id=application.id,
            app_ref_no=app_ref_no,
            dept_ref_no=application.application_number,
            total_amount=amount,
            transaction_status="initiated",
            request_checksum=checksum,
        ))
        await self.session.flush()

        logger.info(
            "HimKosh payment initiated",
            extra={
                "application_id": application.id,
                "app_ref_no": app_ref_no,
                "amount": str(amount),
            },
        )
        return PaymentRequest(
            payment_url=config.payment_url,
            encdata=encdata,
            merchant_code=config.merchant_code,
            app_ref_no=app_ref_no,
            amount=amount,
            test_mode=test_mode,
        )

    async def handle_callback(self, encdata: str) -> CallbackResult:
        """
        Settle a transaction from the treasury redirect.

        A checksum mismatch is committed on the transaction before the
        error is raised, so the failed attempt stays visible.

        Raises:
            GatewayError: Undecipherable payload
            ApplicationNotFound: Unknown AppRefNo
            WorkflowError: Checksum mismatch
        """
        if not encdata:
            raise WorkflowError("Missing encdata")
        plain = self.crypto.decrypt(encdata)
        payload, received_checksum = himkosh.split_checksum(plain)
        fields = himkosh.parse_response(payload)

        app_ref_no = fields.get("AppRefNo")
        result = await self.session.execute(
            select(HimkoshTransaction).where(HimkoshTransaction.app_ref_no == app_ref_no)
        )
        transaction = result.scalar_one_or_none()
        if transaction is None:
            raise ApplicationNotFound("Transaction not found")
        if transaction.transaction_status == "success":
            application = await self.applications.get_or_404(transaction.application_id)
            return CallbackResult(transaction, application, True, "Payment already processed")

        transaction.response_checksum = received_checksum
        if not himkosh.verify_response_checksum(plain):
            transaction.transaction_status = "checksum_mismatch"
            await self.session.commit()
            logger.warning(
                "HimKosh callback checksum mismatch",
                extra={"app_ref_no": app_ref_no, "application_id": transaction.application_id},
            )
            raise WorkflowError("Payment response checksum verification failed")

        success = fields.get("StatusCD") == "1"
        transaction.ech_txn_id = fields.get("EchTxnId")
        transaction.bank_cin = fields.get("BankCIN")
        transaction.bank_name = fields.get("Bank")
        transaction.status_cd = fields.get("StatusCD")
        transaction.status_message = fields.get("Status")
        transaction.payment_date = fields.get("PaymentDate") or utc_now_iso()
        transaction.transaction_status = "success" if success else "failed"

        application = await self.applications.get_or_404(transaction.application_id)
        logger.info(
            "HimKosh callback processed",
            extra={
                "app_ref_no": app_ref_no,
                "application_id": application.id,
                "success": success,
                "status_cd": transaction.status_cd,
            },
        )

        if not success:
            await self.session.flush()
            return CallbackResult(
                transaction, application, False, transaction.status_message or "Payment failed"
            )

        amount = self._reported_amount(fields, transaction)
        await self.record_payment(application, transaction, amount)
        await self.advance_after_payment(application)
        return CallbackResult(transaction, application, True, "Payment successful")

    @staticmethod
    def _reported_amount(fields: Dict[str, str], transaction: HimkoshTransaction) -> Decimal:
        """The amount the treasury says it collected; a mismatch with the request is logged."""
        expected = Decimal(transaction.total_amount)
        try:
            reported = Decimal(fields["Amount"])
        except (KeyError, InvalidOperation):
            return expected
        if reported != expected:
            logger.warning(
                "HimKosh callback amount differs from the initiated amount",
                extra={
                    "app_ref_no": transaction.app_ref_no,
                    "application_id": transaction.application_id,
                    "expected_amount": str(expected),
                    "reported_amount": str(reported),
                },
            )
        return reported

    async def record_payment(
        self,
        application: HomestayApplication,
        transaction: HimkoshTransaction,
        amount: Optional[Decimal] = None,
    ) -> Payment:
        if amount is None:
            amount = Decimal(transaction.total_amount)
        application.payment_status = "paid"
        application.payment_amount = amount
        application.payment_date = transaction.payment_date
        payment = Payment(
            application_id=application.id,
            amount=amount,
            payment_status="completed",
            payment_method="himkosh",
            gateway_transaction_id=transaction.ech_txn_id,
        )
        self.session.add(payment)
        await self.session.flush()
        await NotificationService(self.session).notify_owner("payment_received", application)
        return payment

    async def advance_after_payment(self, application: HomestayApplication) -> None:
        """Issue the certificate, or for upfront payment queue the application for submission."""
        if application.status == workflow.VERIFIED_FOR_PAYMENT:
            await issue_certificate(
                self.session, application, actor_id=None, feedback="Certificate issued on payment"
            )
            return

        if application.status == workflow.DRAFT:
            await workflow.record_transition(
                self.session,
                application,
                workflow.PAID_PENDING_SUBMIT,
                actor_id=None,
                action="payment_received",
            )
            payment_workflow = await self.settings.get_payment_workflow()
            if payment_workflow["upfrontSubmitMode"] != "auto":
                return
            try:
                await ApplicationService(self.session).submit_application(
                    application, application.user_id, payment_workflow["workflow"]
                )
            except WorkflowError as e:
                # Payment stays recorded; the owner submits manually after fixing the form
                logger.warning(
                    "Auto-submit after payment failed",
                    extra={"application_id": application.id, "error": e.message},
                )

    async def list_transactions(self, application_id: str, user: User) -> List[HimkoshTransaction]:
        application = await self.applications.get_or_404(application_id)
        ensure_can_view(application, user)
        result = await self.session.execute(
            select(HimkoshTransaction)
            .where(HimkoshTransaction.application_id == application.id)
            .order_by(desc(HimkoshTransaction.created_at))
        )
        return list(result.scalars().all())

    async def config_check(self) -> Dict[str, Any]:
        config = await self.gateway_config()
        return {
            "config": config.masked(),
            "missing_fields": config.missing_fields(),
            "key_file_present": himkosh.key_file_present(self.crypto.key_file),
            "test_mode": await self.settings.is_payment_test_mode(),
        }

    async def verify_transaction(self, app_ref_no: str) -> Dict[str, Any]:
        """
        Re-check a transaction with the treasury's verification service.

        The row is flagged ``is_double_verified`` only when the treasury's
        StatusCD agrees with the one recorded from the callback.

        Raises:
            ApplicationNotFound: Unknown AppRefNo
            GatewayError: Verification service unreachable or reply unreadable
        """
        result = await self.session.execute(
            select(HimkoshTransaction).where(HimkoshTransaction.app_ref_no == app_ref_no)
        )
        transaction = result.scalar_one_or_none()
        if transaction is None:
            raise ApplicationNotFound("Transaction not found")

        config = await self.gateway_config()
        if not config.verify_url:
            raise GatewayError("HimKosh verification URL is not configured")
        fields = await himkosh.double_verify(config, app_ref_no, crypto=self.crypto)

        matches = fields.get("StatusCD") is not None and fields.get("StatusCD") == transaction.status_cd
        transaction.is_double_verified = matches
        await self.session.flush()
        logger.info(
            "HimKosh transaction verified",
            extra={"app_ref_no": app_ref_no, "matches": matches},
        )
        return {"transaction": transaction, "gateway_status": fields, "matches": matches}
