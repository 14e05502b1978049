"""
Payment records: HimKosh challan transactions and settled payments.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, Numeric, String

from app.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class HimkoshTransaction(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    One HimKosh e-challan attempt.

    Created as ``initiated`` when the owner is redirected to the gateway,
    then moved to ``success`` / ``failed`` / ``checksum_mismatch`` when the
    encrypted callback arrives.
    """

    __tablename__ = "himkosh_transactions"

    application_id = Column(
        String,
        ForeignKey("homestay_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    app_ref_no = Column(String(20), nullable=False, unique=True)
    dept_ref_no = Column(String(40), nullable=False)
    total_amount = Column(Numeric(12, 2), nullable=False)
    transaction_status = Column(String(20), nullable=False, default="initiated")

    ech_txn_id = Column(String(50), nullable=True)
    bank_cin = Column(String(50), nullable=True)
    bank_name = Column(String(100), nullable=True)
    status_cd = Column(String(5), nullable=True)
    status_message = Column(String(255), nullable=True)
    payment_date = Column(String, nullable=True)

    request_checksum = Column(String(32), nullable=True)
    response_checksum = Column(String(32), nullable=True)
    is_double_verified = Column(Boolean, nullable=False, default=False)

    __table_args__ = (
        Index("idx_himkosh_created", "created_at"),
    )


class Payment(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """A settled payment against an application."""

    __tablename__ = "payments"

    application_id = Column(
        String,
        ForeignKey("homestay_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    amount = Column(Numeric(12, 2), nullable=False)
    payment_status = Column(String(20), nullable=False, default="completed")
    payment_method = Column(String(30), nullable=False, default="himkosh")
    gateway_transaction_id = Column(String(50), nullable=True)
