"""
Homestay application model and the per-district numbering sequence.
"""

from sqlalchemy import (
    Boolean,
    Column,
    Float,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)

from app.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin, load_json, dump_json


class HomestayApplication(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    A homestay registration (or service) application.

    The record carries the whole lifecycle: the owner's form data, the
    computed fee, every reviewer's remarks, the inspection assignment,
    payment state and, once approved, the registration certificate.

    Status values are defined in app.core.workflow; the raw status is
    stored and consolidated into a display status on read.
    """

    __tablename__ = "homestay_applications"

    user_id = Column(
        String,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        doc="Owner who filed the application"
    )
    application_number = Column(String(40), nullable=False, unique=True)
    application_kind = Column(String(30), nullable=False, default="new_registration")
    parent_application_id = Column(
        String,
        ForeignKey("homestay_applications.id", ondelete="SET NULL"),
        nullable=True,
        doc="Approved application a service request (e.g. cancellation) refers to"
    )
    is_legacy = Column(Boolean, nullable=False, default=False)

    # Property
    property_name = Column(String(200), nullable=True)
    category = Column(String(20), nullable=True)
    location_type = Column(String(10), nullable=True)
    address = Column(Text, nullable=True)
    district = Column(String(100), nullable=True, index=True)
    tehsil = Column(String(100), nullable=True)
    pincode = Column(String(10), nullable=True)

    # Owner
    owner_name = Column(String(200), nullable=True)
    owner_gender = Column(String(10), nullable=True)
    owner_mobile = Column(String(15), nullable=True, index=True)
    owner_email = Column(String(255), nullable=True)
    owner_aadhaar = Column(String(12), nullable=True, index=True)
    gstin = Column(String(15), nullable=True)

    # Rooms and tariffs
    single_bed_rooms = Column(Integer, nullable=False, default=0)
    single_bed_beds = Column(Integer, nullable=True)
    single_bed_room_rate = Column(Float, nullable=True)
    double_bed_rooms = Column(Integer, nullable=False, default=0)
    double_bed_beds = Column(Integer, nullable=True)
    double_bed_room_rate = Column(Float, nullable=True)
    family_suites = Column(Integer, nullable=False, default=0)
    family_suite_beds = Column(Integer, nullable=True)
    family_suite_rate = Column(Float, nullable=True)
    attached_washrooms = Column(Integer, nullable=False, default=0)
    total_rooms = Column(Integer, nullable=False, default=0)

    # Fees
    validity_years = Column(Integer, nullable=False, default=1)
    base_fee = Column(Numeric(12, 2), nullable=True)
    total_fee = Column(Numeric(12, 2), nullable=True)
    fee_breakdown = Column(Text, nullable=True, doc="JSON FeeBreakdown snapshot")

    # Workflow
    status = Column(String(40), nullable=False, default="draft", index=True)
    revert_count = Column(Integer, nullable=False, default=0)
    correction_submission_count = Column(Integer, nullable=False, default=0)
    clarification_requested = Column(Text, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    submitted_at = Column(String, nullable=True)

    # DA scrutiny
    da_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    da_remarks = Column(Text, nullable=True)
    da_review_date = Column(String, nullable=True)
    da_forwarded_date = Column(String, nullable=True)

    # DTDO review
    dtdo_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    dtdo_remarks = Column(Text, nullable=True)
    district_notes = Column(Text, nullable=True)
    district_officer_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    district_review_date = Column(String, nullable=True)

    # Inspection
    assigned_dealing_assistant_id = Column(
        String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    inspection_date = Column(String, nullable=True)
    inspection_status = Column(String(20), nullable=True)
    site_inspection_outcome = Column(String(20), nullable=True)

    # Payment
    payment_status = Column(String(20), nullable=True)
    payment_amount = Column(Numeric(12, 2), nullable=True)
    payment_date = Column(String, nullable=True)

    # Certificate
    certificate_number = Column(String(30), nullable=True, unique=True)
    certificate_issued_date = Column(String, nullable=True)
    certificate_expiry_date = Column(String, nullable=True)
    approved_at = Column(String, nullable=True)

    __table_args__ = (
        Index("idx_applications_district_status", "district", "status"),
    )

    def get_fee_breakdown(self) -> dict:
        return load_json(self.fee_breakdown, default={})

    def set_fee_breakdown(self, value: dict) -> None:
        self.fee_breakdown = dump_json(value)

    @property
    def is_paid(self) -> bool:
        return self.payment_status in ("paid", "completed")


class ApplicationSequence(Base):
    """
    Last issued serial per numbering scope.

    The scope is ``{prefix}-{year}-{district code}`` so each district gets
    its own running number every year.
    """

    __tablename__ = "application_sequences"

    scope = Column(String(40), primary_key=True)
    last_value = Column(Integer, nullable=False, default=0)
