"""
Site inspection orders and the reports DAs file against them.
"""

from sqlalchemy import Boolean, Column, ForeignKey, String, Text

from app.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin, load_json, dump_json


class InspectionOrder(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    An inspection scheduled by a DTDO and assigned to a DA of the same
    district. Status is ``scheduled`` until the report is filed, then
    ``completed``.
    """

    __tablename__ = "inspection_orders"

    application_id = Column(
        String,
        ForeignKey("homestay_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    scheduled_by = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    scheduled_date = Column(String, nullable=False)
    assigned_to = Column(
        String,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    assigned_date = Column(String, nullable=False)
    inspection_date = Column(String, nullable=False)
    inspection_address = Column(Text, nullable=True)
    special_instructions = Column(Text, nullable=True)
    status = Column(String(20), nullable=False, default="scheduled")


class InspectionReport(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    Findings filed by the assigned DA. At most one report per order.
    """

    __tablename__ = "inspection_reports"

    inspection_order_id = Column(
        String,
        ForeignKey("inspection_orders.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    application_id = Column(
        String,
        ForeignKey("homestay_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    submitted_by = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    actual_inspection_date = Column(String, nullable=False)
    recommendation = Column(String(30), nullable=False)
    mandatory_remarks = Column(Text, nullable=True)
    findings = Column(Text, nullable=True, doc="JSON checklist answers")
    early_inspection_override = Column(Boolean, nullable=False, default=False)
    early_inspection_reason = Column(Text, nullable=True)

    def get_findings(self) -> dict:
        return load_json(self.findings, default={})

    def set_findings(self, value: dict) -> None:
        self.findings = dump_json(value)
