"""
Audit trail of workflow actions taken on an application.
"""

from sqlalchemy import Column, ForeignKey, Index, String, Text

from app.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class ApplicationAction(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    One row per workflow action (start_scrutiny, forwarded_to_dtdo,
    dtdo_revert, inspection_completed, approved, ...).

    Rows are append-only. ``officer_id`` holds whoever acted, which can
    also be the owner (correction_resubmitted, inspection_acknowledged).
    """

    __tablename__ = "application_actions"

    application_id = Column(
        String,
        ForeignKey("homestay_applications.id", ondelete="CASCADE"),
        nullable=False,
    )
    officer_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(50), nullable=False)
    previous_status = Column(String(40), nullable=True)
    new_status = Column(String(40), nullable=True)
    feedback = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_actions_application_action", "application_id", "action"),
    )
