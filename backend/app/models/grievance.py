"""
Grievance tickets raised by owners (or internally by officers).
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, String, Text

from app.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


class Grievance(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    A support ticket.

    ``last_read_by_owner`` / ``last_read_by_officer`` against
    ``last_comment_at`` drive the unread counters for each side.
    """

    __tablename__ = "grievances"

    ticket_number = Column(String(20), nullable=False, unique=True)
    ticket_type = Column(String(20), nullable=False, default="owner_grievance")
    user_id = Column(
        String,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    application_id = Column(
        String,
        ForeignKey("homestay_applications.id", ondelete="SET NULL"),
        nullable=True,
    )
    category = Column(String(50), nullable=False)
    priority = Column(String(20), nullable=False, default="medium")
    status = Column(String(20), nullable=False, default="open")
    subject = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    assigned_to = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    resolution_notes = Column(Text, nullable=True)
    resolved_at = Column(String, nullable=True)

    last_comment_at = Column(String, nullable=True)
    last_read_by_owner = Column(String, nullable=True)
    last_read_by_officer = Column(String, nullable=True)


class GrievanceComment(Base, UUIDMixin, TimestampMixin, ModelMixin):
    __tablename__ = "grievance_comments"

    grievance_id = Column(
        String,
        ForeignKey("grievances.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    user_id = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    comment = Column(Text, nullable=False)
    is_internal = Column(Boolean, nullable=False, default=False)


class GrievanceAuditLog(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """Append-only change log for a grievance."""

    __tablename__ = "grievance_audit_log"

    grievance_id = Column(
        String,
        ForeignKey("grievances.id", ondelete="CASCADE"),
        nullable=False,
    )
    action = Column(String(50), nullable=False)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    performed_by = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(255), nullable=True)

    __table_args__ = (
        Index("idx_grievance_audit_grievance", "grievance_id", "created_at"),
    )
