"""
Uploaded application documents and their scrutiny state.
"""

from sqlalchemy import Boolean, Column, ForeignKey, String, Text

from app.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin


VERIFICATION_STATUSES = ("pending", "verified", "needs_correction", "rejected")


class Document(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    Metadata for a file attached to an application.

    File bytes live in object storage; only the path is kept here. The DA
    marks each document during scrutiny, and the application cannot be
    forwarded while any document is still pending.
    """

    __tablename__ = "documents"

    application_id = Column(
        String,
        ForeignKey("homestay_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    document_type = Column(String(60), nullable=False)
    file_name = Column(String(255), nullable=False)
    file_path = Column(String(500), nullable=False)
    mime_type = Column(String(100), nullable=True)

    verification_status = Column(String(20), nullable=False, default="pending")
    verification_notes = Column(Text, nullable=True)
    is_verified = Column(Boolean, nullable=False, default=False)
    verified_by = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    verification_date = Column(String, nullable=True)
