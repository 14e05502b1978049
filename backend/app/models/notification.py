"""
In-app notifications and send-back OTP challenges.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String, Text

from app.models.base import Base, UUIDMixin, TimestampMixin, ModelMixin, load_json, dump_json


class Notification(Base, UUIDMixin, TimestampMixin, ModelMixin):
    """
    A message shown in a user's notification inbox.

    ``channels`` records where the message was additionally relayed
    (e.g. ["in_app", "webhook"]).
    """

    __tablename__ = "notifications"

    user_id = Column(
        String,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    application_id = Column(
        String,
        ForeignKey("homestay_applications.id", ondelete="CASCADE"),
        nullable=True,
    )
    event = Column(String(50), nullable=False)
    title = Column(String(200), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, nullable=False, default=False)
    channels = Column(Text, nullable=True)

    __table_args__ = (
        Index("idx_notifications_user_created", "user_id", "created_at"),
    )

    def get_channels(self) -> list:
        return load_json(self.channels, default=[])

    def set_channels(self, value: list) -> None:
        self.channels = dump_json(value)


class SendBackOtp(Base, UUIDMixin, TimestampMixin):
    """
    One-time code a DTDO shares with the DA to authorise sending an
    application back to the applicant. Only the SHA-256 digest is stored.
    """

    __tablename__ = "send_back_otps"

    application_id = Column(
        String,
        ForeignKey("homestay_applications.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    requested_by = Column(String, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    code_hash = Column(String(64), nullable=False)
    expires_at = Column(String, nullable=False)
    consumed = Column(Boolean, nullable=False, default=False)
    failed_attempts = Column(Integer, nullable=False, default=0)
