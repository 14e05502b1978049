"""
SQLAlchemy ORM models for the homestay registration backend.

Import models from this module to ensure they're registered with SQLAlchemy.
"""

from app.models.base import Base, TimestampMixin, UUIDMixin, ModelMixin
from app.models.user import User
from app.models.application import HomestayApplication, ApplicationSequence
from app.models.document import Document
from app.models.action import ApplicationAction
from app.models.inspection import InspectionOrder, InspectionReport
from app.models.payment import HimkoshTransaction, Payment
from app.models.setting import SystemSetting
from app.models.notification import Notification, SendBackOtp
from app.models.grievance import Grievance, GrievanceComment, GrievanceAuditLog

__all__ = [
    # Base classes
    "Base",
    "TimestampMixin",
    "UUIDMixin",
    "ModelMixin",
    # Models
    "User",
    "HomestayApplication",
    "ApplicationSequence",
    "Document",
    "ApplicationAction",
    "InspectionOrder",
    "InspectionReport",
    "HimkoshTransaction",
    "Payment",
    "SystemSetting",
    "Notification",
    "SendBackOtp",
    "Grievance",
    "GrievanceComment",
    "GrievanceAuditLog",
]
