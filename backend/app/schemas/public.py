"""
Schemas for unauthenticated public endpoints and notifications.
"""

from typing import Dict, List, Optional

from app.schemas.common import CamelModel


class TrackedApplication(CamelModel):
    """Status card shown on the public tracking page (personal data masked)."""
    application_number: str
    property_name: Optional[str] = None
    district: Optional[str] = None
    owner_name: Optional[str] = None
    owner_aadhaar: Optional[str] = None
    owner_mobile: Optional[str] = None
    display_status: str
    display_label: str
    submitted_at: Optional[str] = None
    last_updated: Optional[str] = None


class TrackResponse(CamelModel):
    results: List[TrackedApplication]


class CertificateVerification(CamelModel):
    certificate_number: str
    validity: str
    property_name: Optional[str] = None
    district: Optional[str] = None
    category: Optional[str] = None
    issued_date: Optional[str] = None
    expiry_date: Optional[str] = None


class PublicProperty(CamelModel):
    property_name: Optional[str] = None
    district: Optional[str] = None
    category: Optional[str] = None
    certificate_number: Optional[str] = None


class FeatureFlagsResponse(CamelModel):
    flags: Dict[str, bool]


class NotificationResponse(CamelModel):
    id: str
    application_id: Optional[str] = None
    event: str
    title: str
    message: str
    is_read: bool
    channels: List[str] = []
    created_at: str

    @classmethod
    def from_model(cls, notification) -> "NotificationResponse":
        return cls.from_row(notification, channels=notification.get_channels())
