"""
Unauthenticated public endpoints.

Application tracking (personal data masked), certificate verification,
the approved property directory and feature flags.
"""

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status

from app.api.dependencies import DatabaseSession
from app.core.features import FEATURE_FLAGS, is_feature_enabled
from app.core.workflow import consolidate_status, display_label
from app.repositories.applications import ApplicationRepository
from app.schemas.public import (
    CertificateVerification,
    FeatureFlagsResponse,
    PublicProperty,
    TrackedApplication,
    TrackResponse,
)
from app.services.certificates import certificate_summary

router = APIRouter(prefix="/public")


def mask_digits(value: Optional[str], visible: int = 4) -> Optional[str]:
    """Keep the last ``visible`` characters: 123456789012 -> XXXXXXXX9012."""
    if not value:
        return value
    if len(value) <= visible:
        return "X" * len(value)
    return "X" * (len(value) - visible) + value[-visible:]


def mask_name(value: Optional[str]) -> Optional[str]:
    """Keep the first letter of each word: Ram Lal -> R** L**."""
    if not value:
        return value
    return " ".join(word[0] + "*" * (len(word) - 1) for word in value.split())


@router.get(
    "/track",
    response_model=TrackResponse,
    summary="Track an application",
    description="Look up applications by application number, full Aadhaar number or mobile",
)
async def track_application(
    db: DatabaseSession,
    application_number: Optional[str] = Query(default=None, alias="applicationNumber"),
    aadhaar: Optional[str] = Query(default=None, pattern=r"^\d{12}$"),
    phone: Optional[str] = Query(default=None),
) -> TrackResponse:
    """
    Raises:
        HTTPException 400: If no search parameter is given
        HTTPException 404: If nothing matches
    """
    if not (application_number or aadhaar or phone):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please provide applicationNumber, aadhaar or phone",
        )

    applications = await ApplicationRepository(db).find_for_tracking(
        application_number=application_number, aadhaar=aadhaar, phone=phone
    )
    if not applications:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Application not found")

    return TrackResponse(results=[
        TrackedApplication(
            application_number=a.application_number,
            property_name=a.property_name,
            district=a.district,
            owner_name=mask_name(a.owner_name),
            owner_aadhaar=mask_digits(a.owner_aadhaar),
            owner_mobile=mask_digits(a.owner_mobile),
            display_status=consolidate_status(a.status),
            display_label=display_label(a.status),
            submitted_at=a.submitted_at,
            last_updated=a.updated_at,
        )
        for a in applications
    ])


@router.get(
    "/certificates/{certificate_number}",
    response_model=CertificateVerification,
    summary="Verify a certificate",
)
async def verify_certificate(certificate_number: str, db: DatabaseSession) -> CertificateVerification:
    """Validity is ``valid``, ``expired`` or ``cancelled``."""
    application = await ApplicationRepository(db).get_by_certificate(certificate_number.strip())
    if application is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Certificate not found")
    return CertificateVerification(**certificate_summary(application))


@router.get(
    "/properties",
    response_model=List[PublicProperty],
    summary="Registered homestays",
)
async def list_properties(
    db: DatabaseSession,
    district: Optional[str] = Query(default=None),
) -> List[PublicProperty]:
    applications = await ApplicationRepository(db).list_approved(district)
    return [PublicProperty.from_row(a) for a in applications]


@router.get(
    "/features",
    response_model=FeatureFlagsResponse,
    summary="Feature flags",
)
async def feature_flags() -> FeatureFlagsResponse:
    return FeatureFlagsResponse(flags={flag: is_feature_enabled(flag) for flag in FEATURE_FLAGS})
