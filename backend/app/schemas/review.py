"""
Schemas for officer review endpoints (DA scrutiny, DTDO review, DA inspections).
"""

from datetime import date
from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from app.schemas.application import (
    ApplicationResponse,
    DocumentResponse,
    InspectionOrderResponse,
    InspectionReportResponse,
)
from app.schemas.common import CamelModel


class RemarksRequest(CamelModel):
    remarks: Optional[str] = Field(default=None, description="Officer remarks / reason")


class DocumentVerification(CamelModel):
    document_id: str
    status: Literal["pending", "verified", "needs_correction", "rejected"]
    notes: Optional[str] = None


class SaveScrutinyRequest(CamelModel):
    verifications: List[DocumentVerification] = Field(default_factory=list)


class SendBackRequest(CamelModel):
    reason: Optional[str] = None
    otp_code: Optional[str] = Field(default=None, pattern=r"^\d{6}$")


class SendBackResponse(CamelModel):
    application: ApplicationResponse
    auto_rejected: bool
    new_revert_count: int
    warning: Optional[str] = None


class RevertResponse(CamelModel):
    application: ApplicationResponse
    auto_rejected: bool


class OtpIssuedResponse(CamelModel):
    message: str
    expires_at: str
    recipients: int


class ScheduleInspectionRequest(CamelModel):
    application_id: Optional[str] = None
    inspection_date: Optional[str] = None
    assigned_to: Optional[str] = None
    special_instructions: Optional[str] = None


class AvailableDA(CamelModel):
    id: str
    username: str
    full_name: Optional[str] = None
    mobile: Optional[str] = None
    district: Optional[str] = None


class InspectionReportBundle(CamelModel):
    application: ApplicationResponse
    order: InspectionOrderResponse
    report: InspectionReportResponse


class SubmitReportRequest(CamelModel):
    """
    DA inspection report.

    Attributes:
        actual_inspection_date: Day the site was visited (not in the future)
        recommendation: approve | raise_objections | reject
        early_inspection_override: Must be true when the visit happened
            before the scheduled date
        early_inspection_reason: Justification for an early visit
    """
    actual_inspection_date: Optional[date] = None
    recommendation: Literal["approve", "raise_objections", "reject"]
    mandatory_remarks: Optional[str] = None
    findings: Dict[str, Any] = Field(default_factory=dict)
    early_inspection_override: bool = False
    early_inspection_reason: Optional[str] = None


class InspectionListItem(CamelModel):
    order: InspectionOrderResponse
    application: Optional[ApplicationResponse] = None
    report_submitted: bool


class InspectionDetail(CamelModel):
    order: InspectionOrderResponse
    application: ApplicationResponse
    documents: List[DocumentResponse] = Field(default_factory=list)
    report: Optional[InspectionReportResponse] = None
