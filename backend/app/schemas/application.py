"""
Schemas for homestay applications, documents, inspections and timelines.
"""

from typing import Any, Dict, List, Literal, Optional

from pydantic import Field

from app.core.workflow import consolidate_status, display_label
from app.schemas.common import CamelModel, UserSummary


class ApplicationForm(CamelModel):
    """
    Owner-editable application fields. Every field is optional so the
    same schema serves draft saves and partial corrections.
    """
    property_name: Optional[str] = Field(default=None, max_length=200)
    category: Optional[Literal["diamond", "gold", "silver"]] = None
    location_type: Optional[Literal["mc", "tcp", "gp"]] = None
    address: Optional[str] = None
    district: Optional[str] = Field(default=None, max_length=100)
    tehsil: Optional[str] = Field(default=None, max_length=100)
    pincode: Optional[str] = Field(default=None, pattern=r"^\d{6}$")

    owner_name: Optional[str] = Field(default=None, max_length=200)
    owner_gender: Optional[Literal["male", "female", "other"]] = None
    owner_mobile: Optional[str] = Field(default=None, pattern=r"^[6-9]\d{9}$")
    owner_email: Optional[str] = None
    owner_aadhaar: Optional[str] = Field(default=None, pattern=r"^\d{12}$")
    gstin: Optional[str] = None

    single_bed_rooms: Optional[int] = Field(default=None, ge=0)
    single_bed_beds: Optional[int] = Field(default=None, ge=0)
    single_bed_room_rate: Optional[float] = Field(default=None, ge=0)
    double_bed_rooms: Optional[int] = Field(default=None, ge=0)
    double_bed_beds: Optional[int] = Field(default=None, ge=0)
    double_bed_room_rate: Optional[float] = Field(default=None, ge=0)
    family_suites: Optional[int] = Field(default=None, ge=0)
    family_suite_beds: Optional[int] = Field(default=None, ge=0)
    family_suite_rate: Optional[float] = Field(default=None, ge=0)
    attached_washrooms: Optional[int] = Field(default=None, ge=0)
    validity_years: Optional[Literal[1, 3]] = None

    def changes(self) -> Dict[str, Any]:
        """Only the fields the client actually sent."""
        return self.model_dump(exclude_unset=True)


class CorrectionRequest(ApplicationForm):
    consent_text: Optional[str] = Field(
        default=None,
        description="Owner's confirmation that the requested corrections were made",
    )

    def changes(self) -> Dict[str, Any]:
        return self.model_dump(exclude_unset=True, exclude={"consent_text"})


class CancellationRequest(CamelModel):
    reason: str = Field(..., min_length=1)


class ApplicationResponse(CamelModel):
    """Full application as seen by its owner or an officer."""
    id: str
    user_id: str
    application_number: str
    application_kind: str
    parent_application_id: Optional[str] = None
    is_legacy: bool = False

    property_name: Optional[str] = None
    category: Optional[str] = None
    location_type: Optional[str] = None
    address: Optional[str] = None
    district: Optional[str] = None
    tehsil: Optional[str] = None
    pincode: Optional[str] = None

    owner_name: Optional[str] = None
    owner_gender: Optional[str] = None
    owner_mobile: Optional[str] = None
    owner_email: Optional[str] = None
    owner_aadhaar: Optional[str] = None
    gstin: Optional[str] = None

    single_bed_rooms: int = 0
    single_bed_beds: Optional[int] = None
    single_bed_room_rate: Optional[float] = None
    double_bed_rooms: int = 0
    double_bed_beds: Optional[int] = None
    double_bed_room_rate: Optional[float] = None
    family_suites: int = 0
    family_suite_beds: Optional[int] = None
    family_suite_rate: Optional[float] = None
    attached_washrooms: int = 0
    total_rooms: int = 0

    validity_years: int = 1
    base_fee: Optional[float] = None
    total_fee: Optional[float] = None
    fee_breakdown: Dict[str, Any] = Field(default_factory=dict)

    status: str
    display_status: str
    display_label: str
    revert_count: int = 0
    correction_submission_count: int = 0
    clarification_requested: Optional[str] = None
    rejection_reason: Optional[str] = None
    submitted_at: Optional[str] = None

    da_id: Optional[str] = None
    da_remarks: Optional[str] = None
    da_review_date: Optional[str] = None
    da_forwarded_date: Optional[str] = None
    dtdo_id: Optional[str] = None
    dtdo_remarks: Optional[str] = None
    district_notes: Optional[str] = None
    district_review_date: Optional[str] = None

    assigned_dealing_assistant_id: Optional[str] = None
    inspection_date: Optional[str] = None
    inspection_status: Optional[str] = None
    site_inspection_outcome: Optional[str] = None

    payment_status: Optional[str] = None
    payment_amount: Optional[float] = None
    payment_date: Optional[str] = None

    certificate_number: Optional[str] = None
    certificate_issued_date: Optional[str] = None
    certificate_expiry_date: Optional[str] = None
    approved_at: Optional[str] = None

    created_at: str
    updated_at: str

    @classmethod
    def from_model(cls, application) -> "ApplicationResponse":
        return cls.from_row(
            application,
            fee_breakdown=application.get_fee_breakdown(),
            display_status=consolidate_status(application.status),
            display_label=display_label(application.status),
        )


class DocumentCreate(CamelModel):
    document_type: str = Field(..., min_length=1, max_length=60)
    file_name: str = Field(..., min_length=1, max_length=255)
    file_path: str = Field(..., min_length=1, max_length=500)
    mime_type: Optional[str] = None


class DocumentResponse(CamelModel):
    id: str
    application_id: str
    document_type: str
    file_name: str
    file_path: str
    mime_type: Optional[str] = None
    verification_status: str
    verification_notes: Optional[str] = None
    is_verified: bool
    verified_by: Optional[str] = None
    verification_date: Optional[str] = None
    created_at: str


class InspectionOrderResponse(CamelModel):
    id: str
    application_id: str
    scheduled_by: Optional[str] = None
    scheduled_date: str
    assigned_to: Optional[str] = None
    assigned_date: str
    inspection_date: str
    inspection_address: Optional[str] = None
    special_instructions: Optional[str] = None
    status: str


class InspectionReportResponse(CamelModel):
    id: str
    inspection_order_id: str
    application_id: str
    submitted_by: Optional[str] = None
    actual_inspection_date: str
    recommendation: str
    mandatory_remarks: Optional[str] = None
    findings: Dict[str, Any] = Field(default_factory=dict)
    early_inspection_override: bool = False
    early_inspection_reason: Optional[str] = None
    created_at: str

    @classmethod
    def from_model(cls, report) -> "InspectionReportResponse":
        return cls.from_row(report, findings=report.get_findings())


class InspectionScheduleResponse(CamelModel):
    order: Optional[InspectionOrderResponse] = None
    acknowledged_at: Optional[str] = None


class OwnerInspectionReport(CamelModel):
    """Inspection as the applicant sees it; ``report`` stays null until the DA files it."""
    application: ApplicationResponse
    order: InspectionOrderResponse
    report: Optional[InspectionReportResponse] = None
    owner: Optional[UserSummary] = None
    da: Optional[UserSummary] = None
    dtdo: Optional[UserSummary] = None


class PrimaryApplicationResponse(CamelModel):
    application: Optional[ApplicationResponse] = None


class TimelineEntry(CamelModel):
    id: str
    action: str
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    feedback: Optional[str] = None
    created_at: str
    actor: Optional[UserSummary] = None


class CorrectionNote(CamelModel):
    created_at: str
    feedback: Optional[str] = None


class ApplicationListItem(CamelModel):
    """Queue row for officer dashboards."""
    application: ApplicationResponse
    owner_name: Optional[str] = None
    owner_mobile: Optional[str] = None
    da_name: Optional[str] = None
    latest_correction: Optional[CorrectionNote] = None


class ApplicationDetail(CamelModel):
    application: ApplicationResponse
    owner: Optional[UserSummary] = None
    documents: List[DocumentResponse] = Field(default_factory=list)
    send_back_enabled: Optional[bool] = None
    legacy_forward_enabled: Optional[bool] = None
    correction_history: List[CorrectionNote] = Field(default_factory=list)
    inspection_order: Optional[InspectionOrderResponse] = None
    inspection_report: Optional[InspectionReportResponse] = None


def _correction(note: Optional[Dict[str, Any]]) -> Optional[CorrectionNote]:
    return CorrectionNote(**note) if note else None


def list_item(row: Dict[str, Any]) -> ApplicationListItem:
    """Build a queue row from the dict the review services return."""
    owner = row.get("owner")
    return ApplicationListItem(
        application=ApplicationResponse.from_model(row["application"]),
        owner_name=owner.full_name if owner else None,
        owner_mobile=owner.mobile if owner else None,
        da_name=row.get("da_name"),
        latest_correction=_correction(row.get("latest_correction")),
    )


def detail(data: Dict[str, Any]) -> ApplicationDetail:
    """Build an officer detail view from the dict the review services return."""
    owner = data.get("owner")
    order = data.get("inspection_order")
    report = data.get("inspection_report")
    return ApplicationDetail(
        application=ApplicationResponse.from_model(data["application"]),
        owner=UserSummary.from_row(owner) if owner else None,
        documents=[DocumentResponse.from_row(d) for d in data.get("documents", [])],
        send_back_enabled=data.get("send_back_enabled"),
        legacy_forward_enabled=data.get("legacy_forward_enabled"),
        correction_history=[CorrectionNote(**c) for c in data.get("correction_history", [])],
        inspection_order=InspectionOrderResponse.from_row(order) if order else None,
        inspection_report=InspectionReportResponse.from_model(report) if report else None,
    )
