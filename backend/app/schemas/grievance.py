"""
Schemas for grievance tickets.
"""

from typing import List, Literal, Optional

from pydantic import Field

from app.schemas.common import CamelModel


class GrievanceCreate(CamelModel):
    subject: str = Field(..., min_length=1, max_length=255)
    description: str = Field(..., min_length=1)
    category: str = Field(default="general", max_length=50)
    priority: Literal["low", "medium", "high", "urgent"] = "medium"
    ticket_type: Literal["owner_grievance", "internal_ticket"] = "owner_grievance"
    application_id: Optional[str] = None


class GrievanceUpdate(CamelModel):
    status: Optional[Literal["open", "in_progress", "resolved", "closed"]] = None
    priority: Optional[Literal["low", "medium", "high", "urgent"]] = None
    assigned_to: Optional[str] = None
    resolution_notes: Optional[str] = None


class CommentCreate(CamelModel):
    comment: str = Field(..., min_length=1)
    is_internal: bool = False


class CommentResponse(CamelModel):
    id: str
    grievance_id: str
    user_id: Optional[str] = None
    comment: str
    is_internal: bool
    created_at: str


class GrievanceResponse(CamelModel):
    id: str
    ticket_number: str
    ticket_type: str
    user_id: str
    application_id: Optional[str] = None
    category: str
    priority: str
    status: str
    subject: str
    description: str
    assigned_to: Optional[str] = None
    resolution_notes: Optional[str] = None
    resolved_at: Optional[str] = None
    last_comment_at: Optional[str] = None
    unread: bool = False
    created_at: str
    updated_at: str


class GrievanceDetail(CamelModel):
    grievance: GrievanceResponse
    comments: List[CommentResponse]


class AuditLogEntry(CamelModel):
    id: str
    action: str
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    performed_by: Optional[str] = None
    ip_address: Optional[str] = None
    created_at: str


class UnreadCountResponse(CamelModel):
    count: int


# Reports

class CategoryCount(CamelModel):
    category: str
    count: int


class StatusCount(CamelModel):
    status: str
    count: int


class PriorityCount(CamelModel):
    priority: str
    count: int


class MonthCount(CamelModel):
    month: str
    count: int


class SummaryTotals(CamelModel):
    total: int = 0
    open: int = 0
    in_progress: int = 0
    resolved: int = 0
    closed: int = 0


class RecentIntake(CamelModel):
    new_tickets: int = 0
    resolved_tickets: int = 0


class GrievanceSummary(CamelModel):
    totals: SummaryTotals
    average_resolution_days: float = 0.0
    last_30_days: RecentIntake
