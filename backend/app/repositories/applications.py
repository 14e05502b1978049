"""
Application repository.

Queries around HomestayApplication and its satellites (documents, audit
actions, inspection orders and reports). District scoping for officer
queues lives here too.
"""

from typing import Dict, List, Optional

from sqlalchemy import desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.districts import normalize_district
from app.core.errors import ApplicationNotFound
from app.models.action import ApplicationAction
from app.models.application import HomestayApplication
from app.models.document import Document
from app.models.inspection import InspectionOrder, InspectionReport


def district_clause(column, district: str):
    """SQL predicate matching ``column`` against ``district`` loosely."""
    normalized = normalize_district(district)
    return func.lower(func.trim(column)).in_([normalized, f"{normalized} district"])


class ApplicationRepository:
    """
    Repository for application data access.

    Attributes:
        session: SQLAlchemy async session for database operations
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, application_id: str) -> Optional[HomestayApplication]:
        return await self.session.get(HomestayApplication, application_id)

    async def get_or_404(self, application_id: str) -> HomestayApplication:
        """
        Raises:
            ApplicationNotFound: If no application has this id
        """
        application = await self.get(application_id)
        if application is None:
            raise ApplicationNotFound()
        return application

    async def get_by_number(self, application_number: str) -> Optional[HomestayApplication]:
        result = await self.session.execute(
            select(HomestayApplication).where(
                HomestayApplication.application_number == application_number
            )
        )
        return result.scalar_one_or_none()

    async def get_by_certificate(self, certificate_number: str) -> Optional[HomestayApplication]:
        result = await self.session.execute(
            select(HomestayApplication).where(
                HomestayApplication.certificate_number == certificate_number
            )
        )
        return result.scalar_one_or_none()

    async def list_for_owner(self, user_id: str) -> List[HomestayApplication]:
        result = await self.session.execute(
            select(HomestayApplication)
            .where(HomestayApplication.user_id == user_id)
            .order_by(desc(HomestayApplication.created_at))
        )
        return list(result.scalars().all())

    async def list_for_district(
        self,
        district: str,
        statuses: Optional[List[str]] = None,
        newest_by: str = "created_at",
    ) -> List[HomestayApplication]:
        stmt = select(HomestayApplication).where(
            district_clause(HomestayApplication.district, district)
        )
        if statuses:
            stmt = stmt.where(HomestayApplication.status.in_(statuses))
        stmt = stmt.order_by(desc(getattr(HomestayApplication, newest_by)))
        result = await self.session.execute(stmt)
        return list(result.scalars().all())

    async def list_approved(self, district: Optional[str] = None) -> List[HomestayApplication]:
        stmt = select(HomestayApplication).where(HomestayApplication.status == "approved")
        if district:
            stmt = stmt.where(district_clause(HomestayApplication.district, district))
        result = await self.session.execute(
            stmt.order_by(HomestayApplication.property_name)
        )
        return list(result.scalars().all())

    async def find_for_tracking(
        self,
        application_number: Optional[str] = None,
        aadhaar: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> List[HomestayApplication]:
        stmt = select(HomestayApplication)
        if application_number:
            stmt = stmt.where(HomestayApplication.application_number == application_number.strip())
        elif aadhaar:
            stmt = stmt.where(HomestayApplication.owner_aadhaar == aadhaar.strip())
        elif phone:
            stmt = stmt.where(HomestayApplication.owner_mobile == phone.strip())
        else:
            return []
        result = await self.session.execute(
            stmt.order_by(desc(HomestayApplication.created_at))
        )
        return list(result.scalars().all())

    # Documents

    async def list_documents(self, application_id: str) -> List[Document]:
        result = await self.session.execute(
            select(Document)
            .where(Document.application_id == application_id)
            .order_by(Document.created_at)
        )
        return list(result.scalars().all())

    # Audit actions

    async def list_actions(self, application_id: str) -> List[ApplicationAction]:
        """Actions oldest first."""
        result = await self.session.execute(
            select(ApplicationAction)
            .where(ApplicationAction.application_id == application_id)
            .order_by(ApplicationAction.created_at)
        )
        return list(result.scalars().all())

    async def list_actions_of_type(
        self,
        application_id: str,
        action: str,
    ) -> List[ApplicationAction]:
        """Actions of one type, newest first."""
        result = await self.session.execute(
            select(ApplicationAction)
            .where(
                ApplicationAction.application_id == application_id,
                ApplicationAction.action == action,
            )
            .order_by(desc(ApplicationAction.created_at))
        )
        return list(result.scalars().all())

    async def has_action(self, application_id: str, action: str) -> bool:
        result = await self.session.execute(
            select(ApplicationAction.id)
            .where(
                ApplicationAction.application_id == application_id,
                ApplicationAction.action == action,
            )
            .limit(1)
        )
        return result.scalar_one_or_none() is not None

    async def latest_action(self, application_id: str, action: str) -> Optional[ApplicationAction]:
        result = await self.session.execute(
            select(ApplicationAction)
            .where(
                ApplicationAction.application_id == application_id,
                ApplicationAction.action == action,
            )
            .order_by(desc(ApplicationAction.created_at))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def latest_corrections(self, application_ids: List[str]) -> Dict[str, ApplicationAction]:
        """Most recent correction_resubmitted action per application."""
        if not application_ids:
            return {}
        result = await self.session.execute(
            select(ApplicationAction)
            .where(
                ApplicationAction.application_id.in_(application_ids),
                ApplicationAction.action == "correction_resubmitted",
            )
            .order_by(desc(ApplicationAction.created_at))
        )
        latest: Dict[str, ApplicationAction] = {}
        for row in result.scalars().all():
            latest.setdefault(row.application_id, row)
        return latest

    # Inspections

    async def latest_inspection_order(self, application_id: str) -> Optional[InspectionOrder]:
        result = await self.session.execute(
            select(InspectionOrder)
            .where(InspectionOrder.application_id == application_id)
            .order_by(desc(InspectionOrder.created_at))
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def get_report_for_order(self, order_id: str) -> Optional[InspectionReport]:
        result = await self.session.execute(
            select(InspectionReport).where(InspectionReport.inspection_order_id == order_id)
        )
        return result.scalar_one_or_none()
