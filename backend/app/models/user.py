"""
User model for owners and officers.

Property owners register themselves; officer accounts (DA, DTDO, state,
admin) are provisioned by seed scripts or admins and are bound to a
district where the role requires one.
"""

from sqlalchemy import Boolean, Column, Index, String

from app.models.base import Base, UUIDMixin, TimestampMixin


class User(Base, UUIDMixin, TimestampMixin):
    """
    Portal user.

    Attributes:
        id: UUID primary key (from UUIDMixin)
        username: Unique login name
        hashed_password: Bcrypt-hashed password (never store plaintext)
        role: One of app.core.security.ROLES
        full_name: Display name used on timelines and notifications
        mobile: 10-digit mobile number
        email: Optional email address
        district: District the officer serves (None for state/admin roles)
        is_active: Disabled accounts cannot log in

    Security considerations:
        - Never log or expose hashed_password
    """

    __tablename__ = "users"

    username = Column(
        String,
        nullable=False,
        unique=True,
        index=True,
        doc="Unique username for authentication"
    )

    hashed_password = Column(
        String,
        nullable=False,
        doc="Bcrypt-hashed password (never store plaintext)"
    )

    role = Column(String(40), nullable=False, default="property_owner")
    full_name = Column(String(200), nullable=True)
    mobile = Column(String(15), nullable=True)
    email = Column(String(255), nullable=True)
    district = Column(String(100), nullable=True)
    is_active = Column(Boolean, nullable=False, default=True)

    __table_args__ = (
        Index("idx_users_role_district", "role", "district"),
    )

    def __repr__(self) -> str:
        return f"User(id={self.id!r}, username={self.username!r}, role={self.role!r})"
