# slotbook/models/user.py
"""
Public user profile for providers and clients.

Credentials and sessions belong to the external identity provider; this
table only holds the profile fields the booking core projects and prices
from (name, contact details, hourly rate, category, image URL).
"""

from sqlalchemy import CheckConstraint, Column, Numeric, String, Text
import ulid

from ..core.enums import ProviderCategory, RoleName
from ..database import Base
from .types import UTCDateTime, utcnow


class User(Base):
    """
    Provider or client profile keyed by the identity provider's user id.

    Attributes:
        id: Identity provider user id
        name: Display name
        email: Contact email
        phone_number: Contact phone (optional)
        role: CLIENT or PROVIDER
        hourly_rate: Provider rate used to derive booking cost (optional)
        category: Provider service category
        description: Free-text bio
        image: Profile image URL managed by media storage
    """

    __tablename__ = "users"

    id = Column(String(64), primary_key=True, default=lambda: str(ulid.ULID()))
    name = Column(String(120), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    phone_number = Column(String(30), nullable=True)
    role = Column(String(20), nullable=False, default=RoleName.CLIENT.value)

    hourly_rate = Column(Numeric(10, 2), nullable=True)
    category = Column(String(30), nullable=False, default=ProviderCategory.OTHER.value)
    description = Column(Text, nullable=True)
    address = Column(Text, nullable=True)
    image = Column(String(512), nullable=True)

    created_at = Column(UTCDateTime(), nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime(), nullable=True, onupdate=utcnow)

    __table_args__ = (
        CheckConstraint("role IN ('CLIENT', 'PROVIDER')", name="ck_users_role"),
        CheckConstraint("hourly_rate IS NULL OR hourly_rate >= 0", name="ck_users_hourly_rate"),
    )

    def __repr__(self) -> str:
        return f"<User(id={self.id}, role={self.role})>"
