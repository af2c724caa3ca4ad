"""Credential (API key) model.

A credential is the only identity in the system: its identifier is the
API key handed to the caller, and its role decides which routes it may
use.
"""

import enum
from datetime import datetime

from sqlalchemy import DateTime, Enum, String
from sqlalchemy.orm import Mapped, mapped_column

from weather_api.models.base import Base


class Role(str, enum.Enum):
    """Roles for key-based access control.

    - CLIENT: read-only access to reading queries
    - STATION: may add and modify readings
    - ADMIN: may additionally manage other API keys
    """

    CLIENT = "client"
    STATION = "station"
    ADMIN = "admin"


ALL_ROLES = frozenset(Role)


class Credential(Base):
    """An issued API key.

    Attributes:
        id: 24-hex-character object identifier, also the API key itself
        role: Current role (only reassigned by admin role-change routes)
        created_at: Issue timestamp, never modified
    """

    __tablename__ = "access"

    id: Mapped[str] = mapped_column(String(24), primary_key=True)
    role: Mapped[Role] = mapped_column(
        Enum(
            Role,
            name="credentialrole",
            values_callable=lambda e: [member.value for member in e],
        ),
        nullable=False,
        default=Role.CLIENT,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Credential(id={self.id}, role={self.role.value})>"
