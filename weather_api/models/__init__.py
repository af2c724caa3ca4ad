# Database Models
from weather_api.models.base import Base
from weather_api.models.credential import ALL_ROLES, Credential, Role
from weather_api.models.reading import READING_FIELD_LABELS, Reading

__all__ = [
    "ALL_ROLES",
    "Base",
    "Credential",
    "READING_FIELD_LABELS",
    "Reading",
    "Role",
]
