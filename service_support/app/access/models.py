"""
User and identity models for the access layer.
"""

from dataclasses import dataclass, field, asdict
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return date.fromisoformat(str(value)[:10])


def parse_datetime(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value is None:
        return utc_now()
    return datetime.fromisoformat(str(value))


class Role(str, Enum):
    """User roles. Closed set, not ordered."""
    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    REVIEWER = "reviewer"
    BENEFICIARY = "beneficiary"
    GUARDIAN = "guardian"


ADMIN_ROLES = frozenset({Role.ADMIN, Role.SUPER_ADMIN})
ALL_ROLES = frozenset(Role)


@dataclass(frozen=True)
class Identity:
    """An authenticated external principal."""
    subject: str
    email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    claims: Dict[str, Any] = field(default_factory=dict, compare=False, hash=False)


@dataclass
class Address:
    street: str
    city: str
    state: str
    country: str
    postal_code: Optional[str] = None


@dataclass
class AcademicInfo:
    """Current schooling details of a beneficiary."""
    current_level: Optional[str] = None
    current_school: Optional[str] = None
    school_type: Optional[str] = None
    last_grade_percentage: Optional[float] = None


@dataclass
class UserProfile:
    date_of_birth: Optional[date] = None
    gender: Optional[str] = None
    address: Optional[Address] = None
    academic_info: Optional[AcademicInfo] = None

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> Optional["UserProfile"]:
        if data is None:
            return None
        address = data.get("address")
        academic = data.get("academic_info")
        return cls(
            date_of_birth=parse_date(data.get("date_of_birth")),
            gender=data.get("gender"),
            address=Address(**address) if address else None,
            academic_info=AcademicInfo(**academic) if academic else None,
        )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.date_of_birth:
            data["date_of_birth"] = self.date_of_birth.isoformat()
        return data


@dataclass
class User:
    """Stored user record.

    Invited users have no ``subject`` and stay inactive until the invitee
    first signs in.
    """
    id: str
    subject: Optional[str]
    email: str
    first_name: str
    last_name: str
    role: Role = Role.BENEFICIARY
    is_active: bool = True
    tenant_id: Optional[str] = None
    phone: Optional[str] = None
    profile: Optional[UserProfile] = None
    invited_by: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def is_admin(self) -> bool:
        return self.role in ADMIN_ROLES

    @property
    def is_pending_invitation(self) -> bool:
        return self.subject is None and not self.is_active

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            subject=data.get("subject"),
            email=data["email"],
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
            role=Role(data.get("role", Role.BENEFICIARY.value)),
            is_active=data.get("is_active", True),
            tenant_id=data.get("tenant_id"),
            phone=data.get("phone"),
            profile=UserProfile.from_dict(data.get("profile")),
            invited_by=data.get("invited_by"),
            created_at=parse_datetime(data.get("created_at")),
            updated_at=parse_datetime(data.get("updated_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "subject": self.subject,
            "email": self.email,
            "first_name": self.first_name,
            "last_name": self.last_name,
            "role": self.role.value,
            "is_active": self.is_active,
            "tenant_id": self.tenant_id,
            "phone": self.phone,
            "profile": self.profile.to_dict() if self.profile else None,
            "invited_by": self.invited_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }


@dataclass
class Tenant:
    """A foundation owning its own users, programs and audit trail."""
    id: str
    name: str
    description: Optional[str] = None
    settings: Dict[str, Any] = field(default_factory=dict)
    is_active: bool = True
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tenant":
        return cls(
            id=data["id"],
            name=data["name"],
            description=data.get("description"),
            settings=data.get("settings") or {},
            is_active=data.get("is_active", True),
            created_at=parse_datetime(data.get("created_at")),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "settings": self.settings,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat(),
        }
