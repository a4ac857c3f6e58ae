"""
Request models for user operations.
"""

from datetime import date
from typing import Literal, Optional

from pydantic import BaseModel, Field

from ..access.models import Role
from ..eligibility.levels import is_known_level


class AddressUpdate(BaseModel):
    street: str
    city: str
    state: str
    country: str
    postal_code: Optional[str] = None


class AcademicInfoUpdate(BaseModel):
    current_level: Optional[str] = None
    current_school: Optional[str] = None
    school_type: Optional[Literal["public", "private", "international"]] = None
    last_grade_percentage: Optional[float] = Field(None, ge=0, le=100)


class ProfileUpdateRequest(BaseModel):
    """Profile patch. Unset fields are left unchanged."""
    first_name: Optional[str] = Field(None, min_length=1)
    last_name: Optional[str] = Field(None, min_length=1)
    phone: Optional[str] = None
    date_of_birth: Optional[date] = None
    gender: Optional[Literal["male", "female", "other"]] = None
    address: Optional[AddressUpdate] = None
    academic_info: Optional[AcademicInfoUpdate] = None

    def provided(self) -> dict:
        """Fields that carry a value."""
        return {name: getattr(self, name) for name in self.model_fields_set if getattr(self, name) is not None}

    def has_unknown_level(self) -> bool:
        level = self.academic_info.current_level if self.academic_info else None
        return level is not None and not is_known_level(level)


class DeactivateUserRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class ChangeRoleRequest(BaseModel):
    role: Role


class AssignTenantRequest(BaseModel):
    tenant_id: str = Field(..., min_length=1)


class InviteUserRequest(BaseModel):
    email: str = Field(..., pattern=r"^[^@\s]+@[^@\s]+$")
    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    role: Role = Role.BENEFICIARY
    message: Optional[str] = None
