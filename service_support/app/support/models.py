"""
Support configuration models.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from ..access.models import utc_now, parse_datetime
from ..eligibility.levels import ALL_LEVELS, LEVEL_GROUPS, is_known_level

Currency = Literal["NGN", "USD"]
Frequency = Literal["once", "termly", "monthly", "yearly", "per_semester"]


class EligibilityRules(BaseModel):
    """Predicate a user profile must satisfy. Unset fields are not checked."""
    min_academic_level: Optional[str] = None
    max_academic_level: Optional[str] = None
    min_age: Optional[int] = Field(None, ge=0)
    max_age: Optional[int] = Field(None, ge=0)
    requires_min_grade: Optional[float] = Field(None, ge=0, le=100)
    gender_restriction: Optional[Literal["male", "female"]] = None
    school_type_restriction: Optional[List[str]] = None
    special_conditions: Optional[List[str]] = None

    @field_validator("min_academic_level", "max_academic_level")
    @classmethod
    def _known_level(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not is_known_level(value):
            raise ValueError(f"unknown academic level: {value}")
        return value


class SchoolTypeMultipliers(BaseModel):
    public: float = 1.0
    private: float = 1.0
    international: float = 1.0

    def for_school_type(self, school_type: str) -> float:
        if school_type not in type(self).model_fields:
            return 1.0
        # a zero multiplier is treated as unset
        return getattr(self, school_type) or 1.0


class AmountTier(BaseModel):
    """Amounts paid to one academic level group."""
    academic_level: str
    min_amount: float = Field(..., ge=0)
    max_amount: float = Field(..., ge=0)
    default_amount: float = Field(..., ge=0)
    currency: Currency = "NGN"
    frequency: Frequency = "once"
    school_type_multipliers: Optional[SchoolTypeMultipliers] = None

    @field_validator("academic_level")
    @classmethod
    def _known_group(cls, value: str) -> str:
        if value != ALL_LEVELS and value not in LEVEL_GROUPS:
            raise ValueError(f"academic_level must be one of {', '.join(LEVEL_GROUPS)} or '{ALL_LEVELS}'")
        return value

    @model_validator(mode="after")
    def _ordered_amounts(self) -> "AmountTier":
        if self.min_amount > self.max_amount:
            raise ValueError("min_amount must not exceed max_amount")
        return self


class RequiredDocument(BaseModel):
    document_type: str
    display_name: str
    description: Optional[str] = None
    is_mandatory: bool = True
    validity_period: Optional[int] = Field(None, description="Validity in days")


class ApplicationSettings(BaseModel):
    allow_multiple_applications: bool = False
    application_deadline: Optional[str] = None
    auto_approval_threshold: Optional[float] = None
    requires_guardian_consent: bool = False
    requires_academic_verification: bool = False
    processing_days: int = 7


class PerformanceRequirements(BaseModel):
    min_attendance: Optional[float] = None
    min_grade_for_renewal: Optional[float] = None
    improvement_required: Optional[bool] = None
    review_frequency: Optional[str] = None


class PriorityWeights(BaseModel):
    """Signed scoring weights. Not required to sum to one."""
    academic_performance: float = 0.0
    financial_need: float = 0.0
    attendance: float = 0.0
    special_circumstances: float = 0.0
    previous_support: float = 0.0


class SupportConfigCreateRequest(BaseModel):
    """Request model for creating a support configuration."""
    support_type: str = Field(..., min_length=1, description="Program key, unique per tenant while active")
    display_name: str = Field(..., min_length=1)
    description: str = ""
    icon: Optional[str] = None
    color: Optional[str] = None
    eligibility_rules: EligibilityRules = Field(default_factory=EligibilityRules)
    amount_config: List[AmountTier] = Field(default_factory=list)
    required_documents: List[RequiredDocument] = Field(default_factory=list)
    application_settings: ApplicationSettings = Field(default_factory=ApplicationSettings)
    performance_requirements: Optional[PerformanceRequirements] = None
    priority_weights: PriorityWeights = Field(default_factory=PriorityWeights)


class SupportConfigUpdateRequest(BaseModel):
    """Partial update. Only fields that are set are applied."""
    display_name: Optional[str] = None
    description: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    eligibility_rules: Optional[EligibilityRules] = None
    amount_config: Optional[List[AmountTier]] = None
    required_documents: Optional[List[RequiredDocument]] = None
    application_settings: Optional[ApplicationSettings] = None
    performance_requirements: Optional[PerformanceRequirements] = None
    priority_weights: Optional[PriorityWeights] = None
    is_active: Optional[bool] = None


class ReactivateRequest(BaseModel):
    support_types: Optional[List[str]] = Field(None, description="Limit reactivation to these types")


_MODEL_FIELDS = {
    "eligibility_rules": EligibilityRules,
    "application_settings": ApplicationSettings,
    "performance_requirements": PerformanceRequirements,
    "priority_weights": PriorityWeights,
}
_LIST_FIELDS = {
    "amount_config": AmountTier,
    "required_documents": RequiredDocument,
}


@dataclass
class SupportConfiguration:
    """Stored support configuration."""
    id: str
    tenant_id: str
    support_type: str
    display_name: str
    description: str = ""
    icon: Optional[str] = None
    color: Optional[str] = None
    eligibility_rules: EligibilityRules = field(default_factory=EligibilityRules)
    amount_config: List[AmountTier] = field(default_factory=list)
    required_documents: List[RequiredDocument] = field(default_factory=list)
    application_settings: ApplicationSettings = field(default_factory=ApplicationSettings)
    performance_requirements: Optional[PerformanceRequirements] = None
    priority_weights: PriorityWeights = field(default_factory=PriorityWeights)
    is_active: bool = True
    created_by: Optional[str] = None
    updated_by: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)

    def apply(self, updates: Dict[str, Any]):
        """Patch fields from an already validated update mapping."""
        for name, value in updates.items():
            setattr(self, name, value)

    @classmethod
    def from_request(cls, config_id: str, tenant_id: str, request: SupportConfigCreateRequest,
                     created_by: Optional[str] = None) -> "SupportConfiguration":
        return cls(
            id=config_id,
            tenant_id=tenant_id,
            created_by=created_by,
            **{name: getattr(request, name) for name in type(request).model_fields}
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SupportConfiguration":
        values = dict(data)
        for name, model in _MODEL_FIELDS.items():
            if values.get(name) is not None:
                values[name] = model.model_validate(values[name])
            elif name != "performance_requirements":
                values[name] = model()
        for name, model in _LIST_FIELDS.items():
            values[name] = [model.model_validate(item) for item in values.get(name) or []]
        values["created_at"] = parse_datetime(values.get("created_at"))
        values["updated_at"] = parse_datetime(values.get("updated_at"))
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "support_type": self.support_type,
            "display_name": self.display_name,
            "description": self.description,
            "icon": self.icon,
            "color": self.color,
            "eligibility_rules": self.eligibility_rules.model_dump(),
            "amount_config": [tier.model_dump() for tier in self.amount_config],
            "required_documents": [doc.model_dump() for doc in self.required_documents],
            "application_settings": self.application_settings.model_dump(),
            "performance_requirements": (
                self.performance_requirements.model_dump() if self.performance_requirements else None
            ),
            "priority_weights": self.priority_weights.model_dump(),
            "is_active": self.is_active,
            "created_by": self.created_by,
            "updated_by": self.updated_by,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
