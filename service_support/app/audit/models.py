"""
Audit record model.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from ..access.models import utc_now, parse_datetime


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass
class AuditRecord:
    id: str
    tenant_id: str
    action: str
    entity_type: str
    description: str
    risk_level: RiskLevel = RiskLevel.LOW
    entity_id: Optional[str] = None
    user_id: Optional[str] = None
    user_email: Optional[str] = None
    user_role: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditRecord":
        values = dict(data)
        values["risk_level"] = RiskLevel(values.get("risk_level", RiskLevel.LOW.value))
        values["created_at"] = parse_datetime(values.get("created_at"))
        return cls(**values)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "description": self.description,
            "risk_level": self.risk_level.value,
            "user_id": self.user_id,
            "user_email": self.user_email,
            "user_role": self.user_role,
            "created_at": self.created_at.isoformat(),
        }
