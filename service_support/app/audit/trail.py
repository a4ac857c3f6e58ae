"""
Audit trail recording and queries.
"""

import uuid
from typing import List, Optional

from shared.logging import get_logger
from shared.metrics import MetricsCollector
from ..access.gate import AccessGate
from ..access.models import Identity, User
from ..persistence.base import DocumentStore
from .models import AuditRecord, RiskLevel

ENTITY_HISTORY_LIMIT = 50
DEFAULT_RECENT_LIMIT = 100


class AuditTrail:
    """Append-only audit log over the document store."""

    def __init__(self, store: DocumentStore, gate: AccessGate, metrics: Optional[MetricsCollector] = None):
        self.store = store
        self.gate = gate
        self.metrics = metrics
        self.logger = get_logger("support.audit")

    async def record(
        self,
        actor: Optional[User],
        tenant_id: str,
        action: str,
        entity_type: str,
        entity_id: Optional[str],
        description: str,
        risk_level: RiskLevel = RiskLevel.LOW
    ) -> AuditRecord:
        """Append one record. ``actor`` is None for system actions."""
        record = AuditRecord(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            description=description,
            risk_level=RiskLevel(risk_level),
            user_id=actor.id if actor else None,
            user_email=actor.email if actor else None,
            user_role=actor.role.value if actor else None,
        )
        await self.store.insert_audit_record(record)

        self.logger.info(
            "Audit record written",
            action=action,
            entity_type=entity_type,
            entity_id=entity_id,
            risk_level=record.risk_level.value,
            tenant_id=tenant_id
        )
        if self.metrics:
            self.metrics.increment_counter("audit_records_total", risk_level=record.risk_level.value)

        return record

    async def by_entity(self, identity: Optional[Identity], tenant_id: str,
                        entity_type: str, entity_id: str) -> List[AuditRecord]:
        """History of one entity, newest first."""
        await self.gate.authorize_operation(identity, tenant_id, "audit.by_entity")
        return await self.store.list_audit_records(
            tenant_id,
            entity_type=entity_type,
            entity_id=entity_id,
            limit=ENTITY_HISTORY_LIMIT
        )

    async def recent(self, identity: Optional[Identity], tenant_id: str,
                     limit: int = DEFAULT_RECENT_LIMIT) -> List[AuditRecord]:
        """Most recent records of a tenant, newest first."""
        await self.gate.authorize_operation(identity, tenant_id, "audit.recent")
        return await self.store.list_audit_records(tenant_id, limit=limit)
