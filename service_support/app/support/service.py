"""
Support configuration operations.

Every operation authorizes the caller through the access gate before it
reads tenant data, and writes an audit record after each mutation. Gate
failures propagate unchanged, so nothing is written for a denied call.
"""

import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from shared.errors import ConflictError, NotFoundError
from shared.logging import get_logger
from shared.tracing import trace_function
from ..access.errors import AccessDenied
from ..access.gate import AccessGate
from ..access.models import Identity, Role, utc_now
from ..audit.models import RiskLevel
from ..audit.trail import AuditTrail
from ..eligibility.evaluator import EligibilityEvaluator
from ..persistence.base import DocumentStore
from .defaults import default_configurations
from .models import SupportConfigCreateRequest, SupportConfigUpdateRequest, SupportConfiguration

ENTITY_TYPE = "support_configurations"

# May only evaluate eligibility for themselves
_SELF_ONLY_ROLES = frozenset({Role.BENEFICIARY, Role.GUARDIAN})

# Optional on the stored configuration, so an explicit null clears them
_CLEARABLE_FIELDS = frozenset({"icon", "color", "performance_requirements"})


class SupportConfigService:
    """Create, change and query a foundation's support programs."""

    def __init__(self, store: DocumentStore, gate: AccessGate, audit: AuditTrail,
                 evaluator: Optional[EligibilityEvaluator] = None):
        self.store = store
        self.gate = gate
        self.audit = audit
        self.evaluator = evaluator or EligibilityEvaluator()
        self.logger = get_logger("support.configurations")

    @trace_function("support_config.create")
    async def create_configuration(self, identity: Optional[Identity], tenant_id: str,
                                   request: SupportConfigCreateRequest) -> SupportConfiguration:
        user = await self.gate.authorize_operation(identity, tenant_id, "support_config.create")

        if await self.store.find_active_configuration(tenant_id, request.support_type):
            raise ConflictError(
                f"Support configuration for {request.support_type} already exists",
                details={"support_type": request.support_type}
            )

        config = SupportConfiguration.from_request(str(uuid.uuid4()), tenant_id, request, created_by=user.id)
        await self.store.insert_configuration(config)

        await self.audit.record(
            user, tenant_id, "create_support_config", ENTITY_TYPE, config.id,
            f"Created support configuration: {config.display_name}",
            RiskLevel.MEDIUM
        )
        self.logger.info("Support configuration created", config_id=config.id, support_type=config.support_type)
        return config

    @trace_function("support_config.update")
    async def update_configuration(self, identity: Optional[Identity], config_id: str,
                                   updates: SupportConfigUpdateRequest) -> SupportConfiguration:
        """Apply the fields set on ``updates``; everything else is left alone."""
        config = await self.store.get_configuration(config_id)
        if config is None:
            raise NotFoundError("Configuration not found", details={"config_id": config_id})

        user = await self.gate.authorize_operation(identity, config.tenant_id, "support_config.update")

        changes: Dict[str, Any] = {
            name: getattr(updates, name) for name in updates.model_fields_set
            if getattr(updates, name) is not None or name in _CLEARABLE_FIELDS
        }

        if changes.get("is_active") and not config.is_active:
            await self._ensure_no_active_duplicate(config)

        config.apply(changes)
        config.updated_by = user.id
        config.updated_at = utc_now()
        await self.store.save_configuration(config)

        await self.audit.record(
            user, config.tenant_id, "update_support_config", ENTITY_TYPE, config.id,
            f"Updated support configuration: {config.display_name}",
            RiskLevel.MEDIUM
        )
        self.logger.info("Support configuration updated", config_id=config.id, fields=sorted(changes))
        return config

    async def list_configurations(self, identity: Optional[Identity], tenant_id: str,
                                  active_only: bool = False) -> List[SupportConfiguration]:
        """Programs of a tenant. Non-admins only ever see active ones."""
        user = await self.gate.authorize_operation(identity, tenant_id, "support_config.list")
        if not user.is_admin:
            active_only = True
        return await self.store.list_configurations(tenant_id, active_only=active_only)

    @trace_function("support_config.eligible")
    async def get_eligible_supports(self, identity: Optional[Identity], tenant_id: str, user_id: str,
                                    eligible_only: bool = False,
                                    today: Optional[date] = None) -> List[Dict[str, Any]]:
        """Active programs annotated with the target user's eligibility and amount."""
        requester = await self.gate.authorize_operation(identity, tenant_id, "support_config.eligible")

        if requester.role in _SELF_ONLY_ROLES and requester.id != user_id:
            raise AccessDenied("Access denied: can only view your own eligibility")

        target = await self.store.get_user(user_id)
        if target is None:
            raise NotFoundError("User not found", details={"user_id": user_id})
        if requester.role != Role.SUPER_ADMIN and target.tenant_id != tenant_id:
            raise AccessDenied("Access denied: user belongs to another foundation")

        configs = await self.store.find_active_configurations(tenant_id)
        results = []
        for config, evaluation in self.evaluator.evaluate_all(configs, target, today):
            if eligible_only and not evaluation.eligibility.is_eligible:
                continue
            results.append({**config.to_dict(), **evaluation.to_dict()})
        return results

    @trace_function("support_config.initialize_defaults")
    async def initialize_defaults(self, identity: Optional[Identity], tenant_id: str) -> List[SupportConfiguration]:
        """Seed the default programs, skipping types that are already active."""
        user = await self.gate.authorize_operation(identity, tenant_id, "support_config.initialize_defaults")

        created = []
        for request in default_configurations():
            if await self.store.find_active_configuration(tenant_id, request.support_type):
                self.logger.info("Default support type already active", support_type=request.support_type)
                continue
            config = SupportConfiguration.from_request(str(uuid.uuid4()), tenant_id, request, created_by=user.id)
            await self.store.insert_configuration(config)
            created.append(config)

        if created:
            await self.audit.record(
                user, tenant_id, "initialize_support_configs", ENTITY_TYPE, created[0].id,
                f"Initialized {len(created)} default support configurations",
                RiskLevel.LOW
            )
        return created

    @trace_function("support_config.deactivate")
    async def deactivate_configuration(self, identity: Optional[Identity], config_id: str) -> SupportConfiguration:
        config = await self.store.get_configuration(config_id)
        if config is None:
            raise NotFoundError("Configuration not found", details={"config_id": config_id})

        user = await self.gate.authorize_operation(identity, config.tenant_id, "support_config.deactivate")

        config.is_active = False
        config.updated_by = user.id
        config.updated_at = utc_now()
        await self.store.save_configuration(config)

        await self.audit.record(
            user, config.tenant_id, "deactivate_support_config", ENTITY_TYPE, config.id,
            f"Deactivated support configuration: {config.display_name}",
            RiskLevel.MEDIUM
        )
        return config

    @trace_function("support_config.reactivate")
    async def reactivate_configurations(self, identity: Optional[Identity], tenant_id: str,
                                        support_types: Optional[List[str]] = None) -> List[SupportConfiguration]:
        """Bring inactive programs back.

        Limited to ``support_types`` when given. A type that is already active,
        or was reactivated earlier in the same call, is skipped.
        """
        user = await self.gate.authorize_operation(identity, tenant_id, "support_config.reactivate")

        configs = await self.store.list_configurations(tenant_id)
        active_types = {c.support_type for c in configs if c.is_active}
        wanted = set(support_types) if support_types is not None else None

        reactivated = []
        for config in configs:
            if config.is_active or (wanted is not None and config.support_type not in wanted):
                continue
            if config.support_type in active_types:
                self.logger.info("Skipping reactivation of duplicate type", support_type=config.support_type)
                continue
            config.is_active = True
            config.updated_by = user.id
            config.updated_at = utc_now()
            await self.store.save_configuration(config)
            active_types.add(config.support_type)
            reactivated.append(config)

        if reactivated:
            await self.audit.record(
                user, tenant_id, "reactivate_support_configs", ENTITY_TYPE, reactivated[0].id,
                f"Reactivated {len(reactivated)} support configurations",
                RiskLevel.MEDIUM
            )
        return reactivated

    async def _ensure_no_active_duplicate(self, config: SupportConfiguration):
        existing = await self.store.find_active_configuration(config.tenant_id, config.support_type)
        if existing is not None and existing.id != config.id:
            raise ConflictError(
                f"Support configuration for {config.support_type} already exists",
                details={"support_type": config.support_type}
            )
