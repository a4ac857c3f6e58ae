"""
Support service for the Foundation Support platform.

Serves support program configuration, eligibility evaluation, user
administration and the audit trail over HTTP.
"""

from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Body, Depends, FastAPI, Header, Query

from shared.base_service import BaseService
from shared.config import ServiceConfig, get_config
from shared.observability import get_observability_manager, observe_function

from .access.errors import Unauthenticated
from .access.gate import AccessGate
from .access.identity import JWKSClient, TokenVerifier
from .access.models import Identity, Role
from .audit.trail import AuditTrail
from .eligibility.evaluator import EligibilityEvaluator
from .persistence import DocumentStore, create_store
from .support.models import ReactivateRequest, SupportConfigCreateRequest, SupportConfigUpdateRequest
from .support.service import SupportConfigService
from .users.models import (
    AssignTenantRequest, ChangeRoleRequest, DeactivateUserRequest, InviteUserRequest, ProfileUpdateRequest
)
from .users.service import UserService

SERVICE_NAME = "support"
SERVICE_PORT = 8013


class SupportService(BaseService):
    """Support service implementation."""

    def __init__(self, config: Optional[ServiceConfig] = None, store: Optional[DocumentStore] = None,
                 verifier: Optional[TokenVerifier] = None):
        super().__init__(SERVICE_NAME, SERVICE_PORT, config or get_config(SERVICE_NAME, SERVICE_PORT))

        self.observability = get_observability_manager(
            SERVICE_NAME,
            log_level=self.config.log_level,
            otel_exporter=self.config.otel_exporter if self.config.enable_tracing else None,
            enable_console=self.config.enable_console_tracing,
            metrics=self.metrics,
            app=self.app
        )

        self.store = store or create_store(
            self.config.store_backend,
            self.config.postgres_dsn,
            min_size=self.config.postgres_min_pool,
            max_size=self.config.postgres_max_pool
        )
        self.verifier = verifier or TokenVerifier(
            JWKSClient(self.config.jwks_url, cache_ttl=self.config.jwks_cache_ttl),
            issuer=self.config.jwt_issuer
        )

        self.gate = AccessGate(self.store, metrics=self.metrics)
        self.audit = AuditTrail(self.store, self.gate, metrics=self.metrics)
        self.evaluator = EligibilityEvaluator(metrics=self.metrics)
        self.support_configs = SupportConfigService(self.store, self.gate, self.audit, self.evaluator)
        self.users = UserService(
            self.store, self.gate, self.audit,
            default_tenant_name=self.config.default_tenant_name,
            default_currency=self.config.default_currency
        )

        self._setup_support_routes()

    def _create_app(self) -> FastAPI:
        app = super()._create_app()

        @asynccontextmanager
        async def lifespan(_app: FastAPI):
            await self.start()
            yield
            await self.stop()

        app.router.lifespan_context = lifespan
        return app

    def _setup_support_routes(self):
        """Set up support-specific routes."""

        async def current_identity(authorization: Optional[str] = Header(None)) -> Optional[Identity]:
            return await self.verifier.identify(authorization)

        @self.app.get("/")
        async def root():
            """Root endpoint."""
            return {
                "service": SERVICE_NAME,
                "message": "Foundation Support - Support Service",
                "version": "1.0.0",
                "capabilities": ["support_configurations", "eligibility", "users", "audit_trail"]
            }

        @self.app.get("/me")
        async def me(identity: Optional[Identity] = Depends(current_identity)):
            """Signed-in user, provisioned on first call. ``null`` when deactivated."""
            if identity is None:
                raise Unauthenticated()
            return await self.users.current_user(identity)

        # support configurations

        @self.app.get("/support-configs")
        async def list_support_configs(
            tenant_id: str = Query(..., description="Foundation ID"),
            active_only: bool = Query(False),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            self.observability.trace_request(tenant_id=tenant_id)
            configs = await self.support_configs.list_configurations(identity, tenant_id, active_only)
            return [config.to_dict() for config in configs]

        @self.app.post("/support-configs", status_code=201)
        @observe_function("support_configs_create")
        async def create_support_config(
            request: SupportConfigCreateRequest,
            tenant_id: str = Query(..., description="Foundation ID"),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            self.observability.trace_request(tenant_id=tenant_id)
            config = await self.support_configs.create_configuration(identity, tenant_id, request)
            self.observability.log_business_event(
                "support_config_created", tenant_id=tenant_id, support_type=config.support_type
            )
            return config.to_dict()

        @self.app.get("/support-configs/eligible")
        async def eligible_supports(
            tenant_id: str = Query(..., description="Foundation ID"),
            user_id: str = Query(..., description="User to evaluate"),
            eligible_only: bool = Query(False),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            self.observability.trace_request(tenant_id=tenant_id)
            return await self.support_configs.get_eligible_supports(identity, tenant_id, user_id, eligible_only)

        @self.app.post("/support-configs/initialize-defaults", status_code=201)
        async def initialize_default_configs(
            tenant_id: str = Query(..., description="Foundation ID"),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            self.observability.trace_request(tenant_id=tenant_id)
            created = await self.support_configs.initialize_defaults(identity, tenant_id)
            return {"success": True, "configurations_created": len(created)}

        @self.app.post("/support-configs/reactivate")
        async def reactivate_support_configs(
            request: Optional[ReactivateRequest] = Body(None),
            tenant_id: str = Query(..., description="Foundation ID"),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            self.observability.trace_request(tenant_id=tenant_id)
            configs = await self.support_configs.reactivate_configurations(
                identity, tenant_id, request.support_types if request else None
            )
            return {"success": True, "reactivated": [config.support_type for config in configs]}

        @self.app.patch("/support-configs/{config_id}")
        async def update_support_config(
            config_id: str,
            request: SupportConfigUpdateRequest,
            identity: Optional[Identity] = Depends(current_identity)
        ):
            config = await self.support_configs.update_configuration(identity, config_id, request)
            return config.to_dict()

        @self.app.delete("/support-configs/{config_id}")
        async def deactivate_support_config(
            config_id: str,
            identity: Optional[Identity] = Depends(current_identity)
        ):
            config = await self.support_configs.deactivate_configuration(identity, config_id)
            return config.to_dict()

        # users

        @self.app.get("/users")
        async def list_users(
            tenant_id: str = Query(..., description="Foundation ID"),
            role: Optional[Role] = Query(None),
            is_active: Optional[bool] = Query(None),
            search: Optional[str] = Query(None),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            self.observability.trace_request(tenant_id=tenant_id)
            users = await self.users.list_users(identity, tenant_id, role=role, is_active=is_active, search=search)
            return [user.to_dict() for user in users]

        @self.app.get("/users/by-roles")
        async def list_users_by_roles(
            tenant_id: str = Query(..., description="Foundation ID"),
            roles: List[Role] = Query(...),
            is_active: Optional[bool] = Query(None),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            users = await self.users.list_by_roles(identity, tenant_id, roles, is_active=is_active)
            return [user.to_dict() for user in users]

        @self.app.post("/users/invitations", status_code=201)
        async def invite_user(
            request: InviteUserRequest,
            tenant_id: str = Query(..., description="Foundation ID"),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            self.observability.trace_request(tenant_id=tenant_id)
            user = await self.users.invite_user(
                identity, tenant_id, request.email, request.first_name, request.last_name,
                role=request.role, message=request.message
            )
            self.observability.log_business_event("user_invited", tenant_id=tenant_id, role=user.role.value)
            return user.to_dict()

        @self.app.get("/users/statistics")
        async def user_statistics(
            tenant_id: str = Query(..., description="Foundation ID"),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            return await self.users.get_statistics(identity, tenant_id)

        @self.app.get("/users/{user_id}")
        async def get_user(user_id: str, identity: Optional[Identity] = Depends(current_identity)):
            user = await self.users.get_user(identity, user_id)
            return user.to_dict()

        @self.app.patch("/users/{user_id}/profile")
        async def update_profile(
            user_id: str,
            request: ProfileUpdateRequest,
            identity: Optional[Identity] = Depends(current_identity)
        ):
            user = await self.users.update_profile(identity, user_id, request)
            return user.to_dict()

        @self.app.post("/users/{user_id}/deactivate")
        async def deactivate_user(
            user_id: str,
            request: DeactivateUserRequest,
            identity: Optional[Identity] = Depends(current_identity)
        ):
            await self.users.deactivate_user(identity, user_id, request.reason)
            return {"success": True}

        @self.app.post("/users/{user_id}/reactivate")
        async def reactivate_user(user_id: str, identity: Optional[Identity] = Depends(current_identity)):
            await self.users.reactivate_user(identity, user_id)
            return {"success": True}

        @self.app.put("/users/{user_id}/role")
        async def change_role(
            user_id: str,
            request: ChangeRoleRequest,
            identity: Optional[Identity] = Depends(current_identity)
        ):
            user = await self.users.change_role(identity, user_id, request.role)
            return user.to_dict()

        @self.app.put("/users/{user_id}/tenant")
        async def assign_to_tenant(
            user_id: str,
            request: AssignTenantRequest,
            identity: Optional[Identity] = Depends(current_identity)
        ):
            user = await self.users.assign_to_tenant(identity, user_id, request.tenant_id)
            return user.to_dict()

        # audit trail

        @self.app.get("/audit-logs")
        async def recent_audit_logs(
            tenant_id: str = Query(..., description="Foundation ID"),
            limit: int = Query(100, ge=1, le=1000),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            records = await self.audit.recent(identity, tenant_id, limit)
            return [record.to_dict() for record in records]

        @self.app.get("/audit-logs/{entity_type}/{entity_id}")
        async def entity_audit_logs(
            entity_type: str,
            entity_id: str,
            tenant_id: str = Query(..., description="Foundation ID"),
            identity: Optional[Identity] = Depends(current_identity)
        ):
            records = await self.audit.by_entity(identity, tenant_id, entity_type, entity_id)
            return [record.to_dict() for record in records]

    async def _check_dependencies(self):
        """Check support service dependencies."""
        healthy = await self.store.health_check()
        return {"document_store": "ok" if healthy else "error"}

    async def start(self):
        """Start support service components."""
        await self.store.start()
        self.logger.info("Support service started", store_backend=self.config.store_backend)

    async def stop(self):
        """Stop support service components."""
        await self.store.stop()
        self.logger.info("Support service stopped")


def create_app(config: Optional[ServiceConfig] = None, store: Optional[DocumentStore] = None,
               verifier: Optional[TokenVerifier] = None):
    """Create support service application."""
    service = SupportService(config=config, store=store, verifier=verifier)
    return service.app


if __name__ == "__main__":
    service = SupportService()
    service.run()
