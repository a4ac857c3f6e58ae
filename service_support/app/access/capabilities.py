"""
Per-operation role allow-lists.

Roles carry no ranking. Reviewers and beneficiaries, for instance, are
allowed on different operation subsets, so each operation lists its roles
explicitly instead of naming a minimum role.
"""

from typing import Dict, FrozenSet

from .errors import UnknownOperation
from .models import Role

SA = Role.SUPER_ADMIN
AD = Role.ADMIN
RV = Role.REVIEWER
BN = Role.BENEFICIARY
GD = Role.GUARDIAN

_EVERYONE = frozenset({SA, AD, RV, BN, GD})
_ADMINS = frozenset({SA, AD})
_STAFF = frozenset({SA, AD, RV})
_ADMINS_AND_FAMILY = frozenset({SA, AD, BN, GD})


CAPABILITIES: Dict[str, FrozenSet[Role]] = {
    # support configurations
    "support_config.create": _ADMINS,
    "support_config.update": _ADMINS,
    "support_config.list": _EVERYONE,
    "support_config.eligible": _EVERYONE,
    "support_config.initialize_defaults": frozenset({SA}),
    "support_config.deactivate": _ADMINS,
    "support_config.reactivate": _ADMINS,

    # users
    "users.get": _EVERYONE,
    "users.list": _ADMINS,
    "users.list_by_roles": _STAFF,
    "users.update_profile": _EVERYONE,
    "users.deactivate": _ADMINS,
    "users.reactivate": _ADMINS,
    "users.change_role": frozenset({SA}),
    "users.assign_tenant": frozenset({SA}),
    "users.invite": _ADMINS,
    "users.statistics": _ADMINS,

    # audit trail
    "audit.by_entity": _EVERYONE,
    "audit.recent": _ADMINS,

    # tenants
    "tenants.create": frozenset({SA}),
    "tenants.list": frozenset({SA}),
    "tenants.get": _EVERYONE,
    "tenants.update": _ADMINS,

    # applications
    "applications.create": _ADMINS_AND_FAMILY,
    "applications.submit": frozenset({BN, GD}),
    "applications.update": frozenset({BN, GD}),
    "applications.get": _EVERYONE,
    "applications.review_queue": _STAFF,
    "applications.update_status": _STAFF,
    "applications.assign_reviewer": _ADMINS,
    "applications.bulk_approve": _ADMINS,

    # beneficiaries
    "beneficiaries.list": _STAFF,
    "beneficiaries.get": _EVERYONE,
    "beneficiaries.create_from_application": _ADMINS,
    "beneficiaries.update_status": _ADMINS,
    "beneficiaries.update_academic_level": _ADMINS,

    # academic sessions and performance
    "academic.sessions.create": _ADMINS,
    "academic.sessions.list": _STAFF,
    "academic.sessions.by_beneficiary": _EVERYONE,
    "academic.performance.record": _ADMINS,
    "academic.performance.history": _EVERYONE,
    "academic.performance.analytics": _STAFF,
    "academic.alerts.list": _STAFF,
    "academic.alerts.resolve": _ADMINS,

    # attendance
    "attendance.record": _ADMINS,
    "attendance.by_beneficiary": _EVERYONE,
    "attendance.analytics": _STAFF,

    # financial records
    "financial.records.list": _ADMINS,
    "financial.records.by_beneficiary": _ADMINS_AND_FAMILY,
    "financial.invoices.create": _ADMINS,
    "financial.approvals.list": _STAFF,
    "financial.approvals.process": _ADMINS,
    "financial.fee_categories.active": _EVERYONE,
    "financial.fee_categories.manage": _ADMINS,

    # programs
    "programs.create": _ADMINS,
    "programs.update": _ADMINS,
    "programs.list": _EVERYONE,
    "programs.enroll": _ADMINS_AND_FAMILY,
    "programs.statistics": _STAFF,

    # documents
    "documents.create": _EVERYONE,
    "documents.list": _EVERYONE,
    "documents.update_status": _STAFF,
    "documents.delete": _ADMINS,

    # messaging and notifications
    "messaging.send": _EVERYONE,
    "messaging.add_participants": _STAFF,
    "notifications.create": _ADMINS,
    "notifications.list": _EVERYONE,
    "communications.bulk_send": _ADMINS,

    # reports
    "reports.financial": _ADMINS,
    "reports.academic": _STAFF,
    "reports.impact": _STAFF,
}


def roles_for(operation: str) -> FrozenSet[Role]:
    """Return the allow-list for an operation."""
    try:
        return CAPABILITIES[operation]
    except KeyError:
        raise UnknownOperation(operation) from None


def is_permitted(role: Role, operation: str) -> bool:
    return role in roles_for(operation)
