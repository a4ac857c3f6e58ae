"""
Support Service package for the Foundation Support platform.

This package serves the support-program side of a multi-tenant
foundation: who may act on a tenant's data, and which support programs a
beneficiary qualifies for. It provides:

- app.main: HTTP API surface and service wiring.
- app.access: Identity resolution, the access gate and the role
  capability table.
- app.eligibility: Pure eligibility and amount evaluation.
- app.support: Support configuration operations and default programs.
- app.users: User provisioning and lifecycle operations.
- app.audit: Audit trail recording and queries.
- app.persistence: Document store protocol with in-memory and
  PostgreSQL implementations.

Guidelines:
- Pass the caller identity explicitly; there is no ambient request user.
- Authorize, then mutate, then audit.
- Eligibility results are derived on every request and never stored.
"""
