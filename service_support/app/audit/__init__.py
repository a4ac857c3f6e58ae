"""
Audit trail package.

Every mutating operation appends one record after it has been authorized
and applied. Records are append-only and scoped to a tenant.
"""
