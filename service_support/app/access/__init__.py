"""
Access control package.

Resolves the acting user for a request and decides whether that user may
perform an operation against a tenant. Roles are a closed set and carry
no hierarchy: every operation names its own allow-list in
``capabilities``.

Modules of interest:
- models: Role, Identity, User and profile records.
- gate: The ordered authorization checks.
- capabilities: Operation name to permitted-role table.
- identity: Bearer token verification against the provider's JWKS.
"""
