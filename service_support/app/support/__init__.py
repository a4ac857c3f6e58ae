"""
Support configuration package.

A support configuration describes one support program of a tenant (school
fees, upkeep, exam fees, ...): who qualifies, how much is paid per level
group, which documents are required and how applications are processed.

Modules of interest:
- models: Configuration record and request/response models.
- defaults: Programs seeded for a new tenant.
- service: Authorized, audited configuration operations.
"""
