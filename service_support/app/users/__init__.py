"""
User lifecycle: sign-in provisioning, profiles, activation, roles and
tenant assignment.
"""
