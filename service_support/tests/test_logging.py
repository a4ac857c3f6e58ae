"""
Unit tests for log event enrichment.
"""

import contextvars

from shared.logging import add_actor_context, add_correlation_context, clear_context, set_request_id, set_user_context


def enrich(event):
    def run():
        set_request_id("req-1")
        set_user_context("admin-1", "tenant-1", "admin")
        return add_actor_context(None, "info", add_correlation_context(None, "info", event))
    return contextvars.copy_context().run(run)


class TestActorContext:
    """Test cases for the actor and correlation processors."""

    def test_binds_actor(self):
        event = enrich({"event": "Support configuration created"})

        assert event["request_id"] == "req-1"
        assert event["actor_id"] == "admin-1"
        assert event["actor_role"] == "admin"
        assert event["tenant_id"] == "tenant-1"

    def test_explicit_tenant_is_kept(self):
        event = enrich({"event": "User provisioned", "tenant_id": "tenant-2", "user_id": "ada-1"})

        assert event["tenant_id"] == "tenant-2"
        assert event["user_id"] == "ada-1"
        assert event["actor_id"] == "admin-1"

    def test_empty_context(self):
        def run():
            clear_context()
            return add_actor_context(None, "info", {"event": "startup"})

        assert contextvars.copy_context().run(run) == {"event": "startup"}
