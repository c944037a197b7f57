"""
Tests for structured logging setup and audit events.
"""

import json
import logging

import pytest
import structlog

from bookstore.logging import log_audit_event, setup_logging
from bookstore.settings import settings

pytestmark = pytest.mark.unit


@pytest.fixture
def json_logging(monkeypatch):
    monkeypatch.setattr(settings.observability, "log_format", "json")
    setup_logging()
    yield
    structlog.reset_defaults()


def test_audit_event_is_structured(json_logging, caplog):
    with caplog.at_level(logging.INFO, logger="audit"):
        log_audit_event(
            "plan.deleted", user_id="admin-1", resource_type="subscription_plan", resource_id="3"
        )

    record = next(r for r in caplog.records if r.name == "audit")
    event = json.loads(record.getMessage())
    assert event["event"] == "plan.deleted"
    assert event["audit_user_id"] == "admin-1"
    assert event["audit_resource_id"] == "3"
    assert event["level"] == "info"
