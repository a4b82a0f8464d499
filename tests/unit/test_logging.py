"""Tests for structured logging of gate decisions and entitlement transitions."""

from unittest.mock import Mock

import pytest
import structlog

from flightwatch.config.defaults import EntitlementParams
from flightwatch.entitlement.engine import EntitlementEngine
from flightwatch.logging.config import (
    configure_logging,
    get_entitlement_logger,
    get_sync_logger,
    log_gate_decision,
    log_state_transition,
)
from flightwatch.persistence.entitlement_store import EntitlementStore

YEARLY_ID = "subscription.flightwatch.yearly"


class CapturingLogger:
    """Minimal stand-in recording bound context and emitted events."""

    def __init__(self, messages, context=None):
        self.messages = messages
        self.context = dict(context or {})

    def bind(self, **kwargs):
        return CapturingLogger(self.messages, {**self.context, **kwargs})

    def _record(self, level, event, **kwargs):
        self.messages.append({"level": level, "event": event, **self.context, **kwargs})

    def debug(self, event, **kwargs):
        self._record("debug", event, **kwargs)

    def info(self, event, **kwargs):
        self._record("info", event, **kwargs)

    def warning(self, event, **kwargs):
        self._record("warning", event, **kwargs)

    def error(self, event, **kwargs):
        self._record("error", event, **kwargs)


class TestLogHelpers:
    """Test the standardized log helpers."""

    def setup_method(self):
        self.messages = []
        self.logger = CapturingLogger(self.messages)

    def test_gate_passed(self):
        """Test a passing gate is logged at info level."""
        log_gate_decision(self.logger, "free_action", True, "free_quota_available", {"quota": 1})

        assert self.messages == [{
            "level": "info",
            "event": "Gate passed",
            "gate_name": "free_action",
            "gate_result": "PASS",
            "reason": "free_quota_available",
            "context": {"quota": 1},
        }]

    def test_gate_failed(self):
        """Test a failing gate is logged as a warning."""
        log_gate_decision(self.logger, "free_action", False, "free_quota_exhausted")

        assert self.messages[0]["level"] == "warning"
        assert self.messages[0]["gate_result"] == "FAIL"
        assert "context" not in self.messages[0]

    def test_state_transition(self):
        """Test transitions carry from, to and trigger."""
        log_state_transition(self.logger, "free", "entitled", "purchase")

        assert self.messages == [{
            "level": "info",
            "event": "State transition",
            "from_state": "free",
            "to_state": "entitled",
            "trigger": "purchase",
        }]


class TestEntitlementLogging:
    """Test the entitlement engine's audit log."""

    def setup_method(self):
        self.messages = []

    def _engine(self, memory_store, provider):
        engine = EntitlementEngine(EntitlementStore(memory_store), provider, EntitlementParams())
        engine.logger = CapturingLogger(self.messages)
        return engine

    def test_quota_decisions_logged(self, memory_store, fake_provider):
        """Test each free action request logs a gate decision."""
        engine = self._engine(memory_store, fake_provider)

        engine.consume_free_action()
        engine.consume_free_action()

        gates = [m for m in self.messages if m.get("gate_name") == "free_action"]
        assert [g["gate_result"] for g in gates] == ["PASS", "FAIL"]
        assert gates[1]["reason"] == "free_quota_exhausted"

    @pytest.mark.asyncio
    async def test_purchase_logs_transition(self, memory_store, fake_provider):
        """Test load and purchase each log a phase transition."""
        engine = self._engine(memory_store, fake_provider)
        fake_provider.verified_purchase(YEARLY_ID, "txn-1")

        await engine.purchase(YEARLY_ID)

        transitions = [
            (m["from_state"], m["to_state"], m["trigger"])
            for m in self.messages if m["event"] == "State transition"
        ]
        assert transitions == [("unknown", "free", "load"), ("free", "entitled", "purchase")]


class TestLoggerConfiguration:
    """Test structlog configuration and subsystem binding."""

    def test_configure_logging_json(self):
        """Test JSON configuration installs the JSON renderer."""
        configure_logging(level="DEBUG", format_json=True)

        processors = structlog.get_config()["processors"]
        assert isinstance(processors[-1], structlog.processors.JSONRenderer)

    def test_subsystem_loggers_bind_context(self):
        """Test subsystem loggers tag every event."""
        with structlog.testing.capture_logs() as logs:
            get_sync_logger("test.sync").info("Watchlist refreshed", total=2)
            get_entitlement_logger("test.entitlement").info("Products loaded")

        assert logs[0]["subsystem"] == "watchlist_sync"
        assert logs[0]["total"] == 2
        assert logs[1]["subsystem"] == "entitlement"
        assert logs[1]["audit_trail"] is True

    def test_mock_logger_compatible(self):
        """Test the helpers only rely on bind and level methods."""
        logger = Mock()

        log_gate_decision(logger, "free_action", True, "entitled")

        logger.bind.assert_called_once()
        logger.bind.return_value.info.assert_called_once_with("Gate passed")
