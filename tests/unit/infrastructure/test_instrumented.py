"""Unit tests for repository timing instrumentation."""

import pytest
from loguru import logger

from src.pupfinance.core.services.database import InstrumentedRepository


class FakeRepository:
    label = "fake"

    def get(self, key):
        return {"key": key}

    def fail(self):
        raise LookupError("missing")

    def _private(self):
        return "private"


@pytest.fixture
def log_messages():
    messages: list[str] = []
    sink_id = logger.add(lambda message: messages.append(message.record["message"]), level="DEBUG")
    yield messages
    logger.remove(sink_id)


class TestInstrumentedRepository:
    def test_forwards_calls_and_logs_timing(self, log_messages):
        repo = InstrumentedRepository(FakeRepository(), name="users")

        assert repo.get("a") == {"key": "a"}
        assert any(m.startswith("users.get took") for m in log_messages)

    def test_failures_are_logged_and_reraised(self, log_messages):
        repo = InstrumentedRepository(FakeRepository())

        with pytest.raises(LookupError):
            repo.fail()
        assert any(m.startswith("FakeRepository.fail failed") for m in log_messages)

    def test_attributes_and_private_methods_pass_through(self, log_messages):
        repo = InstrumentedRepository(FakeRepository())

        assert repo.label == "fake"
        assert repo._private() == "private"
        assert log_messages == []

    def test_slow_calls_log_at_warning(self):
        levels: list[str] = []
        sink_id = logger.add(lambda m: levels.append(m.record["level"].name), level="DEBUG")
        try:
            InstrumentedRepository(FakeRepository(), slow_threshold_ms=0).get("a")
        finally:
            logger.remove(sink_id)

        assert "WARNING" in levels

    def test_wraps_real_repository(self, user_repository, log_messages):
        repo = InstrumentedRepository(user_repository, name="users")

        assert repo.get_by_external_id("auth0|none") is None
        assert repo.count() == 0
        assert any(m.startswith("users.count took") for m in log_messages)
