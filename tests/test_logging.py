import io
import json

import pytest
import structlog

from reqlog.core.config import Settings
from reqlog.core.logging import SinkProcessor, configure_logging
from reqlog.core.redaction import REDACTED_VALUE
from reqlog.services.sink import Sink


def _configure(**overrides):
    out, err = io.StringIO(), io.StringIO()
    settings = Settings(_env_file=None, APP_NAME="svc", APP_VERSION="9.9.9", **overrides)
    configure_logging(settings, sink=Sink(stdout=out, stderr=err))
    return out, err


def _records(stream):
    return [json.loads(line) for line in stream.getvalue().splitlines()]


class TestConfigureLogging:
    def test_application_logs_share_record_shape(self):
        out, err = _configure()

        structlog.get_logger("svc.module").info("Service started", port=8000)

        (entry,) = _records(out)
        assert err.getvalue() == ""
        assert list(entry)[:3] == ["level", "msg", "time"]
        assert entry["level"] == "info"
        assert entry["msg"] == "Service started"
        assert entry["port"] == 8000
        assert entry["app"] == "svc"
        assert entry["version"] == "9.9.9"

    def test_error_tier_goes_to_error_stream(self):
        out, err = _configure()

        structlog.get_logger().error("Dependency down")

        assert out.getvalue() == ""
        assert _records(err)[0]["level"] == "error"

    def test_filters_below_configured_level(self):
        out, err = _configure(LOG_LEVEL="warning")

        log = structlog.get_logger()
        log.info("dropped")
        log.warning("kept")

        assert [r["msg"] for r in _records(out)] == ["kept"]

    def test_exception_method_maps_to_error(self):
        _, err = _configure()

        try:
            raise ValueError("bad")
        except ValueError:
            structlog.get_logger().exception("Failed")

        (entry,) = _records(err)
        assert entry["level"] == "error"
        assert "ValueError: bad" in entry["exception"]

    def test_redacts_configured_keys(self):
        out, _ = _configure(LOG_REDACT_KEYS=["password"])

        structlog.get_logger().info("Login", credentials={"Password": "x"})

        (entry,) = _records(out)
        assert entry["credentials"]["Password"] == REDACTED_VALUE

    def test_merges_bound_trace_id(self):
        out, _ = _configure()

        with structlog.contextvars.bound_contextvars(trace_id="t-1"):
            structlog.get_logger().info("Correlated")

        (entry,) = _records(out)
        assert entry["trace_id"] == "t-1"


class TestSinkProcessor:
    def test_orders_reserved_keys_and_drops_event(self):
        out, err = io.StringIO(), io.StringIO()
        processor = SinkProcessor(Sink(stdout=out, stderr=err))

        with pytest.raises(structlog.DropEvent):
            processor(
                None,
                "warn",
                {"extra": 1, "time": "t", "msg": "m", "trace": {"a": 1}},
            )

        (entry,) = _records(out)
        assert list(entry) == ["level", "msg", "trace", "time", "extra"]
        assert entry["level"] == "warning"

    def test_unknown_method_defaults_to_info(self):
        out = io.StringIO()
        processor = SinkProcessor(Sink(stdout=out, stderr=io.StringIO()))

        with pytest.raises(structlog.DropEvent):
            processor(None, "trace_level", {"msg": "m"})

        assert _records(out)[0]["level"] == "info"
