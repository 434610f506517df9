"""
Tests for LogManager.
"""

import json
import logging

import pytest

from lensing_shapelets.core.base.exceptions import ConfigurationError
from lensing_shapelets.core.config.settings import ShapeletConfig
from lensing_shapelets.core.managers.log_manager import (
    LogManager,
    PerformanceLogger,
    JSONFormatter,
    setup_logging,
    PACKAGE_LOGGER,
)


@pytest.fixture
def logging_enabled():
    logging.disable(logging.NOTSET)
    yield
    logging.disable(logging.CRITICAL)


@pytest.fixture
def manager(tmp_path):
    with LogManager(level="DEBUG", file_path=tmp_path / "logs" / "run.log",
                    enable_console=False) as mgr:
        yield mgr


class TestLogManager:
    def test_configures_package_logger_only(self, manager):
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        assert package_logger.level == logging.DEBUG
        assert all(h in package_logger.handlers for h in manager._handlers)
        assert not any(h in logging.getLogger().handlers for h in manager._handlers)

    def test_file_handler_writes(self, manager, tmp_path, logging_enabled):
        manager.get_logger("shapelets.conversion").info("cache extended")
        for handler in manager._handlers:
            handler.flush()
        content = (tmp_path / "logs" / "run.log").read_text()
        assert "cache extended" in content

    def test_get_logger_is_child(self, manager):
        logger = manager.get_logger("shapelets")
        assert logger.name == f"{PACKAGE_LOGGER}.shapelets"
        assert manager.get_logger(f"{PACKAGE_LOGGER}.core") is logging.getLogger(f"{PACKAGE_LOGGER}.core")

    def test_set_level(self, manager):
        manager.set_level("WARNING")
        assert manager.level == logging.WARNING
        assert logging.getLogger(PACKAGE_LOGGER).level == logging.WARNING
        assert all(h.level == logging.WARNING for h in manager._handlers)

    def test_invalid_level(self):
        with pytest.raises(ConfigurationError):
            LogManager(level="LOUD", enable_console=False)

    def test_invalid_format(self):
        with pytest.raises(ConfigurationError):
            LogManager(format_type="xml", enable_console=False)

    def test_from_config(self, tmp_path):
        cfg = ShapeletConfig(log_level="ERROR", log_file=tmp_path / "c.log", log_format="detailed")
        with LogManager(config=cfg, enable_console=False) as mgr:
            assert mgr.level == logging.ERROR
            assert mgr.file_path == tmp_path / "c.log"
            assert mgr.format_type == "detailed"
            status = mgr.get_status()
        assert status["handlers"] == 1
        assert status["level"] == "ERROR"

    def test_close_detaches_handlers(self, tmp_path):
        mgr = LogManager(file_path=tmp_path / "x.log", enable_console=True)
        handlers = list(mgr._handlers)
        assert len(handlers) == 2
        mgr.close()
        package_logger = logging.getLogger(PACKAGE_LOGGER)
        assert not any(h in package_logger.handlers for h in handlers)

    def test_setup_logging_uses_global_config(self):
        with setup_logging(enable_console=False) as mgr:
            assert mgr.level == logging.INFO
            assert mgr.performance is not None


class TestJSONFormatter:
    def test_format(self):
        record = logging.LogRecord("lensing_shapelets.test", logging.INFO, __file__, 10,
                                   "value %d", (3,), None)
        record.details = {"order": 4}
        entry = json.loads(JSONFormatter().format(record))
        assert entry["message"] == "value 3"
        assert entry["level"] == "INFO"
        assert entry["details"] == {"order": 4}


class TestPerformanceLogger:
    def test_time_operation(self):
        perf = PerformanceLogger(logging.getLogger("lensing_shapelets.test"))
        with perf.time_operation("block"):
            pass
        assert perf._timers == {}

    def test_missing_timer(self):
        perf = PerformanceLogger(logging.getLogger("lensing_shapelets.test"))
        assert perf.end_timer("never started") == 0.0

    def test_time_function(self):
        perf = PerformanceLogger(logging.getLogger("lensing_shapelets.test"))

        @perf.time_function()
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
