"""
Unit tests for the export logging setup.
"""

import logging
import sys
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from comprehensive_report.utils.logging_config import ViewContextFilter, capture_scope, setup_logging


def make_record(message="hello"):
    return logging.LogRecord("comprehensive_report.test", logging.INFO, __file__, 1, message, None, None)


class TestViewContextFilter:
    """Test cases for view tagging."""

    def test_outside_capture(self):
        record = make_record()
        assert ViewContextFilter().filter(record)
        assert record.view == ""

    def test_inside_capture(self):
        record = make_record()
        with capture_scope('pl-financial'):
            ViewContextFilter().filter(record)
        assert record.view == "[pl-financial] "

    def test_scope_is_reset(self):
        with capture_scope('sales-rep'):
            pass
        record = make_record()
        ViewContextFilter().filter(record)
        assert record.view == ""


class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_file_log_carries_view(self, tmp_path):
        log_file = tmp_path / "logs" / "export.log"
        root = logging.getLogger()
        previous = list(root.handlers), root.level
        try:
            setup_logging("INFO", str(log_file))
            with capture_scope('divisional-kpis'):
                logging.getLogger("comprehensive_report.test").warning("not ready")
            for handler in root.handlers:
                handler.flush()
            text = log_file.read_text(encoding='utf-8')
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = previous[0]
            root.setLevel(previous[1])

        assert "WARNING - [divisional-kpis] not ready" in text
        assert "\x1b[" not in text
