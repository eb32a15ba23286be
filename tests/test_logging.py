"""
Tests for logging utilities.
"""

import json
import logging

from intl_ratings.utils.logging import (
    ColoredFormatter,
    JSONFormatter,
    LogContext,
    get_logger,
)


def make_record(message="Sampling", level=logging.INFO):
    return logging.getLogger("intl_ratings.test").makeRecord(
        "intl_ratings.test", level, __file__, 1, message, None, None
    )


class TestLogging:
    """Test formatters and logger naming."""

    def test_logger_namespace(self):
        assert get_logger("bayesian.model").name == "intl_ratings.bayesian.model"
        assert get_logger("intl_ratings.pipeline").name == "intl_ratings.pipeline"

    def test_json_formatter(self):
        payload = json.loads(JSONFormatter().format(make_record("Fit done", logging.WARNING)))

        assert payload["level"] == "WARNING"
        assert payload["message"] == "Fit done"
        assert payload["logger"] == "intl_ratings.test"

    def test_log_context_adds_fields(self):
        with LogContext(seed=7, chains=3):
            record = make_record()
        payload = json.loads(JSONFormatter().format(record))

        assert payload["seed"] == 7
        assert payload["chains"] == 3

        outside = json.loads(JSONFormatter().format(make_record()))
        assert "seed" not in outside

    def test_colored_formatter_restores_levelname(self):
        record = make_record()
        text = ColoredFormatter("%(levelname)s %(message)s").format(record)

        assert "Sampling" in text
        assert record.levelname == "INFO"
