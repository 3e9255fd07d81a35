"""
Unit tests for logging_config module.
"""
import logging
import os
import sys

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))))

from logging_config import (
    RequestAdapter, RequestIdFilter, get_logger, get_request_logger,
    log_duration, new_request_id, setup_logging
)


class TestLoggers:
    """Tests for logger helpers."""

    def test_module_logger_name(self):
        assert get_logger('composer').name == 'poster.composer'

    def test_setup_is_idempotent(self):
        first = setup_logging()
        second = setup_logging()
        assert first is second
        assert first.propagate is False

    def test_request_ids_are_short_and_unique(self):
        ids = {new_request_id() for _ in range(50)}
        assert len(ids) == 50
        assert all(len(i) == 8 for i in ids)

    def test_request_adapter_tags_records(self):
        adapter = get_request_logger('compose', 'abc12345')
        msg, kwargs = adapter.process('hello', {})

        assert isinstance(adapter, RequestAdapter)
        assert kwargs['extra']['request_id'] == 'abc12345'

    def test_filter_defaults_request_id(self):
        record = logging.LogRecord('poster.x', logging.INFO, __file__, 1, 'msg', None, None)
        assert RequestIdFilter().filter(record) is True
        assert record.request_id == 'system'


class TestLogDuration:
    """Tests for log_duration context manager."""

    def test_elapsed_is_recorded(self, caplog):
        logger = logging.getLogger('duration-test')
        with caplog.at_level(logging.DEBUG, logger='duration-test'):
            with log_duration(logger, 'stage') as timer:
                sum(range(1000))

        assert timer.elapsed_ms >= 0
        assert 'stage took' in caplog.text
