"""
Tests for the logging utilities.
"""

import json
import logging

from specgen_orchestrator.utils.logger import (
    LoggerContext,
    StructuredFormatter,
    clear_log_context,
    get_logger,
    set_log_context
)


def make_record(**extra) -> logging.LogRecord:
    record = logging.LogRecord(
        name="specgen_orchestrator.test",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg="Job %s finished",
        args=("job-1",),
        exc_info=None
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_structured_formatter_emits_json_with_extra():
    entry = json.loads(StructuredFormatter().format(make_record(job_id="job-1", attempt=2)))

    assert entry["level"] == "INFO"
    assert entry["message"] == "Job job-1 finished"
    assert entry["extra"] == {"job_id": "job-1", "attempt": 2}


def test_structured_formatter_without_extra():
    entry = json.loads(StructuredFormatter(include_extra=False).format(make_record(job_id="job-1")))
    assert "extra" not in entry


def test_context_filter_stamps_records_without_overriding_extra():
    logger = get_logger("specgen_orchestrator.tests.context")
    set_log_context(logger, component="orchestrator", job_id="from-context")

    record = make_record(job_id="from-extra")
    logger.context_filter.filter(record)

    assert record.component == "orchestrator"
    assert record.job_id == "from-extra"


def test_logger_context_restores_previous_context():
    logger = get_logger("specgen_orchestrator.tests.scoped")
    set_log_context(logger, component="runner")

    with LoggerContext(logger, job_id="job-7"):
        assert logger.context_filter.context == {"component": "runner", "job_id": "job-7"}

    assert logger.context_filter.context == {"component": "runner"}


def test_clear_log_context():
    logger = get_logger("specgen_orchestrator.tests.cleared")
    set_log_context(logger, component="consolidator", job_id="job-3")

    clear_log_context(logger)

    assert logger.context_filter.context == {}
