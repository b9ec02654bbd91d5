import json
import logging

from shared.app_logging.logger import (NO_JOB, JobContext, JobIDFilter,
                                       JSONFormatter, StructuredFormatter,
                                       job_id_var)


def make_record(msg="hello"):
    record = logging.LogRecord("archiver.worker", logging.INFO, __file__, 1, msg, None, None)
    record.service_name = "archiver"
    return record


def test_job_context_binds_and_restores_job_id():
    assert job_id_var.get() is None
    with JobContext("abc") as job_id:
        assert job_id == "abc"
        record = make_record()
        JobIDFilter().filter(record)
        assert record.job_id == "abc"
    assert job_id_var.get() is None


def test_filter_outside_a_job():
    record = make_record()
    JobIDFilter().filter(record)
    assert record.job_id == NO_JOB


def test_json_formatter_includes_job_and_extra_fields():
    record = make_record("Processing started")
    record.job_id = "abc"
    record.url = "https://example.com"

    entry = json.loads(JSONFormatter().format(record))

    assert entry["message"] == "Processing started"
    assert entry["job_id"] == "abc"
    assert entry["service"] == "archiver"
    assert entry["url"] == "https://example.com"


def test_structured_formatter():
    record = make_record("Processing started")
    record.job_id = "abc"

    line = StructuredFormatter().format(record)

    assert "[INFO] [archiver] [abc] archiver.worker: Processing started" in line
