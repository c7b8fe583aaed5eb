import pytest

from query_service import (
    AuthenticationError,
    ConfigurationError,
    ErrorKind,
    FailedStatement,
    JobError,
    JobTimeoutError,
    NotFoundError,
    QueryServiceError,
    ValidationError,
)
from query_service.core.exceptions import error_from_response, parse_error_body


@pytest.mark.parametrize("status_code, error_class, kind", [
    (400, ValidationError, ErrorKind.VALIDATION),
    (401, AuthenticationError, ErrorKind.AUTHENTICATION),
    (404, NotFoundError, ErrorKind.NOT_FOUND),
    (403, QueryServiceError, ErrorKind.SERVICE),
    (409, QueryServiceError, ErrorKind.SERVICE),
    (500, QueryServiceError, ErrorKind.SERVICE),
])
def test_error_from_response_kind(status_code, error_class, kind):
    error = error_from_response(status_code, '{"exception": "boom"}')

    assert type(error) is error_class
    assert error.kind == kind
    assert error.error_code == kind.value
    assert error.status_code == status_code


def test_error_from_response_metadata():
    error = error_from_response(400, '{"exception": "Bad", "exceptionId": "exc-1", "context": {"field": "sql"}}')

    assert error.message == "Bad"
    assert error.exception_id == "exc-1"
    assert error.context == {"field": "sql"}


def test_error_from_response_ignores_non_mapping_context():
    error = error_from_response(400, '{"exception": "Bad", "context": ["x"]}')

    assert error.context == {}


@pytest.mark.parametrize("body, message", [
    ("Gateway exploded", "Gateway exploded"),
    ("", "HTTP 502"),
    ('["not", "an", "object"]', '["not", "an", "object"]'),
    ('{"error": "no exception key"}', '{"error": "no exception key"}'),
])
def test_error_from_response_message_fallbacks(body, message):
    assert error_from_response(502, body).message == message


def test_parse_error_body():
    assert parse_error_body('{"exception": "x"}') == {"exception": "x"}
    assert parse_error_body("not json") == {}
    assert parse_error_body("[1]") == {}


def test_all_errors_share_base():
    for error in (
        AuthenticationError("a"),
        ValidationError("v"),
        NotFoundError("n"),
        JobError("j", "job-1"),
        JobTimeoutError("t", "job-1"),
    ):
        assert isinstance(error, QueryServiceError)


def test_job_error_to_dict():
    error = JobError("SQL error", "job-1", [FailedStatement("stmt-1", "SQL error"), FailedStatement("stmt-2")])

    data = error.to_dict()

    assert data["error"] == "JobError"
    assert data["error_code"] == "JOB_FAILED"
    assert data["job_id"] == "job-1"
    assert data["failed_statements"] == [
        {"id": "stmt-1", "error": "SQL error"},
        {"id": "stmt-2", "error": None},
    ]


def test_job_timeout_error_to_dict():
    error = JobTimeoutError("Job did not complete within 5 seconds", "job-1", max_wait_time=5)

    data = error.to_dict()

    assert data["error_code"] == "JOB_TIMEOUT"
    assert data["max_wait_time"] == 5
    assert str(error) == "Job did not complete within 5 seconds"


def test_configuration_error_is_value_error():
    error = ConfigurationError("timeout", "must be positive")

    assert isinstance(error, ValueError)
    assert not isinstance(error, QueryServiceError)
    assert str(error) == "Configuration error for timeout: must be positive"
