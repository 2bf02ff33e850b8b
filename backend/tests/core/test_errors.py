"""Error Hierarchy — tests for error codes, statuses and the response envelope.

Tests cover:
    - HTTP status per error class
    - to_response() envelope shape, optional details and retry_after
    - RateLimitExceededError carries retry_after in its context
"""

from courseportal.core.errors import (
    AuthenticationError, BusinessRuleError, ConflictError, EmailDeliveryError,
    PermissionDeniedError, RateLimitExceededError, ResourceNotFoundError,
    ValidationError,
)


def test_http_statuses():
    assert ValidationError("bad").http_status == 400
    assert BusinessRuleError("no", "RULE").http_status == 400
    assert BusinessRuleError("no", "RULE", http_status=409).http_status == 409
    assert ConflictError("dup", "DUP").http_status == 409
    assert ResourceNotFoundError("Course", "x").http_status == 404
    assert AuthenticationError().http_status == 401
    assert PermissionDeniedError().http_status == 403
    assert RateLimitExceededError(30).http_status == 429
    assert EmailDeliveryError("boom", "timeout").http_status == 502


def test_response_envelope_without_details():
    body = ResourceNotFoundError("Course", "abc").to_response()["error"]
    assert body["code"] == "RESOURCE_NOT_FOUND"
    assert body["message"] == "Course 'abc' not found"
    assert body["category"] == "resource_not_found"
    assert "details" not in body
    assert "retry_after" not in body


def test_response_envelope_with_details():
    err = ConflictError("Intake is full", "INTAKE_FULL", details={"capacity": 10})
    body = err.to_response()["error"]
    assert body["details"] == {"capacity": 10}
    assert body["category"] == "conflict"


def test_rate_limit_error_carries_retry_after():
    err = RateLimitExceededError(42)
    assert err.context.retry_after_seconds == 42
    assert err.to_response()["error"]["retry_after"] == 42
