"""
Tests for error classification, retries and the Lambda error decorator
"""

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from src.shared.utils.error_handler import (
    ErrorType, RetryConfig, ErrorContext, RetryableError, PermanentError,
    classify_aws_error, classify_http_status, exponential_backoff,
    retry_with_backoff, handle_lambda_errors, is_transient
)


def client_error(code, status):
    return ClientError(
        {"Error": {"Code": code, "Message": code}, "ResponseMetadata": {"HTTPStatusCode": status}},
        "Publish"
    )


class TestClassification:
    """Test error classification"""

    @pytest.mark.parametrize("code,status,expected", [
        ("Throttling", 400, ErrorType.THROTTLING),
        ("AuthorizationError", 403, ErrorType.AUTHENTICATION),
        ("InvalidParameter", 400, ErrorType.VALIDATION),
        ("InternalError", 500, ErrorType.TRANSIENT),
        ("SomethingElse", 502, ErrorType.TRANSIENT),
        ("SomethingElse", 404, ErrorType.PERMANENT),
    ])
    def test_classify_aws_error(self, code, status, expected):
        assert classify_aws_error(client_error(code, status)) == expected

    def test_classify_botocore_error(self):
        error = EndpointConnectionError(endpoint_url="https://sns.us-east-1.amazonaws.com")
        assert classify_aws_error(error) == ErrorType.TRANSIENT

    @pytest.mark.parametrize("status,expected", [
        (429, ErrorType.THROTTLING),
        (500, ErrorType.TRANSIENT),
        (403, ErrorType.AUTHENTICATION),
        (400, ErrorType.PERMANENT),
        (0, ErrorType.TRANSIENT),
    ])
    def test_classify_http_status(self, status, expected):
        assert classify_http_status(status) == expected

    def test_is_transient(self):
        assert is_transient(RetryableError("later"))
        assert is_transient(client_error("InternalError", 500))
        assert not is_transient(PermanentError("never"))
        assert not is_transient(client_error("AccessDenied", 403))
        assert not is_transient(ValueError("bad input"))


class TestRetry:
    """Test retry decorator"""

    def test_backoff_is_capped(self):
        config = RetryConfig(initial_delay=1.0, max_delay=3.0, jitter=False)

        assert exponential_backoff(0, config) == 1.0
        assert exponential_backoff(1, config) == 2.0
        assert exponential_backoff(5, config) == 3.0

    def test_retries_until_success(self):
        calls = []

        @retry_with_backoff(RetryConfig(max_attempts=3))
        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise RetryableError("not yet")
            return "done"

        assert flaky() == "done"
        assert len(calls) == 3

    def test_permanent_error_is_not_retried(self):
        calls = []

        @retry_with_backoff(RetryConfig(max_attempts=3))
        def broken():
            calls.append(1)
            raise PermanentError("bad")

        with pytest.raises(PermanentError):
            broken()
        assert len(calls) == 1

    def test_non_retryable_aws_error_becomes_permanent(self):
        @retry_with_backoff(RetryConfig(max_attempts=3))
        def denied():
            raise client_error("AccessDenied", 403)

        with pytest.raises(PermanentError) as exc_info:
            denied()
        assert exc_info.value.error_type == ErrorType.AUTHENTICATION


class TestHandleLambdaErrors:
    """Test the Lambda error decorator"""

    def test_transient_errors_are_reraised(self):
        @handle_lambda_errors(ErrorContext(function_name="fn", operation="op"))
        def handler(event, context):
            raise RetryableError("try again")

        with pytest.raises(RetryableError):
            handler({}, None)

    def test_other_errors_become_response(self):
        @handle_lambda_errors(ErrorContext(function_name="fn", operation="op"))
        def handler(event, context):
            raise ValueError("bad event")

        response = handler({}, None)

        assert response["statusCode"] == 500
        assert response["body"] == {
            "error": "bad event",
            "error_type": "ValueError",
            "function_name": "fn",
            "operation": "op"
        }
