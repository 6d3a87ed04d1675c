"""
Error handling utilities for the notification Lambda functions.

This module provides centralized error classification, retry logic and
logging for the DevOps notification relay.
"""

import logging
import random
import time
import functools
from typing import Any, Callable, Dict, Union
from dataclasses import dataclass
from enum import Enum

import requests
from botocore.exceptions import ClientError, BotoCoreError


logger = logging.getLogger(__name__)


class ErrorType(Enum):
    """Classification of error types for different handling strategies"""
    TRANSIENT = "transient"  # Temporary errors that can be retried
    PERMANENT = "permanent"  # Permanent errors that should not be retried
    THROTTLING = "throttling"  # Rate limiting errors
    AUTHENTICATION = "authentication"  # Auth/permission errors
    VALIDATION = "validation"  # Input validation errors


NON_RETRYABLE_TYPES = (ErrorType.PERMANENT, ErrorType.AUTHENTICATION, ErrorType.VALIDATION)


@dataclass
class RetryConfig:
    """Configuration for retry behavior"""
    max_attempts: int = 3
    initial_delay: float = 0.5
    max_delay: float = 4.0
    backoff_multiplier: float = 2.0
    jitter: bool = True


@dataclass
class ErrorContext:
    """Context information for error handling"""
    function_name: str
    operation: str


class RetryableError(Exception):
    """Exception that indicates an operation should be retried"""
    def __init__(self, message: str, error_type: ErrorType = ErrorType.TRANSIENT):
        super().__init__(message)
        self.error_type = error_type


class PermanentError(Exception):
    """Exception that indicates an operation should not be retried"""
    def __init__(self, message: str, error_type: ErrorType = ErrorType.PERMANENT):
        super().__init__(message)
        self.error_type = error_type


def classify_aws_error(error: Union[ClientError, BotoCoreError]) -> ErrorType:
    """
    Classify AWS errors to determine retry strategy

    Args:
        error: AWS SDK error

    Returns:
        ErrorType classification
    """
    if isinstance(error, ClientError):
        error_code = error.response.get('Error', {}).get('Code', '')

        if error_code in ['Throttling', 'ThrottlingException', 'ThrottledException', 'RequestLimitExceeded']:
            return ErrorType.THROTTLING

        if error_code in ['AccessDenied', 'AccessDeniedException', 'AuthorizationError', 'KMSAccessDenied']:
            return ErrorType.AUTHENTICATION

        if error_code in ['ValidationException', 'InvalidParameter', 'InvalidParameterValue', 'NotFound']:
            return ErrorType.VALIDATION

        if error_code in ['ServiceUnavailable', 'InternalError', 'InternalFailure', 'RequestTimeout']:
            return ErrorType.TRANSIENT

        status_code = error.response.get('ResponseMetadata', {}).get('HTTPStatusCode', 0)
        return classify_http_status(status_code)

    # BotoCoreError covers connection and endpoint failures
    return ErrorType.TRANSIENT


def classify_http_status(status_code: int) -> ErrorType:
    """
    Classify an HTTP status code returned by an AWS API or a webhook

    Args:
        status_code: HTTP status code (0 when unknown)

    Returns:
        ErrorType classification
    """
    if status_code == 429:
        return ErrorType.THROTTLING
    if status_code >= 500:
        return ErrorType.TRANSIENT
    if status_code in [401, 403]:
        return ErrorType.AUTHENTICATION
    if 400 <= status_code < 500:
        return ErrorType.PERMANENT
    return ErrorType.TRANSIENT


def exponential_backoff(attempt: int, config: RetryConfig) -> float:
    """
    Calculate exponential backoff delay

    Args:
        attempt: Current attempt number (0-based)
        config: Retry configuration

    Returns:
        Delay in seconds
    """
    delay = config.initial_delay * (config.backoff_multiplier ** attempt)
    delay = min(delay, config.max_delay)

    if config.jitter:
        delay *= (0.5 + random.random() * 0.5)  # Add 0-50% jitter

    return delay


def retry_with_backoff(
    config: RetryConfig = None,
    retryable_exceptions: tuple = (RetryableError, ClientError, BotoCoreError, requests.RequestException),
    permanent_exceptions: tuple = (PermanentError,)
):
    """
    Decorator for adding retry logic with exponential backoff

    Args:
        config: Retry configuration
        retryable_exceptions: Exceptions that should trigger retries
        permanent_exceptions: Exceptions that should not be retried
    """
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            last_exception = None

            for attempt in range(config.max_attempts):
                try:
                    return func(*args, **kwargs)

                except permanent_exceptions as e:
                    logger.error(f"Permanent error in {func.__name__}: {e}")
                    raise

                except retryable_exceptions as e:
                    last_exception = e

                    if isinstance(e, (ClientError, BotoCoreError)):
                        error_type = classify_aws_error(e)
                        if error_type in NON_RETRYABLE_TYPES:
                            logger.error(f"Non-retryable AWS error in {func.__name__}: {e}")
                            raise PermanentError(f"AWS error: {e}", error_type) from e

                    if attempt < config.max_attempts - 1:
                        delay = exponential_backoff(attempt, config)
                        logger.warning(
                            f"Attempt {attempt + 1} failed for {func.__name__}: {e}. "
                            f"Retrying in {delay:.2f} seconds..."
                        )
                        time.sleep(delay)
                    else:
                        logger.error(f"All {config.max_attempts} attempts failed for {func.__name__}")

            raise last_exception

        return wrapper
    return decorator


def is_transient(error: Exception) -> bool:
    """Return True when the error should be redelivered by the Lambda service."""
    if isinstance(error, PermanentError):
        return False
    if isinstance(error, RetryableError):
        return True
    if isinstance(error, (ClientError, BotoCoreError)):
        return classify_aws_error(error) not in NON_RETRYABLE_TYPES
    return isinstance(error, requests.RequestException)


class ErrorHandler:
    """Centralized error handler for Lambda functions"""

    def __init__(self, context: ErrorContext):
        self.context = context
        self.logger = logging.getLogger(f"{__name__}.{context.function_name}")

    def handle_error(self, error: Exception, operation: str = None) -> Dict[str, Any]:
        """
        Handle and log errors with appropriate context

        Args:
            error: The exception that occurred
            operation: Optional operation description

        Returns:
            Error response dictionary
        """
        operation = operation or self.context.operation

        error_info = {
            'error_type': type(error).__name__,
            'error_message': str(error),
            'function_name': self.context.function_name,
            'operation': operation,
        }

        if isinstance(error, (ClientError, BotoCoreError)):
            error_type = classify_aws_error(error)
        else:
            error_type = getattr(error, 'error_type', None)

        if error_type in (ErrorType.TRANSIENT, ErrorType.THROTTLING):
            self.logger.warning(f"{error_type.value.capitalize()} error in {operation}: {error}")
        else:
            self.logger.error(f"Error in {operation}: {error}")

        return error_info

    def create_lambda_response(self, error: Exception, status_code: int = 500) -> Dict[str, Any]:
        """
        Create a standardized Lambda error response

        Args:
            error: The exception that occurred
            status_code: HTTP-style status code

        Returns:
            Lambda response dictionary
        """
        error_info = self.handle_error(error)

        return {
            'statusCode': status_code,
            'body': {
                'error': error_info['error_message'],
                'error_type': error_info['error_type'],
                'function_name': error_info['function_name'],
                'operation': error_info['operation']
            }
        }


def handle_lambda_errors(context: ErrorContext):
    """
    Decorator for Lambda functions to handle errors consistently.

    Transient failures are logged and re-raised so the asynchronous
    invocation is retried by Lambda; everything else becomes an error
    response and the event is not redelivered.

    Args:
        context: Error context information
    """
    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(event, lambda_context):
            error_handler = ErrorHandler(context)

            try:
                return func(event, lambda_context)
            except Exception as e:
                if is_transient(e):
                    error_handler.handle_error(e)
                    raise
                return error_handler.create_lambda_response(e)

        return wrapper
    return decorator
