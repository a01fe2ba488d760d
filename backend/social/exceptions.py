"""
Error taxonomy and the DRF exception handler.

Every service operation fails with exactly one of these kinds, so a caller
(or the HTTP layer) can branch on the outcome without parsing messages:

    NotFoundError      404  referenced entity absent, or not visible to caller
    ForbiddenError     403  authenticated but not the owner
    ConflictError      409  duplicate action (double follow/like/save/block)
    ValidationError    400  malformed nesting, self-action, cross-scope reference
    UnauthorizedError  401  missing or invalid credential
"""
import logging

from django.db import IntegrityError
from rest_framework import status
from rest_framework.exceptions import APIException
from rest_framework.response import Response

logger = logging.getLogger(__name__)


class SocialError(APIException):
    """Base class for the domain error kinds."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Request could not be processed.'
    default_code = 'error'

    @property
    def kind(self):
        return self.default_code


class NotFoundError(SocialError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class ForbiddenError(SocialError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = 'You are not allowed to perform this action.'
    default_code = 'forbidden'


class ConflictError(SocialError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Duplicate action.'
    default_code = 'conflict'


class ValidationError(SocialError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid request.'
    default_code = 'validation_error'


class UnauthorizedError(SocialError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = 'Invalid credentials.'
    default_code = 'unauthorized'


def _error_body(code, message, status_code, details=None):
    return {
        'error': code,
        'message': message,
        'status_code': status_code,
        'details': details or {},
    }


def custom_exception_handler(exc, context):
    """
    Custom exception handler that:
    1. Logs all exceptions
    2. Converts Django exceptions to DRF responses
    3. Provides consistent error format
    """
    # rest_framework.views resolves DEFAULT_AUTHENTICATION_CLASSES on import,
    # and social.authentication imports this module
    from rest_framework.views import exception_handler

    # Call DRF's default exception handler first
    response = exception_handler(exc, context)

    if response is not None:
        if isinstance(exc, SocialError):
            response.data = _error_body(exc.kind, str(exc.detail), response.status_code)
        elif isinstance(exc, APIException):
            # Serializer validation errors keep their per-field details
            details = response.data if isinstance(response.data, dict) else {'errors': response.data}
            code = exc.default_code if isinstance(exc.default_code, str) else 'error'
            message = details.pop('detail', None) or exc.default_detail
            response.data = _error_body(code, str(message), response.status_code, details)
        return response

    # Handle exceptions that DRF doesn't handle
    if isinstance(exc, IntegrityError):
        logger.warning(f"IntegrityError: {exc}")
        return Response(
            _error_body('conflict', 'Data integrity error. This may be a duplicate entry.', 409),
            status=status.HTTP_409_CONFLICT
        )

    if isinstance(exc, ValueError):
        return Response(
            _error_body('validation_error', str(exc), 400),
            status=status.HTTP_400_BAD_REQUEST
        )

    # Log unexpected exceptions
    logger.exception(f"Unhandled exception: {exc}")

    return Response(
        _error_body('internal_error', 'An unexpected error occurred.', 500),
        status=status.HTTP_500_INTERNAL_SERVER_ERROR
    )
