"""
Core — Exception Handling

Domain exceptions and the DRF exception handler for consistent API
error envelopes.

Taxonomy used by the stock services:
  NotFound        ResourceNotFoundError        404
  Conflict        ConflictError / InvalidStateTransition   409
  Validation      InvalidInputError            400
  Unavailable     UpstreamUnavailableError     503
  Computation     ReconstructionError          500
Partial failures of batch operations are returned as per-item reports,
never raised.

@file core/exceptions.py
"""

import logging

from django.core.exceptions import PermissionDenied, ValidationError
from django.http import Http404
from rest_framework import status
from rest_framework.exceptions import APIException, ValidationError as DRFValidationError
from rest_framework.response import Response
from rest_framework.views import exception_handler

logger = logging.getLogger('stocktrace')


# ---------------------------------------------------------------------------
# Domain exceptions
# ---------------------------------------------------------------------------

class BusinessRuleViolation(APIException):
    """Raised when a business rule is violated at the service layer."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Business rule violation.'
    default_code = 'BUSINESS_RULE_VIOLATION'


class InvalidInputError(BusinessRuleViolation):
    """Malformed or out-of-range input: bad dates, negative quantities, mismatched batches."""
    default_detail = 'Invalid input.'
    default_code = 'VALIDATION_ERROR'


class ConflictError(APIException):
    """The resource is in a lifecycle state that forbids the operation."""
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'Operation conflicts with the current state of the resource.'
    default_code = 'CONFLICT'


class InvalidStateTransition(ConflictError):
    """Raised when a state machine transition is not allowed."""
    default_detail = 'Invalid state transition.'
    default_code = 'INVALID_STATE_TRANSITION'


class ResourceNotFoundError(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Resource not found.'
    default_code = 'RESOURCE_NOT_FOUND'


class UpstreamUnavailableError(APIException):
    """A collaborator lookup (item catalog, warehouse) failed."""
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE
    default_detail = 'Upstream lookup unavailable.'
    default_code = 'UPSTREAM_UNAVAILABLE'


class ReconstructionError(APIException):
    """
    Balance reconstruction failed while computing, not because data was
    missing. detail carries company, target date, item and method.
    """
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = 'Balance reconstruction failed.'
    default_code = 'RECONSTRUCTION_FAILED'


# ---------------------------------------------------------------------------
# Standard exception handler
# ---------------------------------------------------------------------------

def _error_code(exc, data) -> str:
    if isinstance(data, dict) and 'code' in data:
        return data.pop('code')
    if isinstance(exc, DRFValidationError):
        # Serializer errors share the service-level validation code.
        return InvalidInputError.default_code
    return getattr(exc, 'default_code', 'ERROR')


def standard_exception_handler(exc, context):
    """
    Wraps every error response in the standard envelope:
      { "success": false, "errors": {...}, "code": "ERROR_CODE" }
    """
    if isinstance(exc, Http404):
        exc = ResourceNotFoundError()
    elif isinstance(exc, PermissionDenied):
        exc = APIException(detail='Permission denied.', code='PERMISSION_DENIED')
        exc.status_code = status.HTTP_403_FORBIDDEN
    elif isinstance(exc, ValidationError):
        errors = exc.message_dict if hasattr(exc, 'message_dict') else {'detail': exc.messages}
        return Response(
            {'success': False, 'errors': errors, 'code': InvalidInputError.default_code},
            status=status.HTTP_400_BAD_REQUEST,
        )

    response = exception_handler(exc, context)
    if response is None:
        logger.exception('Unhandled exception in view %s: %s', context.get('view').__class__.__name__, exc)
        return Response(
            {'success': False, 'errors': {'detail': ['Internal server error.']}, 'code': 'INTERNAL_ERROR'},
            status=status.HTTP_500_INTERNAL_SERVER_ERROR,
        )

    data = response.data
    code = _error_code(exc, data)
    if isinstance(data, dict):
        errors = data
    elif isinstance(data, list):
        errors = {'detail': data}
    else:
        errors = {'detail': [str(data)]}
    if response.status_code >= 500:
        logger.error('%s (%s): %s', exc.__class__.__name__, code, errors)

    response.data = {'success': False, 'errors': errors, 'code': code}
    return response
