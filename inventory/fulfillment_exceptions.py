"""
API exceptions raised by the fulfillment services.

They subclass DRF's ``APIException`` so views can let them propagate and the
default exception handler renders the status code and body.
"""
from rest_framework import status
from rest_framework.exceptions import APIException


class FulfillmentNotFound(APIException):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = 'Not found.'
    default_code = 'not_found'


class FulfillmentValidationError(APIException):
    """Malformed payload or out-of-bounds quantity."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Invalid input.'
    default_code = 'invalid'


class FulfillmentConflict(APIException):
    status_code = status.HTTP_409_CONFLICT
    default_detail = 'The request conflicts with the current state of the resource.'
    default_code = 'conflict'


class PostingFailure(APIException):
    """The inventory posting rejected the change; nothing was persisted."""
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = 'Inventory posting failed.'
    default_code = 'posting_failed'


class InvalidTransition(APIException):
    """
    The current status does not allow the requested move.

    The response body carries the current status so callers can decide
    whether to refresh and retry.
    """
    status_code = status.HTTP_400_BAD_REQUEST
    default_code = 'invalid_transition'

    def __init__(self, entity, current_status, attempted):
        self.entity = entity
        self.current_status = str(current_status)
        self.attempted = attempted
        message = f'Cannot {attempted} {entity} in status "{self.current_status}".'
        super().__init__(detail={
            'detail': message,
            'code': self.default_code,
            'current_status': self.current_status,
        })
