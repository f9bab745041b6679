"""Error taxonomy for the movement workflow"""
import functools
import logging

from django.db import DatabaseError
from rest_framework import status

logger = logging.getLogger(__name__)


class MovementError(Exception):
    """Base class; views turn these into {'error', 'detail'} responses"""
    status_code = status.HTTP_400_BAD_REQUEST
    error = 'Movement error'

    def __init__(self, detail=None):
        self.detail = detail or self.error
        super().__init__(self.detail)

    def as_response_data(self):
        return {'error': self.error, 'detail': self.detail}


class ValidationError(MovementError):
    status_code = status.HTTP_400_BAD_REQUEST
    error = 'Validation error'

    def __init__(self, field, detail):
        self.field = field
        super().__init__(detail)

    def as_response_data(self):
        data = super().as_response_data()
        data['field'] = self.field
        return data


class NotFound(MovementError):
    status_code = status.HTTP_404_NOT_FOUND
    error = 'Not found'


class InvalidTransition(MovementError):
    status_code = status.HTTP_409_CONFLICT
    error = 'Invalid transition'

    def __init__(self, action, current_status):
        self.action = action
        self.current_status = current_status
        super().__init__(f"Cannot {action} movement with status: {current_status}")

    def as_response_data(self):
        data = super().as_response_data()
        data['current_status'] = self.current_status
        return data


class DataAccessError(MovementError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    error = 'Internal server error'


def translate_database_errors(func):
    """Re-raise database failures raised inside func as DataAccessError"""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except DatabaseError as e:
            logger.exception(f"Database error in {func.__name__}")
            raise DataAccessError('Failed to access movement data') from e
    return wrapper
