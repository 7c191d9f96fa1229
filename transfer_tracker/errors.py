# transfer_tracker/errors.py

class TransferError(Exception):
    """Base class for expected, caller-recoverable transfer outcomes.

    Each subclass carries the HTTP status the API answers with.
    """
    status_code = 500
    default_message = 'Transfer operation failed'

    def __init__(self, message=None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message

    def to_dict(self):
        return {'error': self.message}


class Unauthenticated(TransferError):
    status_code = 401
    default_message = 'Not authenticated'


class AccessDenied(TransferError):
    status_code = 403
    default_message = 'Access denied'


class NotFound(TransferError):
    status_code = 404
    default_message = 'Transfer not found'


class ValidationError(TransferError):
    status_code = 400
    default_message = 'Invalid request'


class TransientError(TransferError):
    """Storage failure worth retrying (lost connection, timeout)."""
    status_code = 503
    default_message = 'Database connection error. Please try again later.'
