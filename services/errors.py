"""
Error kinds raised by the service layer.

Blueprints turn these into JSON responses (see ``register_error_handlers`` in
app.py); anything else is an unexpected server error.
"""


class PortalError(Exception):
    """Base class for expected, user-facing failures"""

    status_code = 400
    kind = 'error'
    default_message = 'Request failed'

    def __init__(self, message=None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {'success': False, 'error': self.kind, 'message': self.message}


class ValidationError(PortalError):
    status_code = 400
    kind = 'validation_error'
    default_message = 'Invalid input'


class NotFound(PortalError):
    status_code = 404
    kind = 'not_found'
    default_message = 'Record not found'


class AlreadyProcessed(PortalError):
    """Terminal workflow state; no further transition is allowed"""
    status_code = 409
    kind = 'already_processed'
    default_message = 'This registration has already been processed'


class Conflict(PortalError):
    status_code = 409
    kind = 'conflict'
    default_message = 'Record conflicts with existing data'


class PermissionDenied(PortalError):
    status_code = 403
    kind = 'permission_denied'
    default_message = 'You do not have permission to perform this action'


class DependencyFailure(PortalError):
    """An external collaborator (identity provider, notification sink) failed.

    ``fatal`` is True when the failure aborted the operation (after any
    compensating action ran) and False for best-effort steps.
    """
    status_code = 502
    kind = 'dependency_failure'
    default_message = 'An external service failed'

    def __init__(self, message=None, fatal=True):
        super().__init__(message)
        self.fatal = fatal
