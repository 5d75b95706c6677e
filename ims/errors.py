class IMSError(Exception):
    """Base class for business-rule failures. Rendered as {"message": ...}."""
    status_code = 500

    def __init__(self, message):
        super().__init__(message)
        self.message = message

    def to_dict(self):
        return {'message': self.message}


class ValidationError(IMSError):
    status_code = 400

    def __init__(self, message, fields=None):
        super().__init__(message)
        self.fields = list(fields or [])

    def to_dict(self):
        data = super().to_dict()
        if self.fields:
            data['fields'] = self.fields
        return data


class Unauthenticated(IMSError):
    status_code = 401


class Forbidden(IMSError):
    status_code = 403


class NotFound(IMSError):
    status_code = 404


class Conflict(IMSError):
    status_code = 409


class InvalidTransition(Conflict):
    """The application is not in a state that allows the requested review."""

    def __init__(self, current_status, operation):
        status = getattr(current_status, 'value', current_status)
        super().__init__(f"Cannot perform {operation} on an application that is '{status}'")
        self.current_status = current_status
