"""Service-level errors. `status_code` is the HTTP status a caller should answer with."""


class ServiceError(Exception):
    status_code = 500

    def __init__(self, message: str = "Server error"):
        super().__init__(message)
        self.message = message


class NotFoundError(ServiceError):
    status_code = 404


class ConflictError(ServiceError):
    status_code = 400


class ValidationError(ServiceError):
    status_code = 400


class AuthenticationError(ServiceError):
    status_code = 400

    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)
