# server/core/errors.py


class DashboardError(Exception):
    """
    Base class for failures that map to a specific HTTP status.
    The message is safe to show to clients.
    """
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidInput(DashboardError):
    status_code = 400


class DuplicateUsername(DashboardError):
    status_code = 400

    def __init__(self, message: str = "Username already exists"):
        super().__init__(message)


class AuthenticationFailed(DashboardError):
    status_code = 401


class AuthorizationFailed(DashboardError):
    status_code = 403


class NotFound(DashboardError):
    status_code = 404


class InternalError(DashboardError):
    status_code = 500
