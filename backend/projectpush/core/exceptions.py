"""Errors raised by the notification subsystem.

Each error carries the HTTP status the routers respond with.
"""


class NotificationError(Exception):
    """Base class for caller-visible notification errors."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingFieldError(NotificationError):
    status_code = 400

    def __init__(self, *fields: str):
        self.fields = fields
        names = ", ".join(fields)
        verb = "is" if len(fields) == 1 else "are"
        super().__init__(f"{names} {verb} required")


class InvalidAddressFormatError(NotificationError):
    status_code = 400

    def __init__(self, token: str):
        self.token = token
        super().__init__("Invalid push token format")


class NotificationNotFoundError(NotificationError):
    status_code = 404

    def __init__(self, message: str = "Notification not found"):
        super().__init__(message)


class PersistenceError(NotificationError):
    """A store write failed and was rolled back."""

    status_code = 500


class GatewayTransportError(Exception):
    """Network, timeout or protocol failure talking to the push gateway.

    Never reaches callers: the dispatch engine folds it into per-message
    error tickets for the affected batch.
    """
