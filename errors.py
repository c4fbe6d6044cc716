"""Error types shared by the ingest filter, the store and the API layer.

Each error carries the HTTP status the API maps it to. Handlers in
``api_server`` turn every one of them into a ``{"error": message}`` body.
"""


class SensorApiError(Exception):
    """Base class for errors surfaced to API callers."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(SensorApiError):
    """Malformed or missing input. Never retried."""

    status_code = 400


class NotFoundError(SensorApiError):
    """No record matches the request."""

    status_code = 404


class InfrastructureError(SensorApiError):
    """The database failed to answer. Callers own any retry policy."""

    status_code = 500
