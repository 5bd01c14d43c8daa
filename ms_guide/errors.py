class GuideServiceError(Exception):
    """Base class for domain errors raised by the guide and analytics services."""

    status_code = 500


class InvalidArgument(GuideServiceError):
    """Raised when a required input is missing or malformed."""

    status_code = 400


class NotFound(GuideServiceError):
    """Raised when the requested guide or procedure does not exist."""

    status_code = 404


class StoreError(GuideServiceError):
    """Raised when the underlying store call failed; carries a sanitized message only."""

    status_code = 500
