class AppException(Exception):
    """Base for every error the API maps onto an HTTP status."""

    pass


class NotFoundError(AppException):
    """A referenced tenant or record does not exist."""

    pass


class ValidationError(AppException):
    """The request conflicts with the current state of the resource."""

    pass


class DataSourceError(AppException):
    """A backing store is unreachable or returned malformed data. Retryable."""

    pass


class ExternalProcessorError(AppException):
    """The external billing processor failed or timed out. Retryable."""

    pass
