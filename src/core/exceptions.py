class BaseAppException(Exception):
    """Base exception for the application."""

    retriable = True

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.original_error = original_error


class ConfigurationError(BaseAppException):
    """Raised when configuration is missing or invalid."""

    retriable = False

    def __init__(self, message: str, original_error: Exception = None, missing: list[str] | None = None):
        super().__init__(message, original_error)
        self.missing = missing or []


class StorageError(BaseAppException):
    """Raised when object storage (R2) cannot be read or written."""

    pass


class WatermarkError(BaseAppException):
    """Raised when the watermark API fails or returns a non-2xx response."""

    pass


class NotificationError(BaseAppException):
    """Raised when an email cannot be delivered to the provider."""

    pass


class QueueError(BaseAppException):
    """Raised when a message cannot be published to the broker."""

    pass


class MalformedMessageError(BaseAppException):
    """Raised when a queue payload can never be processed. Redelivery won't help."""

    retriable = False
