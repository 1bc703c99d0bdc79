from app.pipeline.exceptions import ServiceError


class ExtractionError(Exception):
    """Raised when structured field extraction fails."""


class ExtractionValidationError(ExtractionError):
    """Raised when the model's JSON does not have the expected shape."""


class ExtractionNetworkError(ExtractionError, ServiceError):
    """Raised when the AI provider call fails due to network/infrastructure issues."""
