class ExportError(Exception):
    """Raised when a record cannot be stored or persisted."""


class RecordNotFoundError(ExportError):
    """Raised when a receipt row does not exist."""
