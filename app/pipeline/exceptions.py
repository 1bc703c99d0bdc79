class PipelineError(Exception):
    """Base exception for all document pipeline errors."""


class RenderError(PipelineError):
    """Raised when a page or document cannot be rasterized or assembled."""


class InvalidArgumentError(PipelineError, ValueError):
    """Raised when a caller violates an operation's precondition."""


class ServiceError(PipelineError):
    """Raised when an external recognition or extraction service call fails."""


class ResourceError(PipelineError):
    """Raised when a resource handle cannot be created or is no longer live."""


class UnsupportedFileTypeError(PipelineError):
    """Raised when an input file is neither an image nor a PDF."""


class ThumbnailError(PipelineError):
    """Raised when a thumbnail cannot be decoded, drawn, or encoded."""
