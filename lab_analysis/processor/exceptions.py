class ProcessorError(Exception):
    """Base exception for all processor-related errors."""


class DocumentNotFoundError(ProcessorError):
    """Raised when a plan document cannot be found in the document store."""


class InputError(ProcessorError):
    """Raised for requests rejected before any progress entry exists."""


class MissingPayloadError(InputError):
    """Raised when a request has neither a payload nor text-only notes."""


class EmptyPayloadError(InputError):
    """Raised when the request payload is empty."""


class UnsupportedContentError(InputError):
    """Raised when the payload kind or format cannot be analyzed."""


class PayloadTooLargeError(InputError):
    """Raised when the payload exceeds the configured size limit."""


class ExtractionFailedError(ProcessorError):
    """Raised when no extraction strategy produced usable content."""


class AnalysisFailedError(ProcessorError):
    """Raised when the AI analysis failed for every extracted page."""
