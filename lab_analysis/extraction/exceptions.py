class ExtractionError(Exception):
    """Base exception for extraction strategy failures."""


class PayloadDecodeError(ExtractionError):
    """Raised when a request payload cannot be decoded to bytes."""
