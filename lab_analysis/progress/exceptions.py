class ProgressError(Exception):
    """Base exception for progress tracking."""


class ProgressStateError(ProgressError):
    """Raised on an update through a stale lease or to a terminal entry."""
