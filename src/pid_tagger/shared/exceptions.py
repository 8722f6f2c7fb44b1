"""
Common exceptions for PID Tagger.
"""


class PidTaggerError(Exception):
    """Base exception for all PID Tagger errors."""
    pass


class ConfigurationError(PidTaggerError):
    """Raised when a configured tag pattern or setting is unusable."""

    def __init__(self, message: str, category: str = None):
        super().__init__(message)
        self.category = category


class ValidationError(PidTaggerError):
    """Raised when a requested mutation or document violates a precondition."""
    pass


class ExternalIOError(PidTaggerError):
    """Raised when the PDF text layer cannot be read for a page."""

    def __init__(self, message: str, page_number: int = None):
        super().__init__(message)
        self.page_number = page_number


class ConsistencyError(PidTaggerError):
    """Raised when a relationship references an entity that does not exist."""
    pass


class ProcessingError(PidTaggerError):
    """Raised when tag extraction receives unusable input."""
    pass


class StorageError(PidTaggerError):
    """Raised when project files or exports cannot be written or read."""
    pass
