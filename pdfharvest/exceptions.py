class ExtractionError(Exception):
    """Base class for errors raised while extracting text from a PDF."""

    def __init__(self, message: str = None, *, cause: Exception = None):
        if message is None:
            message = "PDF extraction failed"
        super().__init__(message)
        self.__cause__ = cause  # Optional chaining for debugging


class LibraryMissingError(ExtractionError):
    """Raised when the PDF engine is not available in the environment."""

    def __init__(self, message: str = None, *, cause: Exception = None):
        if message is None:
            message = "PDF engine library not loaded"
        super().__init__(message, cause=cause)


class DocumentOpenFailedError(ExtractionError):
    """Raised when a document could not be opened by the PDF engine."""

    def __init__(
        self, source: str | None = None, message: str = None, *, cause: Exception = None
    ):
        self.source = source
        if message is None:
            message = f"Failed to open PDF document: {source or '<bytes>'}"
            if cause is not None:
                message = f"{message} ({cause})"
        super().__init__(message, cause=cause)


class DocumentEncryptedError(DocumentOpenFailedError):
    """Raised when a document is encrypted and cannot be opened without a password."""


class WorkerInitFailedError(ExtractionError):
    """Raised by an engine binding when its background worker could not start."""


class WorkerProvisioningError(ExtractionError):
    """Raised internally when the worker script could not be fetched or cached."""
