"""
Custom exceptions for srcsetkit.

This module defines all custom exceptions used throughout the package.
Errors that belong to a single variant (ConversionFailedError and the
Source* errors) are recorded in the batch report rather than raised.
"""


class SrcsetkitError(Exception):
    """Base exception for all srcsetkit errors."""

    pass


class InvalidInputError(SrcsetkitError):
    """Raised when a path, width list or format token is malformed."""

    def __init__(self, message: str, field: str = "") -> None:
        """
        Initialize invalid input error.

        Args:
            message: Error message
            field: Name of the argument that failed validation (optional)
        """
        self.field = field
        super().__init__(message)


class ConfigurationError(SrcsetkitError):
    """Raised when there is a configuration problem."""

    pass


class ToolNotFoundError(SrcsetkitError):
    """Raised when the external conversion tool is not on PATH."""

    def __init__(self, message: str, tool: str = "") -> None:
        """
        Initialize tool-not-found error.

        Args:
            message: Error message (should include installation hints)
            tool: The command name or path that could not be resolved
        """
        self.tool = tool
        super().__init__(message)


class ConversionFailedError(SrcsetkitError):
    """A single converter invocation exited nonzero or timed out."""

    def __init__(
        self,
        message: str,
        source: str = "",
        target: str = "",
        returncode: int | None = None,
        output: str = "",
    ) -> None:
        """
        Initialize conversion error.

        Args:
            message: Error message
            source: Source image path
            target: Variant path that was being written
            returncode: Exit status of the converter (None on timeout)
            output: Captured stderr/stdout of the converter
        """
        self.source = source
        self.target = target
        self.returncode = returncode
        self.output = output
        super().__init__(message)


class SourceNotFoundError(SrcsetkitError):
    """The path given for generation does not exist."""

    def __init__(self, message: str, image_path: str = "") -> None:
        self.image_path = image_path
        super().__init__(message)


class SourceNotAnImageError(SrcsetkitError):
    """The source file is not a supported, readable image."""

    def __init__(self, message: str, image_path: str = "") -> None:
        self.image_path = image_path
        super().__init__(message)


class CancellationError(SrcsetkitError):
    """Raised when an operation is cancelled by the user."""

    pass
