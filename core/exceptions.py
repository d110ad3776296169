"""
Custom exceptions for the print server configuration layer.

Exception Hierarchy:
    PrintServerError (base)
    ├── ConfigurationError          - bad system.conf directive (startup failure)
    │   ├── DuplicateDirectiveError - set-once directive seen twice
    │   └── DirectoryCreationError  - default data directory cannot be created
    └── QueueLoadError              - one queue could not be loaded (skipped)
        └── DuplicateQueueError     - resource path already registered

Usage:
    Startup errors (ConfigurationError and subclasses) abort the load and the
    server does not start. Queue errors only remove that queue; discovery
    carries on with the next file.
"""

from typing import Optional, Dict, Any


class PrintServerError(Exception):
    """
    Base exception for all print server configuration errors.

    All custom exceptions inherit from this class, allowing callers to catch
    all application-specific errors with a single except clause if needed.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        """
        Initialize the exception.

        Args:
            message: Human-readable error message
            details: Optional dictionary with additional context for debugging
        """
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


# =============================================================================
# STARTUP ERRORS - Server will not start if these occur
# =============================================================================

class ConfigurationError(PrintServerError):
    """
    The system configuration could not be loaded.

    This is a FATAL error. The message names the file and line so the
    operator can fix the directive; str() gives the operator-facing text.
    """

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        linenum: Optional[int] = None,
    ):
        details: Dict[str, Any] = {}
        if filename is not None:
            details["filename"] = filename
        if linenum is not None:
            details["linenum"] = linenum
        super().__init__(message, details)
        self.filename = filename
        self.linenum = linenum

    def __str__(self) -> str:
        if self.filename is not None and self.linenum is not None:
            return f'{self.message} on line {self.linenum} of "{self.filename}".'
        if self.filename is not None:
            return f'{self.message} ("{self.filename}").'
        return self.message


class DuplicateDirectiveError(ConfigurationError):
    """A directive that may only appear once was seen again."""

    def __init__(self, directive: str, filename: Optional[str] = None, linenum: Optional[int] = None):
        super().__init__(f"Extra {directive} seen", filename, linenum)
        self.directive = directive


class DirectoryCreationError(ConfigurationError):
    """
    A default directory could not be created during finalization.

    Typical causes:
    - TMPDIR points at a read-only or missing location
    - Permission denied on the parent directory
    """

    def __init__(self, directory: str, reason: str):
        super().__init__(f'Unable to create default data directory "{directory}": {reason}')
        self.details["directory"] = directory
        self.directory = directory


# =============================================================================
# PER-QUEUE ERRORS - Discovery continues, the queue is simply absent
# =============================================================================

class QueueLoadError(PrintServerError):
    """
    A queue attribute file could not be loaded.

    The reason has already been logged by the parser callbacks; this
    exception only tells the registry to skip the queue.
    """

    def __init__(self, filename: str, message: Optional[str] = None):
        super().__init__(message or f'Unable to load queue attributes from "{filename}"', {"filename": filename})
        self.filename = filename


class DuplicateQueueError(QueueLoadError):
    """A queue with the same resource path is already registered."""

    def __init__(self, resource: str, filename: Optional[str] = None):
        super().__init__(filename or resource, f'Queue resource "{resource}" is already registered')
        self.details["resource"] = resource
        self.resource = resource
