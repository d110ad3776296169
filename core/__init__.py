"""
Core module for the print server configuration layer.

Contains fundamental infrastructure components:
- exceptions: Custom exception hierarchy
- ipp_file: ipptool-style attribute file tokenizer and parser
"""

from .exceptions import (
    PrintServerError,
    ConfigurationError,
    DuplicateDirectiveError,
    DirectoryCreationError,
    QueueLoadError,
    DuplicateQueueError,
)
from .ipp_file import IppAttribute, IppFileParser, IppVars, FileCallbacks

__all__ = [
    "PrintServerError",
    "ConfigurationError",
    "DuplicateDirectiveError",
    "DirectoryCreationError",
    "QueueLoadError",
    "DuplicateQueueError",
    "IppAttribute",
    "IppFileParser",
    "IppVars",
    "FileCallbacks",
]
