"""
Server configuration data model.

ServerConfig is filled in by the directive interpreter while system.conf is
read, completed by finalize_configuration(), and then frozen. After that it
is shared read-only by the rest of the server.

Thread Safety:
    - Only the startup thread mutates a ServerConfig
    - freeze() turns any later assignment into a ConfigurationError
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Generic, Optional, Sequence, Tuple, TypeVar

from core.exceptions import ConfigurationError, DuplicateDirectiveError
from models.privacy import PrivacyCategory

T = TypeVar("T")


class Encryption(Enum):
    """When TLS is used for client connections."""

    ALWAYS = "always"
    IF_REQUESTED = "ifrequested"
    NEVER = "never"
    REQUIRED = "required"


class LogLevel(Enum):
    """Server log verbosity (LogLevel directive)."""

    ERROR = "error"
    INFO = "info"
    DEBUG = "debug"


def keyword_lookup(enum_cls, keyword: str):
    """Case-insensitive lookup of an Enum member by value, or None."""
    lowered = keyword.lower()
    for member in enum_cls:
        if member.value == lowered:
            return member
    return None


class SetOnce(Generic[T]):
    """
    A value that may be assigned at most once.

    Presence is tracked explicitly, so an empty string is still "set".
    """

    __slots__ = ("_value", "_is_set", "_directive")

    def __init__(self, directive: str):
        self._value: Optional[T] = None
        self._is_set = False
        self._directive = directive

    @property
    def is_set(self) -> bool:
        return self._is_set

    @property
    def value(self) -> Optional[T]:
        return self._value

    def set(self, value: T, filename: Optional[str] = None, linenum: Optional[int] = None) -> None:
        """
        Assign the value.

        Raises:
            DuplicateDirectiveError: If the value was already assigned
        """
        if self._is_set:
            raise DuplicateDirectiveError(self._directive, filename, linenum)
        self._value = value
        self._is_set = True

    def set_default(self, value: T) -> None:
        """Assign the value only if nothing was assigned yet."""
        if not self._is_set:
            self.set(value)

    def __repr__(self) -> str:
        return f"SetOnce({self._directive}={self._value!r})" if self._is_set else f"SetOnce({self._directive} unset)"


@dataclass
class PrivacyDirective:
    """Raw scope/attributes strings for one privacy category."""

    scope: SetOnce[str]
    attributes: SetOnce[str]

    @classmethod
    def for_category(cls, category: PrivacyCategory) -> "PrivacyDirective":
        prefix = category.value.capitalize()
        return cls(
            scope=SetOnce(f"{prefix}PrivacyScope"),
            attributes=SetOnce(f"{prefix}PrivacyAttributes"),
        )


@dataclass
class ServerConfig:
    """
    Process-wide server settings.

    Fields left as None are filled in by finalize_configuration().
    """

    server_name: Optional[str] = None
    data_directory: Optional[str] = None
    spool_directory: Optional[str] = None

    # Authentication / authorization
    authentication: bool = False
    auth_admin_group: Optional[int] = None
    auth_operator_group: Optional[int] = None
    auth_name: Optional[str] = None
    auth_service: Optional[str] = None
    auth_test_password: Optional[str] = field(default=None, repr=False)
    auth_type: Optional[str] = None

    encryption: Encryption = Encryption.IF_REQUESTED

    # Logging; log_file None means stderr
    log_file: Optional[str] = None
    log_level: LogLevel = LogLevel.ERROR

    # Job retention
    max_jobs: int = 100
    max_completed_jobs: int = 100
    keep_files: bool = False

    default_printer: SetOnce[str] = field(default_factory=lambda: SetOnce("DefaultPrinter"))
    default_port: Optional[int] = None
    listeners: Sequence[Tuple[Optional[str], int]] = field(default_factory=list)

    document_privacy: PrivacyDirective = field(
        default_factory=lambda: PrivacyDirective.for_category(PrivacyCategory.DOCUMENT)
    )
    job_privacy: PrivacyDirective = field(
        default_factory=lambda: PrivacyDirective.for_category(PrivacyCategory.JOB)
    )
    subscription_privacy: PrivacyDirective = field(
        default_factory=lambda: PrivacyDirective.for_category(PrivacyCategory.SUBSCRIPTION)
    )

    is_finalized: bool = False

    def __setattr__(self, name: str, value: Any) -> None:
        if self.__dict__.get("is_finalized", False):
            raise ConfigurationError(f'Server configuration is read-only, cannot set "{name}"')
        super().__setattr__(name, value)

    def privacy(self, category: PrivacyCategory) -> PrivacyDirective:
        """Return the raw privacy directive pair for a category."""
        return getattr(self, f"{category.value}_privacy")

    def freeze(self) -> None:
        """Mark the configuration as final; later assignments raise."""
        self.listeners = tuple(self.listeners)
        self.is_finalized = True

    def to_dict(self) -> Dict[str, Any]:
        """Public, non-secret settings for status responses."""
        return {
            "server_name": self.server_name,
            "data_directory": self.data_directory,
            "spool_directory": self.spool_directory,
            "authentication": self.authentication,
            "auth_type": self.auth_type,
            "encryption": self.encryption.value,
            "log_level": self.log_level.value,
            "max_jobs": self.max_jobs,
            "max_completed_jobs": self.max_completed_jobs,
            "keep_files": self.keep_files,
            "default_printer": self.default_printer.value,
            "listeners": [f"{host or '*'}:{port}" for host, port in self.listeners],
        }
