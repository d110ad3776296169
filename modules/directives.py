"""
System Configuration Directives

Reads system.conf, a line-oriented file of "Directive value" pairs:

    # Comments start with a hash
    Authentication yes
    AuthAdminGroup wheel
    Listen localhost:8631
    LogLevel debug
    JobPrivacyAttributes default
    JobPrivacyScope default

Directive names are case-insensitive. The first error aborts the load with a
ConfigurationError naming the file and line; unknown directives are only
logged. A missing file is not an error - the defaults apply.

finalize_configuration() must run once after loading and before any queue
is loaded: it fills in every unset field (host name, directories,
authentication identity and privacy defaults, default listener) and freezes
the configuration.
"""

import grp
import os
import re
import socket
import tempfile
from pathlib import Path
from typing import Callable, Dict, Iterator, Optional, Tuple, Union

from core.exceptions import ConfigurationError, DirectoryCreationError, DuplicateDirectiveError
from logging_config import get_logger
from models.privacy import PrivacyCategory, PrivacyScope
from models.server_config import Encryption, LogLevel, ServerConfig, SetOnce, keyword_lookup

logger = get_logger(__name__)

# Listener registration: (host or None for all interfaces, port) -> success
CreateListeners = Callable[[Optional[str], int], bool]

# Group name -> numeric group ID, raising KeyError for unknown groups
GroupLookup = Callable[[str], int]

SYSTEM_CONF = "system.conf"

WHEEL_GROUP = 0
DEFAULT_AUTH_NAME = "Printing"
DEFAULT_AUTH_SERVICE = "cups"
DEFAULT_AUTH_TYPE = "Basic"

TRUE_WORDS = ("yes", "true", "on")
FALSE_WORDS = ("no", "false", "off")

_COMMENT_RE = re.compile(r"(?<!\\)#.*$")
_LEADING_DIGITS_RE = re.compile(r"^\d+")


def lookup_group(name: str) -> int:
    """
    Resolve a group name against the system group database.

    Raises:
        KeyError: If no such group exists
    """
    return grp.getgrnam(name).gr_gid


def default_port() -> int:
    """Default IPP port for this user: 8000 + UID mod 1000."""
    return 8000 + os.getuid() % 1000


def read_directives(lines) -> Iterator[Tuple[int, str, Optional[str]]]:
    """
    Split configuration lines into (line number, directive, value).

    Blank lines and comments are skipped; "\\#" is a literal hash. The value
    is None when the line holds only a directive name.
    """
    for linenum, raw in enumerate(lines, 1):
        line = _COMMENT_RE.sub("", raw).replace("\\#", "#").strip()
        if not line:
            continue

        parts = line.split(None, 1)
        value = parts[1].strip() if len(parts) > 1 else None
        yield linenum, parts[0], value or None


class DirectiveInterpreter:
    """
    Applies system.conf directives to a ServerConfig.

    Listen directives call create_listeners immediately; group directives
    are resolved through group_lookup.
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        create_listeners: Optional[CreateListeners] = None,
        group_lookup: GroupLookup = lookup_group,
    ):
        self.config = config or ServerConfig()
        self.create_listeners = create_listeners
        self.group_lookup = group_lookup

        self._filename = ""
        self._linenum = 0

        self._handlers: Dict[str, Callable[[str, str], None]] = {
            "authentication": self._authentication,
            "authadmingroup": self._auth_admin_group,
            "authname": self._auth_name,
            "authoperatorgroup": self._auth_operator_group,
            "authservice": self._auth_service,
            "authtestpassword": self._auth_test_password,
            "authtype": self._auth_type,
            "datadirectory": self._data_directory,
            "defaultprinter": self._default_printer,
            "documentprivacyattributes": self._privacy_attributes,
            "documentprivacyscope": self._privacy_scope,
            "encryption": self._encryption,
            "jobprivacyattributes": self._privacy_attributes,
            "jobprivacyscope": self._privacy_scope,
            "keepfiles": self._keep_files,
            "listen": self._listen,
            "logfile": self._log_file,
            "loglevel": self._log_level,
            "maxcompletedjobs": self._max_completed_jobs,
            "maxjobs": self._max_jobs,
            "spooldirectory": self._spool_directory,
            "subscriptionprivacyattributes": self._privacy_attributes,
            "subscriptionprivacyscope": self._privacy_scope,
        }

    def load(self, path: Union[str, Path]) -> ServerConfig:
        """
        Read a system configuration file.

        Args:
            path: Path to system.conf

        Returns:
            The updated ServerConfig

        Raises:
            ConfigurationError: On the first invalid or duplicate directive,
                or if the file exists but cannot be read
        """
        self._filename = str(path)

        try:
            with open(path, "r", encoding="utf-8") as f:
                lines = f.readlines()
        except FileNotFoundError:
            logger.info(f'No system configuration file "{path}", using defaults.')
            return self.config
        except OSError as e:
            raise ConfigurationError(f'Unable to open "{path}": {e.strerror or e}') from e
        except UnicodeDecodeError as e:
            raise ConfigurationError(f'Unable to read "{path}": {e.reason} at byte {e.start}') from e

        for linenum, directive, value in read_directives(lines):
            self._linenum = linenum
            if value is None:
                self._fail("Missing value")

            handler = self._handlers.get(directive.lower())
            if handler is None:
                logger.warning(f'Unknown directive "{directive}" on line {self._linenum} of "{self._filename}".')
                continue

            handler(directive, value)

        logger.info(f'Loaded system configuration from "{path}".')
        return self.config

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _fail(self, message: str) -> None:
        raise ConfigurationError(message, self._filename, self._linenum)

    def _set_once(self, target: SetOnce, value: str) -> None:
        target.set(value, self._filename, self._linenum)

    def _check_unset(self, target: SetOnce, directive: str) -> None:
        if target.is_set:
            raise DuplicateDirectiveError(directive, self._filename, self._linenum)

    def _boolean(self, directive: str, value: str, true_words, false_words, label: str) -> bool:
        lowered = value.lower()
        if lowered in true_words:
            return True
        if lowered in false_words:
            return False
        self._fail(f'{label} {directive} "{value}"')

    def _group(self, directive: str, value: str) -> int:
        try:
            return self.group_lookup(value)
        except KeyError:
            self._fail(f'Unable to find {directive} "{value}"')

    def _number(self, directive: str, value: str) -> int:
        match = _LEADING_DIGITS_RE.match(value)
        if not match:
            self._fail(f'Bad {directive} value "{value}"')
        return int(match.group(0))

    def _directory(self, directive: str, value: str) -> str:
        if not os.access(value, os.R_OK):
            self._fail(f'Unable to access {directive} "{value}"')
        return value

    @staticmethod
    def _category(directive: str) -> PrivacyCategory:
        return PrivacyCategory(directive.lower().split("privacy", 1)[0])

    # -------------------------------------------------------------------------
    # Directive handlers
    # -------------------------------------------------------------------------

    def _authentication(self, directive: str, value: str) -> None:
        self.config.authentication = self._boolean(
            "Authentication", value, ("on", "yes"), ("off", "no"), "Unknown"
        )

    def _auth_admin_group(self, directive: str, value: str) -> None:
        self.config.auth_admin_group = self._group("AuthAdminGroup", value)

    def _auth_operator_group(self, directive: str, value: str) -> None:
        self.config.auth_operator_group = self._group("AuthOperatorGroup", value)

    def _auth_name(self, directive: str, value: str) -> None:
        self.config.auth_name = value

    def _auth_service(self, directive: str, value: str) -> None:
        self.config.auth_service = value

    def _auth_test_password(self, directive: str, value: str) -> None:
        self.config.auth_test_password = value

    def _auth_type(self, directive: str, value: str) -> None:
        self.config.auth_type = value

    def _data_directory(self, directive: str, value: str) -> None:
        self.config.data_directory = self._directory("DataDirectory", value)

    def _spool_directory(self, directive: str, value: str) -> None:
        self.config.spool_directory = self._directory("SpoolDirectory", value)

    def _default_printer(self, directive: str, value: str) -> None:
        self._set_once(self.config.default_printer, value)

    def _privacy_attributes(self, directive: str, value: str) -> None:
        self._set_once(self.config.privacy(self._category(directive)).attributes, value)

    def _privacy_scope(self, directive: str, value: str) -> None:
        category = self._category(directive)
        target = self.config.privacy(category).scope
        name = f"{category.value.capitalize()}PrivacyScope"
        self._check_unset(target, name)

        try:
            scope = PrivacyScope.from_keyword(value)
        except ValueError:
            self._fail(f'Bad {name} value "{value}"')

        self._set_once(target, scope.value)

    def _encryption(self, directive: str, value: str) -> None:
        encryption = keyword_lookup(Encryption, value)
        if encryption is None:
            self._fail(f'Bad Encryption value "{value}"')
        self.config.encryption = encryption

    def _keep_files(self, directive: str, value: str) -> None:
        self.config.keep_files = self._boolean("KeepFiles", value, TRUE_WORDS, FALSE_WORDS, "Bad")

    def _listen(self, directive: str, value: str) -> None:
        host, port = value, 0
        colon = value.rfind(":")

        if colon >= 0 and not value.endswith("]"):
            if not value[colon + 1:colon + 2].isdigit():
                self._fail(f'Bad Listen value "{value}"')
            host = value[:colon]
            port = int(_LEADING_DIGITS_RE.match(value[colon + 1:]).group(0))

        if not port:
            port = self.config.default_port or default_port()

        if self.create_listeners is not None and not self.create_listeners(host, port):
            self._fail(f'Unable to listen on "{host}:{port}"')

        self.config.listeners.append((host, port))

    def _log_file(self, directive: str, value: str) -> None:
        self.config.log_file = None if value.lower() == "stderr" else value

    def _log_level(self, directive: str, value: str) -> None:
        log_level = keyword_lookup(LogLevel, value)
        if log_level is None:
            self._fail(f'Bad LogLevel value "{value}"')
        self.config.log_level = log_level

    def _max_completed_jobs(self, directive: str, value: str) -> None:
        self.config.max_completed_jobs = self._number("MaxCompletedJobs", value)

    def _max_jobs(self, directive: str, value: str) -> None:
        self.config.max_jobs = self._number("MaxJobs", value)


def load_system(
    path: Union[str, Path],
    config: Optional[ServerConfig] = None,
    create_listeners: Optional[CreateListeners] = None,
    group_lookup: GroupLookup = lookup_group,
) -> ServerConfig:
    """
    Load system.conf into a ServerConfig (not yet finalized).

    Raises:
        ConfigurationError: On the first bad directive
    """
    return DirectiveInterpreter(config, create_listeners, group_lookup).load(path)


def finalize_configuration(
    config: ServerConfig,
    create_listeners: Optional[CreateListeners] = None,
) -> ServerConfig:
    """
    Fill in defaults for every unset field and freeze the configuration.

    Args:
        config: Configuration populated by load_system()
        create_listeners: Called for the default listener when no Listen
            directive was given

    Returns:
        The same ServerConfig, now read-only

    Raises:
        ConfigurationError: If already finalized or the default listener fails
        DirectoryCreationError: If the default data directory cannot be created
    """
    if config.is_finalized:
        raise ConfigurationError("Server configuration has already been finalized")

    # Default hostname...
    if not config.server_name:
        try:
            config.server_name = socket.gethostname() or "localhost"
        except OSError:
            config.server_name = "localhost"

    # Default directories...
    if not config.data_directory:
        directory = os.path.join(tempfile.gettempdir(), f"ippserver.{os.getpid()}")
        try:
            os.mkdir(directory, 0o755)
        except FileExistsError:
            pass
        except OSError as e:
            logger.error(f'Unable to create default data directory "{directory}": {e.strerror}')
            raise DirectoryCreationError(directory, e.strerror or str(e)) from e

        logger.info(f'Using default data directory "{directory}".')
        config.data_directory = directory

    if not config.spool_directory:
        config.spool_directory = config.data_directory
        logger.info(f'Using default spool directory "{config.data_directory}".')

    # Authentication/authorization support...
    if config.authentication:
        if config.auth_admin_group is None:
            config.auth_admin_group = WHEEL_GROUP
        if config.auth_operator_group is None:
            config.auth_operator_group = os.getgid()

        if not config.auth_name:
            config.auth_name = DEFAULT_AUTH_NAME
        if not config.auth_service and not config.auth_test_password:
            config.auth_service = DEFAULT_AUTH_SERVICE
        if not config.auth_type:
            config.auth_type = DEFAULT_AUTH_TYPE

        default_scope, default_attributes = PrivacyScope.DEFAULT.value, "default"
    else:
        default_scope, default_attributes = PrivacyScope.ALL.value, "none"

    for category in PrivacyCategory:
        directive = config.privacy(category)
        directive.scope.set_default(default_scope)
        directive.attributes.set_default(default_attributes)

    # Apply default listeners if none are specified...
    if not config.listeners:
        if not config.default_port:
            config.default_port = default_port()

        host = "localhost" if config.server_name == "localhost" else None
        logger.info(f"Using default listeners for {config.server_name}:{config.default_port}.")

        if create_listeners is not None and not create_listeners(host, config.default_port):
            raise ConfigurationError(
                f"Unable to create default listeners for {config.server_name}:{config.default_port}"
            )
        config.listeners.append((host, config.default_port))

    config.freeze()
    return config
