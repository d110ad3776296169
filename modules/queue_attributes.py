"""
Queue Attribute Loader

Loads one queue attribute file (<name>.conf) into a QueueInfo. On top of the
ipptool ATTR grammar, queue files accept these directives:

    AuthPrintGroup group          group allowed to print
    AuthProxyGroup group          group allowed to proxy
    Command "/path/to/command"    external processing command
    DeviceURI "uri"               output device (socket, ipp or ipps)
    OutputFormat "mime/type"      format the command produces
    Make "manufacturer"
    Model "model name"
    Strings lang filename         localization strings for one language

Every value is variable-expanded. A missing value, unknown group or unknown
directive stops loading the file; other parse errors are logged and the
offending attribute is skipped.

Attributes describing runtime state (printer-state, queued-job-count, ...)
are computed by the server and are dropped from the file.
"""

from pathlib import Path
from typing import Callable, Dict, Optional, Union

from core.exceptions import QueueLoadError
from core.ipp_file import IppFileParser, IppVars
from logging_config import get_logger
from models.queue_info import QueueInfo
from modules.directives import GroupLookup, lookup_group

logger = get_logger(__name__)


# Sorted - keep_attribute() stops scanning at the first entry past the name
IGNORED_ATTRIBUTES = (
    "attributes-charset",
    "attributes-natural-language",
    "charset-configured",
    "charset-supported",
    "device-service-count",
    "device-uuid",
    "document-format-varying-attributes",
    "job-settable-attributes-supported",
    "printer-alert",
    "printer-alert-description",
    "printer-camera-image-uri",
    "printer-charge-info",
    "printer-charge-info-uri",
    "printer-config-change-date-time",
    "printer-config-change-time",
    "printer-current-time",
    "printer-detailed-status-messages",
    "printer-dns-sd-name",
    "printer-fax-log-uri",
    "printer-get-attributes-supported",
    "printer-icons",
    "printer-id",
    "printer-is-accepting-jobs",
    "printer-message-date-time",
    "printer-message-from-operator",
    "printer-message-time",
    "printer-more-info",
    "printer-service-type",
    "printer-settable-attributes-supported",
    "printer-state",
    "printer-state-message",
    "printer-state-reasons",
    "printer-static-resource-directory-uri",
    "printer-static-resource-k-octets-free",
    "printer-static-resource-k-octets-supported",
    "printer-strings-languages-supported",
    "printer-strings-uri",
    "printer-supply-info-uri",
    "printer-up-time",
    "printer-uri-supported",
    "printer-xri-supported",
    "queued-job-count",
    "uri-authentication-supported",
    "uri-security-supported",
    "xri-authentication-supported",
    "xri-security-supported",
    "xri-uri-scheme-supported",
)


def keep_attribute(name: str) -> bool:
    """
    Whether an attribute from a queue file should be loaded.

    Args:
        name: Attribute name

    Returns:
        False if the attribute is on the ignore list
    """
    for ignored in IGNORED_ATTRIBUTES:
        if name <= ignored:
            return name != ignored
    return True


class QueueFileCallbacks:
    """Parser callbacks that fill in a QueueInfo."""

    def __init__(self, info: QueueInfo, group_lookup: GroupLookup = lookup_group):
        self.info = info
        self.group_lookup = group_lookup

        self._handlers: Dict[str, Callable[[IppFileParser], bool]] = {
            "authprintgroup": self._auth_print_group,
            "authproxygroup": self._auth_proxy_group,
            "command": self._command,
            "deviceuri": self._device_uri,
            "outputformat": self._output_format,
            "make": self._make,
            "model": self._model,
            "strings": self._strings,
        }

    def keep_attribute(self, name: str) -> bool:
        return keep_attribute(name)

    def on_error(self, parser: IppFileParser, message: str) -> bool:
        logger.error(message)
        return True

    def on_token(self, parser: IppFileParser, token: str) -> bool:
        handler = self._handlers.get(token.lower())
        if handler is None:
            logger.error(f'Unknown directive "{token}" on line {parser.linenum} of "{parser.filename}".')
            return False
        return handler(parser)

    # -------------------------------------------------------------------------
    # Directive handlers
    # -------------------------------------------------------------------------

    def _value(self, parser: IppFileParser, label: str) -> Optional[str]:
        token = parser.read_token()
        if token is None:
            logger.error(f'Missing {label} on line {parser.linenum} of "{parser.filename}".')
            return None
        return parser.expand(token)

    def _group(self, parser: IppFileParser, directive: str) -> Optional[int]:
        value = self._value(parser, f"{directive} value")
        if value is None:
            return None
        try:
            return self.group_lookup(value)
        except KeyError:
            logger.error(f'Unknown {directive} "{value}" on line {parser.linenum} of "{parser.filename}".')
            return None

    def _auth_print_group(self, parser: IppFileParser) -> bool:
        gid = self._group(parser, "AuthPrintGroup")
        if gid is None:
            return False
        self.info.print_group = gid
        return True

    def _auth_proxy_group(self, parser: IppFileParser) -> bool:
        gid = self._group(parser, "AuthProxyGroup")
        if gid is None:
            return False
        self.info.proxy_group = gid
        return True

    def _command(self, parser: IppFileParser) -> bool:
        self.info.command = self._value(parser, "Command value")
        return self.info.command is not None

    def _device_uri(self, parser: IppFileParser) -> bool:
        self.info.device_uri = self._value(parser, "DeviceURI value")
        return self.info.device_uri is not None

    def _output_format(self, parser: IppFileParser) -> bool:
        self.info.output_format = self._value(parser, "OutputFormat value")
        return self.info.output_format is not None

    def _make(self, parser: IppFileParser) -> bool:
        self.info.make = self._value(parser, "Make value")
        return self.info.make is not None

    def _model(self, parser: IppFileParser) -> bool:
        self.info.model = self._value(parser, "Model value")
        return self.info.model is not None

    def _strings(self, parser: IppFileParser) -> bool:
        language = self._value(parser, "STRINGS language")
        if language is None:
            return False

        filename = self._value(parser, "STRINGS filename")
        if filename is None:
            return False

        self.info.add_strings(language, filename)
        logger.debug(f'Added strings file "{filename}" for language "{language}".')
        return True


def load_attributes(
    filename: Union[str, Path],
    icon: Optional[str] = None,
    group_lookup: GroupLookup = lookup_group,
    variables: Optional[Dict[str, str]] = None,
) -> QueueInfo:
    """
    Load a queue attribute file.

    Args:
        filename: Path to <name>.conf
        icon: Path to the queue icon, attached only if loading succeeds
        group_lookup: Group name resolver for AuthPrintGroup/AuthProxyGroup
        variables: Initial variables for $name expansion

    Returns:
        Populated QueueInfo

    Raises:
        QueueLoadError: If the file could not be read or parsing was aborted
    """
    info = QueueInfo()
    parser = IppFileParser(QueueFileCallbacks(info, group_lookup), IppVars(variables))

    attributes = parser.parse(filename)
    if attributes is None:
        raise QueueLoadError(str(filename))

    info.attributes = attributes
    info.icon = icon
    return info
