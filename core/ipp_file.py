"""
ipptool-style attribute file parser.

Queue definition files use the same grammar as ipptool test files:

    # comment
    DEFINE name value
    DEFINE-DEFAULT name value
    INCLUDE "other.conf"
    GROUP printer-attributes-tag
    ATTR keyword sides-supported one-sided,two-sided-long-edge
    ATTR collection media-col-default { MEMBER keyword media-type stationery }

Anything the parser does not understand itself is handed to the caller's
token callback, which may read further tokens with read_token() and expand
them with expand(). This keeps the grammar for queue-specific directives
(Make, Model, DeviceURI, ...) out of this module.

Callbacks:
    keep_attribute(name)        -> False drops the ATTR from the result
    on_error(parser, message)   -> False aborts the parse
    on_token(parser, token)     -> False aborts the parse

parse() returns the attribute dict, or None when the file could not be read
or parsing was aborted.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Tuple, Union


# Out-of-band value tags carry no value token
OUT_OF_BAND_TAGS = {
    "admin-define",
    "default",
    "delete-attribute",
    "no-value",
    "not-settable",
    "unknown",
    "unsupported",
}

INTEGER_TAGS = {"integer", "enum"}

STRING_TAGS = {
    "charset",
    "datetime",
    "keyword",
    "memberattrname",
    "mimemediatype",
    "name",
    "namewithlanguage",
    "namewithoutlanguage",
    "naturallanguage",
    "octetstring",
    "text",
    "textwithlanguage",
    "textwithoutlanguage",
    "uri",
    "urischeme",
}

GROUP_TAGS = {
    "document",
    "event-notification",
    "job",
    "operation",
    "printer",
    "resource",
    "subscription",
    "system",
    "unsupported",
}

_RESOLUTION_RE = re.compile(r"^(\d+)(?:x(\d+))?(dpi|dpcm|other)$")
_RANGE_RE = re.compile(r"^(-?\d+)-(-?\d+)$")
_VAR_RE = re.compile(r"\$(?:(\$)|ENV\[([^\]]+)\]|\{([^}]+)\}|([A-Za-z_][A-Za-z0-9_-]*))")

# INCLUDE nesting limit
MAX_INCLUDE_DEPTH = 64


class IppFileSyntaxError(Exception):
    """Unrecoverable syntax error; the rest of the file cannot be trusted."""


@dataclass(frozen=True)
class IppAttribute:
    """A single attribute loaded from an attribute file."""

    name: str
    value_tag: str
    values: Tuple[Any, ...] = ()
    group: Optional[str] = "printer"

    @property
    def value(self) -> Any:
        """First value, or None for out-of-band attributes."""
        return self.values[0] if self.values else None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        def _plain(value: Any) -> Any:
            if isinstance(value, dict):
                return {k: v.to_dict() for k, v in value.items()}
            if isinstance(value, tuple):
                return list(value)
            return value

        return {
            "name": self.name,
            "group": self.group,
            "value_tag": self.value_tag,
            "values": [_plain(v) for v in self.values],
        }


class IppVars:
    """
    Variable context for attribute files.

    Supports $name, ${name}, $ENV[name] and $$ (a literal dollar sign).
    Undefined variables expand to an empty string.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._values: Dict[str, str] = dict(initial or {})

    def get(self, name: str) -> Optional[str]:
        return self._values.get(name)

    def set(self, name: str, value: str) -> None:
        self._values[name] = value

    def is_defined(self, name: str) -> bool:
        return name in self._values

    def expand(self, text: str) -> str:
        """Substitute variable references in text."""
        def _replace(match: "re.Match[str]") -> str:
            if match.group(1):
                return "$"
            if match.group(2):
                return os.environ.get(match.group(2), "")
            name = match.group(3) or match.group(4)
            return self._values.get(name, "")

        return _VAR_RE.sub(_replace, text)


class FileCallbacks(Protocol):
    """Hooks supplied by the caller of IppFileParser."""

    def keep_attribute(self, name: str) -> bool:
        ...

    def on_error(self, parser: "IppFileParser", message: str) -> bool:
        ...

    def on_token(self, parser: "IppFileParser", token: str) -> bool:
        ...


@dataclass
class _Source:
    """One open file on the INCLUDE stack."""

    filename: str
    text: str
    pos: int = 0
    line: int = 1
    token_line: int = 0
    pending: List[Tuple[Tuple[str, bool], int]] = field(default_factory=list)


class IppFileParser:
    """
    Parser for ipptool-style attribute files.

    One parser instance parses one file (plus its INCLUDEs). The parser is
    not thread-safe; create one per file.
    """

    def __init__(self, callbacks: FileCallbacks, variables: Optional[IppVars] = None):
        self.callbacks = callbacks
        self.vars = variables or IppVars()
        self._sources: List[_Source] = []
        self._group: str = "printer"
        self.attributes: Dict[str, IppAttribute] = {}

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    @property
    def filename(self) -> str:
        """File currently being read."""
        return self._sources[-1].filename if self._sources else ""

    @property
    def linenum(self) -> int:
        """Line number of the most recently read token."""
        return self._sources[-1].token_line if self._sources else 0

    def parse(self, filename: Union[str, Path]) -> Optional[Dict[str, IppAttribute]]:
        """
        Parse a file and return its attributes.

        Returns:
            Attribute dictionary in file order, or None on failure
        """
        self.attributes = {}
        self._group = "printer"

        try:
            ok = self._parse_file(str(filename))
        finally:
            self._sources.clear()

        return self.attributes if ok else None

    def read_token(self) -> Optional[str]:
        """Read the next raw token, or None at end of file."""
        token = self._next()
        return token[0] if token else None

    def expand(self, text: str) -> str:
        """Expand variables in text using the parser's variable context."""
        return self.vars.expand(text)

    # -------------------------------------------------------------------------
    # Statements
    # -------------------------------------------------------------------------

    def _parse_file(self, filename: str) -> bool:
        try:
            with open(filename, "r", encoding="utf-8") as f:
                text = f.read()
        except OSError as e:
            self.callbacks.on_error(self, f'Unable to open "{filename}": {e.strerror or e}')
            return False
        except UnicodeDecodeError as e:
            self.callbacks.on_error(self, f'Unable to read "{filename}": {e.reason} at byte {e.start}.')
            return False

        self._sources.append(_Source(filename=filename, text=text))

        try:
            while True:
                token = self.read_token()
                if token is None:
                    return True

                keyword = token.upper()

                if keyword == "DEFINE" or keyword == "DEFINE-DEFAULT":
                    name = self.read_token()
                    value = self.read_token()
                    if name is None or value is None:
                        raise IppFileSyntaxError(f"Missing {keyword} name and/or value")
                    if keyword == "DEFINE" or not self.vars.is_defined(name):
                        self.vars.set(name, self.expand(value))

                elif keyword == "INCLUDE":
                    include = self.read_token()
                    if include is None:
                        raise IppFileSyntaxError("Missing INCLUDE filename")
                    path = Path(self.expand(include))
                    if not path.is_absolute():
                        path = Path(filename).parent / path
                    including = [Path(source.filename).resolve() for source in self._sources]
                    if path.resolve() in including or len(including) >= MAX_INCLUDE_DEPTH:
                        raise IppFileSyntaxError(f'Recursive INCLUDE of "{path}"')
                    if not self._parse_file(str(path)):
                        return False

                elif keyword == "GROUP":
                    tag = self.read_token()
                    if tag is None:
                        raise IppFileSyntaxError("Missing GROUP tag")
                    group = _normalize_group(tag)
                    if group is None:
                        if not self._report(f'Bad GROUP tag "{tag}"'):
                            return False
                    else:
                        self._group = group

                elif keyword == "ATTR":
                    if not self._parse_attr():
                        return False

                elif not self.callbacks.on_token(self, token):
                    return False
        except IppFileSyntaxError as e:
            self._report(str(e))
            return False
        finally:
            self._sources.pop()

    def _parse_attr(self) -> bool:
        tag = self.read_token()
        name = self.read_token()
        if tag is None or name is None:
            raise IppFileSyntaxError("Missing ATTR value tag and/or name")

        value_tag = tag.lower()
        errors: List[str] = []
        values = self._parse_values(value_tag, name, errors)

        if errors:
            for message in errors:
                if not self._report(message, located=True):
                    return False
            return True

        if self.callbacks.keep_attribute(name):
            self.attributes[name] = IppAttribute(name, value_tag, tuple(values), self._group)

        return True

    def _parse_values(self, value_tag: str, name: str, errors: List[str]) -> List[Any]:
        if value_tag in OUT_OF_BAND_TAGS:
            return []

        values: List[Any] = []
        while True:
            token = self._next()
            if token is None:
                raise IppFileSyntaxError(f'Missing value for "{name}"')

            text, quoted = token
            if value_tag == "collection":
                if quoted or text != "{":
                    raise IppFileSyntaxError(f'Expected "{{" for collection "{name}"')
                values.append(self._parse_collection(errors))
            else:
                try:
                    values.append(_convert_value(value_tag, self.expand(text)))
                except ValueError as e:
                    errors.append(f'{e} for "{name}" on line {self.linenum} of "{self.filename}".')

            separator = self._peek()
            if separator is None or separator != (",", False):
                return values
            self._next()

    def _parse_collection(self, errors: List[str]) -> Dict[str, IppAttribute]:
        members: Dict[str, IppAttribute] = {}
        while True:
            token = self._next()
            if token is None:
                raise IppFileSyntaxError("Unterminated collection")
            if token == ("}", False):
                return members
            if token[0].upper() != "MEMBER":
                raise IppFileSyntaxError(f'Unexpected token "{token[0]}" in collection')

            tag = self.read_token()
            name = self.read_token()
            if tag is None or name is None:
                raise IppFileSyntaxError("Missing MEMBER value tag and/or name")

            value_tag = tag.lower()
            values = self._parse_values(value_tag, name, errors)
            members[name] = IppAttribute(name, value_tag, tuple(values), None)

    def _report(self, message: str, located: bool = False) -> bool:
        if not located:
            message = f'{message} on line {self.linenum} of "{self.filename}".'
        return self.callbacks.on_error(self, message)

    # -------------------------------------------------------------------------
    # Tokenizer
    # -------------------------------------------------------------------------

    def _peek(self) -> Optional[Tuple[str, bool]]:
        source = self._sources[-1]
        token_line = source.token_line
        token = self._next()
        if token is not None:
            source.pending.append((token, source.token_line))
        source.token_line = token_line
        return token

    def _next(self) -> Optional[Tuple[str, bool]]:
        """Return (text, quoted) for the next token, or None at end of file."""
        source = self._sources[-1]
        if source.pending:
            token, source.token_line = source.pending.pop()
            return token

        text = source.text
        length = len(text)

        # Skip whitespace and comments
        while source.pos < length:
            ch = text[source.pos]
            if ch == "\n":
                source.line += 1
                source.pos += 1
            elif ch.isspace():
                source.pos += 1
            elif ch == "#":
                while source.pos < length and text[source.pos] != "\n":
                    source.pos += 1
            else:
                break

        if source.pos >= length:
            return None

        source.token_line = source.line
        ch = text[source.pos]

        if ch in "{},":
            source.pos += 1
            return ch, False

        if ch in "\"'":
            quote = ch
            source.pos += 1
            chars: List[str] = []
            while True:
                if source.pos >= length:
                    raise IppFileSyntaxError("Unterminated quoted string")
                ch = text[source.pos]
                if ch == "\\" and source.pos + 1 < length:
                    source.pos += 1
                    ch = text[source.pos]
                elif ch == quote:
                    source.pos += 1
                    return "".join(chars), True
                if ch == "\n":
                    source.line += 1
                chars.append(ch)
                source.pos += 1

        start = source.pos
        while source.pos < length and not text[source.pos].isspace() and text[source.pos] not in "{},":
            source.pos += 1
        return text[start:source.pos], False


def _normalize_group(tag: str) -> Optional[str]:
    group = tag.lower()
    if group.endswith("-attributes-tag"):
        group = group[: -len("-attributes-tag")]
    elif group.endswith("-tag"):
        group = group[: -len("-tag")]
    return group if group in GROUP_TAGS else None


def _convert_value(value_tag: str, text: str) -> Any:
    """Convert one value token to its Python representation."""
    if value_tag in INTEGER_TAGS:
        try:
            return int(text)
        except ValueError:
            # enum values may be given by keyword, e.g. "portrait"
            if value_tag == "enum" and re.match(r"^[a-z][a-z0-9-]*$", text):
                return text
            raise ValueError(f'Bad {value_tag} value "{text}"') from None

    if value_tag == "boolean":
        lowered = text.lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
        raise ValueError(f'Bad boolean value "{text}"')

    if value_tag == "rangeofinteger":
        match = _RANGE_RE.match(text)
        if not match:
            raise ValueError(f'Bad rangeOfInteger value "{text}"')
        return int(match.group(1)), int(match.group(2))

    if value_tag == "resolution":
        match = _RESOLUTION_RE.match(text)
        if not match:
            raise ValueError(f'Bad resolution value "{text}"')
        xres = int(match.group(1))
        yres = int(match.group(2)) if match.group(2) else xres
        return xres, yres, match.group(3)

    if value_tag in STRING_TAGS:
        return text

    raise ValueError(f'Bad value tag "{value_tag}"')
