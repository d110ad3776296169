"""
Print queue data models.

QueueInfo is built by the queue attribute loader from one <name>.conf file.
PrintQueue is the registry entry wrapping it under a resource path.

Thread Safety:
    - QueueInfo is only mutated while its file is being parsed
    - PrintQueue is frozen; once registered it is shared read-only
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Any, List, Optional

from core.ipp_file import IppAttribute


class QueueCategory(Enum):
    """
    Kind of print queue.

    The value is the subdirectory of the configuration directory holding
    the queue files; resource_prefix is the IPP path prefix.
    """

    PRINT = "print"
    PRINT3D = "print3d"

    @property
    def directory(self) -> str:
        return self.value

    @property
    def resource_prefix(self) -> str:
        return f"/ipp/{self.value}"

    def resource_for(self, name: str) -> str:
        """Resource path for a queue named `name` in this category."""
        return f"{self.resource_prefix}/{name}"


@dataclass
class QueueInfo:
    """Everything loaded from one queue attribute file."""

    print_group: Optional[int] = None
    """Group allowed to print (None = everyone)."""

    proxy_group: Optional[int] = None
    """Group allowed to act as an infrastructure proxy (None = nobody special)."""

    command: Optional[str] = None
    device_uri: Optional[str] = None
    output_format: Optional[str] = None
    make: Optional[str] = None
    model: Optional[str] = None

    icon: Optional[str] = None
    """Path of <name>.png next to the attribute file, if present."""

    strings: Dict[str, str] = field(default_factory=dict)
    """Localization files keyed by language; last one wins."""

    attributes: Dict[str, IppAttribute] = field(default_factory=dict)
    """IPP attributes from the file, minus the runtime-only ones."""

    def add_strings(self, language: str, filename: str) -> None:
        """Register (or replace) the strings file for a language."""
        self.strings[language] = filename

    @property
    def languages(self) -> List[str]:
        """Languages with a strings file, in sorted order."""
        return sorted(self.strings)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        return {
            "make": self.make,
            "model": self.model,
            "device_uri": self.device_uri,
            "output_format": self.output_format,
            "command": self.command,
            "icon": self.icon,
            "print_group": self.print_group,
            "proxy_group": self.proxy_group,
            "strings": {lang: self.strings[lang] for lang in self.languages},
            "attributes": [attr.to_dict() for attr in self.attributes.values()],
        }


@dataclass(frozen=True)
class PrintQueue:
    """A registered queue, addressed by its resource path."""

    resource: str
    """Unique key, e.g. /ipp/print/laser."""

    name: str
    """Base name of the attribute file."""

    category: QueueCategory
    info: QueueInfo

    def to_dict(self, include_attributes: bool = False) -> Dict[str, Any]:
        """Convert to dictionary for JSON responses."""
        data = {
            "resource": self.resource,
            "name": self.name,
            "category": self.category.value,
            "make": self.info.make,
            "model": self.info.model,
            "languages": self.info.languages,
            "has_icon": self.info.icon is not None,
        }
        if include_attributes:
            data["info"] = self.info.to_dict()
        return data
