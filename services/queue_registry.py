"""
Queue registry with discovery from the configuration directory.

Queues are defined by attribute files in two subdirectories of the
configuration directory:

    <config-dir>/print/<name>.conf      -> /ipp/print/<name>
    <config-dir>/print/<name>.png       -> optional icon for <name>
    <config-dir>/print3d/<name>.conf    -> /ipp/print3d/<name>

Thread Safety:
    - All reads and writes take a single threading.Lock
    - The lock covers in-memory work only; attribute files are parsed and
      job cleanup runs without it held
    - Registered PrintQueue objects are frozen and may be used after the
      lock is released

Usage:
    registry = QueueRegistry(default_printer=config.default_printer.value)
    registry.discover(config_dir)

    # In request handlers
    queue = registry.find("/ipp/print/laser")

    # Periodically
    registry.cleanup(clean_jobs)
"""

from __future__ import annotations

import bisect
import os
import threading
from pathlib import Path
from typing import Callable, Dict, Iterator, List, Optional, Union

from core.exceptions import DuplicateQueueError, QueueLoadError
from logging_config import get_logger
from models.queue_info import PrintQueue, QueueCategory, QueueInfo
from modules.queue_attributes import load_attributes


# Module logger
logger = get_logger(__name__)

# Shorthand resource answered by the sole (or default) queue
GENERIC_RESOURCE = "/ipp/print"

# (attribute file path, icon=...) -> QueueInfo, raising QueueLoadError
QueueLoader = Callable[..., QueueInfo]

# Job-retention maintenance for one queue
CleanJobs = Callable[[PrintQueue], None]

_CATEGORY_LABELS = {
    QueueCategory.PRINT: "printer",
    QueueCategory.PRINT3D: "3D printer",
}


class QueueRegistry:
    """
    Resource-ordered collection of print queues.

    Resource paths are unique: add() rejects a second queue with the same
    resource rather than replacing the first.
    """

    def __init__(self, default_printer: Optional[str] = None):
        """
        Initialize an empty registry.

        Args:
            default_printer: Queue name that answers the generic /ipp/print
                resource when more than one queue is registered
        """
        self.default_printer = default_printer
        self._queues: Dict[str, PrintQueue] = {}
        self._order: List[str] = []
        self._lock = threading.Lock()

    # -------------------------------------------------------------------------
    # Registration
    # -------------------------------------------------------------------------

    def add(self, queue: PrintQueue) -> None:
        """
        Register a queue.

        Raises:
            DuplicateQueueError: If the resource path is already registered
        """
        with self._lock:
            if queue.resource in self._queues:
                raise DuplicateQueueError(queue.resource)
            bisect.insort(self._order, queue.resource)
            self._queues[queue.resource] = queue

        logger.info(f'Registered queue "{queue.name}" at {queue.resource}.')

    def remove(self, resource: str) -> Optional[PrintQueue]:
        """Unregister and return the queue at resource, if any."""
        with self._lock:
            queue = self._queues.pop(resource, None)
            if queue is not None:
                self._order.remove(resource)

        if queue is not None:
            logger.info(f'Removed queue "{queue.name}" from {resource}.')
        return queue

    def discover(self, directory: Union[str, Path], loader: QueueLoader = load_attributes) -> int:
        """
        Load every queue definition under directory.

        Files that fail to load are logged and skipped; the remaining files
        are still loaded.

        Args:
            directory: Configuration directory containing print/ and print3d/
            loader: Attribute file loader

        Returns:
            Number of queues added
        """
        added = 0
        for category in QueueCategory:
            added += self._discover_category(Path(directory), category, loader)
        return added

    def _discover_category(self, directory: Path, category: QueueCategory, loader: QueueLoader) -> int:
        path = directory / category.directory
        label = _CATEGORY_LABELS[category]

        if not path.is_dir():
            logger.debug(f'No {label} directory "{path}".')
            return 0

        try:
            entries = sorted(os.listdir(path))
        except OSError as e:
            logger.error(f'Unable to read {label} directory "{path}": {e.strerror or e}')
            return 0

        logger.info(f'Loading {label}s from "{path}".')

        added = 0
        for entry in entries:
            if not entry.endswith(".conf") or entry == ".conf":
                if ".png" not in entry:
                    logger.info(f'Skipping "{entry}".')
                continue

            name = entry[: -len(".conf")]
            logger.info(f'Loading {label} from "{entry}".')

            icon_path = path / f"{name}.png"
            icon = str(icon_path) if os.access(icon_path, os.R_OK) else None

            # Parse without the registry lock held
            try:
                info = loader(str(path / entry), icon=icon)
            except QueueLoadError as e:
                logger.error(f'Skipping {label} "{name}": {e.message}')
                continue

            queue = PrintQueue(
                resource=category.resource_for(name),
                name=name,
                category=category,
                info=info,
            )

            try:
                self.add(queue)
            except DuplicateQueueError as e:
                logger.error(f'Skipping {label} "{name}": {e.message}')
                continue

            added += 1

        return added

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    def find(self, resource: str) -> Optional[PrintQueue]:
        """
        Find the queue serving a request resource.

        When exactly one queue is registered it also answers the generic
        /ipp/print resource. With several queues, /ipp/print goes to the
        default printer (if configured and registered) or else the first
        queue in resource order.

        Args:
            resource: Request path, e.g. "/ipp/print/laser"

        Returns:
            Matching PrintQueue or None
        """
        with self._lock:
            if not self._order:
                return None

            if len(self._order) == 1 or resource == GENERIC_RESOURCE:
                match = self._generic_queue()
                if match.resource != resource and resource != GENERIC_RESOURCE:
                    return None
                return match

            return self._queues.get(resource)

    def _generic_queue(self) -> PrintQueue:
        # Caller holds self._lock
        if self.default_printer:
            for resource in self._order:
                queue = self._queues[resource]
                if queue.name == self.default_printer:
                    return queue
        return self._queues[self._order[0]]

    def snapshot(self) -> List[PrintQueue]:
        """Registered queues in resource order."""
        with self._lock:
            return [self._queues[resource] for resource in self._order]

    def resources(self) -> List[str]:
        """Registered resource paths in order."""
        with self._lock:
            return list(self._order)

    def __len__(self) -> int:
        with self._lock:
            return len(self._order)

    def __iter__(self) -> Iterator[PrintQueue]:
        return iter(self.snapshot())

    def __contains__(self, resource: object) -> bool:
        with self._lock:
            return resource in self._queues

    # -------------------------------------------------------------------------
    # Maintenance
    # -------------------------------------------------------------------------

    def cleanup(self, clean_jobs: CleanJobs) -> int:
        """
        Run job-retention maintenance for every queue.

        The queue list is copied under the lock and clean_jobs runs after the
        lock is released, so it may take as long as it needs. clean_jobs must
        not add or remove queues.

        Args:
            clean_jobs: Maintenance callable, called once per queue

        Returns:
            Number of queues visited
        """
        logger.debug("Cleaning old jobs.")

        queues = self.snapshot()
        for queue in queues:
            try:
                clean_jobs(queue)
            except Exception as e:
                logger.error(f'Job cleanup failed for "{queue.resource}": {e}', exc_info=True)

        return len(queues)
