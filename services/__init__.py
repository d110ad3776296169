"""
Services layer for the print server configuration.

This module contains the stateful services:
- QueueRegistry: Ordered, lock-guarded collection of print queues
- ListenerRegistry: Listen requests recorded during configuration loading
- JobCleanupService: Background job-retention sweep
- load_server: Loads system.conf, privacy policy and queues in order

Thread Model:
    Main Thread (Flask)
    ├── load_server() at startup (single-threaded)
    └── request handlers (QueueRegistry.find)

    JobCleanup thread (background)
    └── QueueRegistry.cleanup() every CLEANUP_INTERVAL seconds
"""

from .cleanup_service import JobCleanupService
from .listeners import Listener, ListenerRegistry
from .queue_registry import GENERIC_RESOURCE, QueueRegistry
from .server_loader import ServerContext, load_server

__all__ = [
    "GENERIC_RESOURCE",
    "JobCleanupService",
    "Listener",
    "ListenerRegistry",
    "QueueRegistry",
    "ServerContext",
    "load_server",
]
