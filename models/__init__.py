"""
Data models for the print server configuration layer.

This module contains dataclasses for:
- ServerConfig: settings read from system.conf (frozen after finalization)
- PrivacyPolicy: resolved document/job/subscription privacy rules
- QueueInfo / PrintQueue: one queue attribute file and its registry entry

PrivacyPolicy and PrintQueue are frozen and safe to share between threads.
"""

from .privacy import CategoryPolicy, PrivacyCategory, PrivacyPolicy, PrivacyScope
from .server_config import Encryption, LogLevel, PrivacyDirective, ServerConfig, SetOnce
from .queue_info import PrintQueue, QueueCategory, QueueInfo

__all__ = [
    # Privacy models
    "CategoryPolicy",
    "PrivacyCategory",
    "PrivacyPolicy",
    "PrivacyScope",
    # Configuration models
    "Encryption",
    "LogLevel",
    "PrivacyDirective",
    "ServerConfig",
    "SetOnce",
    # Queue models
    "PrintQueue",
    "QueueCategory",
    "QueueInfo",
]
