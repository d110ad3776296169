"""
Server configuration loading.

Brings up the configuration layer in the one order that works:

    1. system.conf            -> ServerConfig (Listen directives register listeners)
    2. finalize_configuration -> defaults filled in, config frozen
    3. privacy resolution     -> PrivacyPolicy
    4. queue discovery        -> QueueRegistry

Steps 1-2 are fail-fast: a ConfigurationError means the server must not
start. Step 4 never fails as a whole; broken queue files are skipped.

Usage:
    context = load_server("/etc/ippserver")
    queue = context.registry.find("/ipp/print/laser")
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Optional, Union

from logging_config import get_logger, level_for, setup_logging
from models.privacy import PrivacyPolicy
from models.server_config import ServerConfig
from modules.directives import SYSTEM_CONF, GroupLookup, finalize_configuration, load_system, lookup_group
from modules.privacy_policy import build_privacy_policy
from modules.queue_attributes import load_attributes
from services.listeners import ListenerRegistry
from services.queue_registry import QueueRegistry


# Module logger
logger = get_logger(__name__)


@dataclass(frozen=True)
class ServerContext:
    """Everything the serving layer needs from the configuration layer."""

    config_directory: str
    config: ServerConfig
    privacy: PrivacyPolicy
    registry: QueueRegistry
    listeners: ListenerRegistry


def load_server(
    directory: Union[str, Path],
    listeners: Optional[ListenerRegistry] = None,
    group_lookup: GroupLookup = lookup_group,
    configure_logging: bool = False,
    default_port: Optional[int] = None,
) -> ServerContext:
    """
    Load the complete server configuration from a directory.

    Args:
        directory: Configuration directory (system.conf, print/, print3d/)
        listeners: Listener registry to record Listen directives in
        group_lookup: Group name resolver (system group database by default)
        configure_logging: Apply LogLevel/LogFile before loading queues
        default_port: Port for the default listener when system.conf has
            no Listen directive (8000 + uid % 1000 if not given)

    Returns:
        ServerContext with frozen config, privacy policy and queue registry

    Raises:
        ConfigurationError: If system.conf is invalid or finalization fails
    """
    directory = Path(directory)
    listeners = listeners if listeners is not None else ListenerRegistry()

    config = load_system(
        directory / SYSTEM_CONF,
        config=ServerConfig(default_port=default_port),
        create_listeners=listeners.create_listeners,
        group_lookup=group_lookup,
    )
    finalize_configuration(config, create_listeners=listeners.create_listeners)

    if configure_logging:
        setup_logging(log_level=level_for(config.log_level), log_file=config.log_file)

    privacy = build_privacy_policy(config)

    registry = QueueRegistry(default_printer=config.default_printer.value)
    count = registry.discover(directory, loader=partial(load_attributes, group_lookup=group_lookup))
    logger.info(f'Loaded {count} queue(s) from "{directory}".')

    if config.default_printer.value and all(q.name != config.default_printer.value for q in registry):
        logger.warning(f'DefaultPrinter "{config.default_printer.value}" does not match any queue.')

    return ServerContext(
        config_directory=str(directory),
        config=config,
        privacy=privacy,
        registry=registry,
        listeners=listeners,
    )
