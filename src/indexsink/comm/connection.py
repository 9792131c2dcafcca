"""
Connection Management Module.

This module handles the creation of the OpenSearch client used by the sink
when no already-authenticated client is injected by the caller.
"""

import logging as log
from typing import TYPE_CHECKING, Any, Dict

from opensearchpy import OpenSearch
from urllib3 import Timeout

if TYPE_CHECKING:
    from ..handlers.config import ConnectionConfig

# Constants defining bulk request size limits
BYTES_PER_MB = 1024 * 1024
DEFAULT_BULK_SIZE_MB = 5


def _get_connection(config: "ConnectionConfig") -> OpenSearch:
    """
    Factory function to build a single OpenSearch client.

    Basic authentication is configured only when both username and password
    are provided. Timeouts are expressed in milliseconds in the configuration.

    Args:
        config (ConnectionConfig): The connection settings.

    Returns:
        OpenSearch: A client instance for the configured hosts.
    """
    kwargs: Dict[str, Any] = {"hosts": list(config.hosts)}

    if config.username is not None and config.password is not None:
        kwargs["http_auth"] = (config.username, config.password)
    elif config.username is not None or config.password is not None:
        log.warning(
            "Only one of 'username' and 'password' is set: basic authentication disabled."
        )

    read_timeout = (
        config.socket_timeout / 1000 if config.socket_timeout is not None else None
    )
    if config.connect_timeout is not None:
        # urllib3 accepts distinct connect and read timeouts
        kwargs["timeout"] = Timeout(
            connect=config.connect_timeout / 1000, read=read_timeout
        )
    elif read_timeout is not None:
        kwargs["timeout"] = read_timeout

    log.debug(f"Creating OpenSearch client for hosts {list(config.hosts)}")
    return OpenSearch(**kwargs)
