"""
Transport Module.

This module provides `OpenSearchTransport`, the thin outbound boundary
between the sink and the document store. It narrows an `opensearch-py`
client (or anything exposing the same surface) to the few calls the sink
performs, so that the rest of the library never touches the client API
directly.
"""

import logging as log
from typing import TYPE_CHECKING, Any, Dict, Iterable, Mapping, Optional

from .connection import _get_connection

if TYPE_CHECKING:
    from ..handlers.config import ConnectionConfig


class OpenSearchTransport:
    """
    Wraps an already-authenticated OpenSearch client.

    The client is owned by the transport: `close()` releases it.
    """

    def __init__(self, client: Any):
        """
        Args:
            client: An `opensearchpy.OpenSearch` instance, or any object exposing
                    `bulk`, `indices.exists`, `indices.create`, `indices.put_template`
                    and `close`.
        """
        self._client = client

    @classmethod
    def connect(cls, config: "ConnectionConfig") -> "OpenSearchTransport":
        """
        Factory method building a transport on a new client.

        Args:
            config (ConnectionConfig): Hosts, credentials and timeouts.

        Returns:
            OpenSearchTransport: A transport owning the new client.
        """
        return cls(_get_connection(config))

    @property
    def client(self) -> Any:
        """Returns the wrapped client."""
        return self._client

    def bulk(self, body: str, index: str) -> Dict[str, Any]:
        """
        Sends one bulk request.

        Args:
            body (str): The NDJSON bulk body.
            index (str): Default target index for actions without `_index`.

        Returns:
            Dict[str, Any]: The decoded bulk response.
        """
        return self._client.bulk(body=body, index=index)

    def index_exists(self, name: str) -> bool:
        """
        Checks whether an index or an alias with the given name exists.
        """
        return bool(self._client.indices.exists(index=name))

    def create_index(self, name: str, alias: Optional[str] = None) -> None:
        """
        Creates an index, optionally binding a write alias to it.

        Args:
            name (str): Physical index name.
            alias (Optional[str]): Alias to bind as the write target of the index.
        """
        body: Dict[str, Any] = {}
        if alias is not None:
            body["aliases"] = {alias: {"is_write_index": True}}
        self._client.indices.create(index=name, body=body)

    def put_template(
        self, name: str, patterns: Iterable[str], source: Mapping[str, Any]
    ) -> None:
        """
        Stores an index template, overriding its index patterns.

        Args:
            name (str): Template name.
            patterns (Iterable[str]): Index patterns the template applies to.
            source (Mapping[str, Any]): Template document (settings, mappings, ...).
        """
        body = dict(source)
        body["index_patterns"] = list(patterns)
        self._client.indices.put_template(name=name, body=body)

    def close(self) -> None:
        """Releases the wrapped client."""
        log.debug("Closing OpenSearch client")
        self._client.close()
