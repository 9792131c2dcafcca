"""
Configuration Module.

This module defines the configuration structures used to control the behavior
of the sink: how to reach the document store, where and how documents are
indexed, and where failed documents are persisted.

All models are immutable once constructed and validated on construction, so
that an invalid setting fails at startup rather than on the first write.
"""

import math
from pathlib import Path
from typing import Any, Mapping, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..comm.connection import BYTES_PER_MB, DEFAULT_BULK_SIZE_MB
from ..enum import IndexType
from .extractor import DEFAULT_DOCUMENT_ID_FIELD
from .helpers import _validate_index_name

# Flat plugin setting keys, grouped by the model consuming them
_CONNECTION_KEYS = ("hosts", "username", "password", "socket_timeout", "connect_timeout")
_INDEX_KEYS = ("index_alias", "index_type", "template_file", "bulk_size")
_RETRY_KEYS = ("dlq_file",)


class ConnectionConfig(BaseModel):
    """
    Settings used to build a client for the document store.

    Attributes:
        hosts (Tuple[str, ...]): Store endpoints (e.g. "https://localhost:9200").
        username (Optional[str]): Basic auth user. Used only together with `password`.
        password (Optional[str]): Basic auth password.
        socket_timeout (Optional[int]): Read timeout in milliseconds.
        connect_timeout (Optional[int]): Connect timeout in milliseconds.
    """

    model_config = ConfigDict(frozen=True)

    hosts: Tuple[str, ...]
    username: Optional[str] = None
    password: Optional[str] = None
    socket_timeout: Optional[int] = Field(default=None, gt=0)
    connect_timeout: Optional[int] = Field(default=None, gt=0)

    @field_validator("hosts", mode="before")
    @classmethod
    def _wrap_single_host(cls, value: Any) -> Any:
        # a single endpoint may be given as a plain string
        if isinstance(value, str):
            return (value,)
        return value

    @field_validator("hosts")
    @classmethod
    def _check_hosts(cls, value: Tuple[str, ...]) -> Tuple[str, ...]:
        if not value:
            raise ValueError("'hosts' must contain at least one host")
        return value


class IndexConfig(BaseModel):
    """
    Settings describing the destination of the documents.

    Attributes:
        index_alias (str): Write alias (Raw) or index name (Custom).
        index_type (IndexType): Destination layout created on startup.
        template_file (Optional[str]): Path or URL of an index template applied on startup.
        bulk_size (float): Bulk request threshold in MB. Zero or negative disables
            size-based flushing: each `write()` call is sent as a single request.
    """

    model_config = ConfigDict(frozen=True)

    index_alias: str
    index_type: IndexType = IndexType.Raw
    template_file: Optional[str] = None
    bulk_size: float = DEFAULT_BULK_SIZE_MB

    @field_validator("index_alias")
    @classmethod
    def _check_index_alias(cls, value: str) -> str:
        _validate_index_name(value)
        return value

    @property
    def bulk_size_bytes(self) -> int:
        """The bulk request threshold converted to bytes (0 when disabled)."""
        if self.bulk_size <= 0:
            return 0
        # a positive size never rounds down to the disabled value
        return max(1, math.ceil(self.bulk_size * BYTES_PER_MB))


class RetryConfig(BaseModel):
    """
    Settings for the handling of documents the store refused.

    Attributes:
        dlq_file (Optional[Path]): NDJSON file collecting failed documents.
            If None, failures are only logged.
    """

    model_config = ConfigDict(frozen=True)

    dlq_file: Optional[Path] = None


class SinkConfig(BaseModel):
    """
    Complete configuration of a `BatchingSink`.

    Attributes:
        connection (Optional[ConnectionConfig]): Required only when the sink builds
            its own transport (see `BatchingSink.from_config`).
        index (IndexConfig): Destination settings.
        retry (RetryConfig): Failure persistence settings.
        document_id_field (Optional[str]): Top-level document field used as the
            document id. None lets the store generate ids.
    """

    model_config = ConfigDict(frozen=True)

    connection: Optional[ConnectionConfig] = None
    index: IndexConfig
    retry: RetryConfig = Field(default_factory=RetryConfig)
    document_id_field: Optional[str] = DEFAULT_DOCUMENT_ID_FIELD

    @classmethod
    def from_settings(cls, settings: Mapping[str, Any]) -> "SinkConfig":
        """
        Builds the configuration from a flat plugin settings map.

        Unknown keys are ignored. A connection section is created only when
        `hosts` is present.

        Args:
            settings (Mapping[str, Any]): e.g. {"hosts": [...], "index_alias": "traces", "bulk_size": 5}

        Returns:
            SinkConfig: The validated configuration.

        Raises:
            pydantic.ValidationError: If any setting is missing or invalid.
        """

        def _pick(keys):
            return {k: settings[k] for k in keys if settings.get(k) is not None}

        fields: dict[str, Any] = {
            "index": _pick(_INDEX_KEYS),
            "retry": _pick(_RETRY_KEYS),
        }
        if settings.get("hosts") is not None:
            fields["connection"] = _pick(_CONNECTION_KEYS)
        if "document_id_field" in settings:
            fields["document_id_field"] = settings["document_id_field"]

        return cls.model_validate(fields)
