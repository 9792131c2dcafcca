from .comm import OpenSearchTransport as OpenSearchTransport

from .enum import IndexType as IndexType

from .errors import (
    SinkError as SinkError,
    BootstrapError as BootstrapError,
    TemplateSourceError as TemplateSourceError,
    DocumentParseError as DocumentParseError,
)

from .handlers import (
    BatchingSink as BatchingSink,
    BulkWriter as BulkWriter,
    ConnectionConfig as ConnectionConfig,
    DestinationBootstrapper as DestinationBootstrapper,
    FailureSink as FailureSink,
    FieldIdentifierExtractor as FieldIdentifierExtractor,
    IdentifierExtractor as IdentifierExtractor,
    IndexConfig as IndexConfig,
    NoIdentifierExtractor as NoIdentifierExtractor,
    RetryConfig as RetryConfig,
    SinkConfig as SinkConfig,
    SinkStatus as SinkStatus,
)

from .models import (
    Batch as Batch,
    FailureRecord as FailureRecord,
    ItemResult as ItemResult,
    Record as Record,
    Transmitted as Transmitted,
    TransportFailure as TransportFailure,
    WriteOperation as WriteOperation,
)

# useful to do like: `from indexsink import BatchingSink`
__all__ = [
    "Batch",
    "BatchingSink",
    "BootstrapError",
    "BulkWriter",
    "ConnectionConfig",
    "DestinationBootstrapper",
    "DocumentParseError",
    "FailureRecord",
    "FailureSink",
    "FieldIdentifierExtractor",
    "IdentifierExtractor",
    "IndexConfig",
    "IndexType",
    "ItemResult",
    "NoIdentifierExtractor",
    "OpenSearchTransport",
    "Record",
    "RetryConfig",
    "SinkConfig",
    "SinkError",
    "SinkStatus",
    "TemplateSourceError",
    "Transmitted",
    "TransportFailure",
    "WriteOperation",
]
