from .enum import SinkStatus as SinkStatus
from .config import (
    ConnectionConfig as ConnectionConfig,
    IndexConfig as IndexConfig,
    RetryConfig as RetryConfig,
    SinkConfig as SinkConfig,
)
from .extractor import (
    IdentifierExtractor as IdentifierExtractor,
    FieldIdentifierExtractor as FieldIdentifierExtractor,
    NoIdentifierExtractor as NoIdentifierExtractor,
)
from .bootstrapper import DestinationBootstrapper as DestinationBootstrapper
from .bulk_writer import BulkWriter as BulkWriter
from .failure_sink import FailureSink as FailureSink
from .sink import BatchingSink as BatchingSink
