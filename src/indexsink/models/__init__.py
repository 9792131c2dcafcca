from .operation import (
    REQUEST_OVERHEAD_BYTES as REQUEST_OVERHEAD_BYTES,
    Batch as Batch,
    BulkOutcome as BulkOutcome,
    FailureRecord as FailureRecord,
    ItemResult as ItemResult,
    Record as Record,
    Transmitted as Transmitted,
    TransportFailure as TransportFailure,
    WriteOperation as WriteOperation,
)
