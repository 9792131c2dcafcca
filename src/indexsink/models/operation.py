"""
Write Operation Models.

This module defines the values flowing through one `BatchingSink.write()`
call: the incoming `Record`, the `WriteOperation` derived from it, the
`Batch` grouping operations into one bulk request, and the `BulkOutcome`
describing what the store did with a batch.

Every model is immutable. Outcome entries are matched to operations by
position, never by the document id echoed by the store, since not every
operation carries an id.
"""

from dataclasses import dataclass
import json
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

# Fixed cost charged per index action on top of its source length,
# the same estimate the store's client libraries use for bulk sizing.
REQUEST_OVERHEAD_BYTES = 50


@dataclass(frozen=True)
class Record:
    """
    A document handed to the sink by the pipeline.

    Attributes:
        data: The JSON document, as text, UTF-8 bytes or an already-decoded mapping.
        document_id: An id already known to the producer. When set, the
                     configured identifier extractor is bypassed.
    """

    data: Union[str, bytes, Mapping[str, Any]]
    document_id: Optional[str] = None


@dataclass(frozen=True)
class WriteOperation:
    """
    One index action of a bulk request.

    Attributes:
        index: Name of the index (or write alias) the document goes to.
        source: The single-line JSON source sent to the store.
        document: The decoded source.
        document_id: Optional id of the document. None lets the store generate one.
    """

    index: str
    source: str
    document: Dict[str, Any]
    document_id: Optional[str] = None

    @property
    def size_bytes(self) -> int:
        """Estimated contribution of this operation to the bulk request size."""
        return len(self.source.encode("utf-8")) + REQUEST_OVERHEAD_BYTES

    def action_line(self) -> Dict[str, Any]:
        """Returns the bulk action metadata preceding the source line."""
        if self.document_id is None:
            return {"index": {}}
        return {"index": {"_id": self.document_id}}

    def to_dict(self) -> Dict[str, Any]:
        """Returns the operation content as persisted with failures."""
        return {
            "index": self.index,
            "id": self.document_id,
            "source": self.document,
        }


@dataclass(frozen=True)
class Batch:
    """
    An ordered group of operations sent in a single bulk request.

    Attributes:
        operations: The operations, in the order the records were received.
        size_bytes: Sum of the estimated sizes of the operations.
    """

    operations: Tuple[WriteOperation, ...]
    size_bytes: int

    def __len__(self) -> int:
        return len(self.operations)


@dataclass(frozen=True)
class FailureRecord:
    """
    An operation the store did not persist, paired with the reason.
    """

    operation: WriteOperation
    cause: str

    def to_line(self) -> str:
        """Serializes the failure as one NDJSON line (no trailing newline)."""
        return json.dumps(
            {"Document": self.operation.to_dict(), "failure": self.cause},
            ensure_ascii=False,
        )


@dataclass(frozen=True)
class ItemResult:
    """
    Outcome of a single operation inside a transmitted batch.

    Attributes:
        ok: True if the store persisted the document.
        error: Failure description when `ok` is False.
        status: HTTP-like status code reported for the item, if any.
    """

    ok: bool
    error: Optional[str] = None
    status: Optional[int] = None


@dataclass(frozen=True)
class Transmitted:
    """
    The bulk request reached the store; `items` is aligned 1:1 and in
    order with the operations of the batch.
    """

    items: Tuple[ItemResult, ...]

    @property
    def has_failures(self) -> bool:
        return any(not item.ok for item in self.items)

    def failure_records(self, batch: Batch) -> List[FailureRecord]:
        """Pairs every failed item with the operation at the same position."""
        if len(self.items) != len(batch):
            raise ValueError(
                f"Outcome has {len(self.items)} items for a batch of {len(batch)} operations"
            )
        return [
            FailureRecord(operation=op, cause=item.error or "unknown failure")
            for op, item in zip(batch.operations, self.items)
            if not item.ok
        ]


@dataclass(frozen=True)
class TransportFailure:
    """
    The bulk request as a whole failed; every operation of the batch is
    considered failed with `cause`.
    """

    cause: str

    @property
    def has_failures(self) -> bool:
        return True

    def failure_records(self, batch: Batch) -> List[FailureRecord]:
        return [FailureRecord(operation=op, cause=self.cause) for op in batch.operations]


BulkOutcome = Union[Transmitted, TransportFailure]
