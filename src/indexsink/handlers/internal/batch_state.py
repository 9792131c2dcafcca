"""
Internal Batch State Module.

This module handles the low-level buffering of one `BatchingSink.write()`
call: it turns each incoming record into a `WriteOperation` and tracks the
estimated size of the pending bulk request, so that the caller knows when
the request is large enough to be sent.
"""

import json
from typing import Any, List, Mapping, Union

from ...errors import DocumentParseError
from ...models.operation import Batch, Record, WriteOperation
from ..extractor import IdentifierExtractor
from ..helpers import _make_exception

RecordInput = Union[Record, str, bytes, bytearray, Mapping[str, Any]]


def _decode_record(data: Union[str, bytes, bytearray, Mapping[str, Any]]):
    """
    Returns the (single-line source, decoded document) pair of a payload.

    Raises:
        DocumentParseError: If the payload is not a JSON object.
    """
    if isinstance(data, Mapping):
        document = dict(data)
        try:
            return json.dumps(document, ensure_ascii=False), document
        except (TypeError, ValueError) as e:
            raise _make_exception(
                "Record is not JSON serializable", e, DocumentParseError
            ) from e

    if isinstance(data, (bytes, bytearray)):
        try:
            data = bytes(data).decode("utf-8")
        except UnicodeDecodeError as e:
            raise _make_exception(
                "Record is not valid UTF-8", e, DocumentParseError
            ) from e

    if not isinstance(data, str):
        raise DocumentParseError(
            f"Unsupported record payload type '{type(data).__name__}'"
        )

    try:
        document = json.loads(data)
    except json.JSONDecodeError as e:
        raise _make_exception("Record is not valid JSON", e, DocumentParseError) from e

    if not isinstance(document, dict):
        raise DocumentParseError(
            f"Record must be a JSON object, got {type(document).__name__}"
        )

    # The bulk body is newline delimited: multi-line sources are re-encoded
    source = data.strip()
    if "\n" in source or "\r" in source:
        source = json.dumps(document, ensure_ascii=False)
    return source, document


class _BatchAccumulator:
    """
    Accumulates write operations until a size threshold is reached.

    **Lifecycle:**
    1.  `accumulate()` converts a record and appends it to the current batch.
    2.  `current_batch_ready()` turns True once the estimated size meets or
        exceeds `max_batch_size_bytes`; the batch is never appended to
        again before it is drained.
    3.  `drain_current_batch()` hands the batch over and resets the state.

    The accumulator is owned by a single `write()` call and is not thread-safe.
    """

    def __init__(
        self,
        index_name: str,
        max_batch_size_bytes: int,
        extractor: IdentifierExtractor,
    ):
        """
        Args:
            index_name (str): Target index (or write alias) of every operation.
            max_batch_size_bytes (int): Flush threshold. Zero or negative disables
                                        size-based flushing.
            extractor (IdentifierExtractor): Source of document ids.
        """
        self.index_name = index_name
        self.max_batch_size_bytes = max_batch_size_bytes
        self._extractor = extractor

        # --- Buffering State ---
        self._current_operations: List[WriteOperation] = []
        self._current_batch_size_bytes: int = 0

    def __len__(self) -> int:
        return len(self._current_operations)

    @property
    def current_batch_size_bytes(self) -> int:
        return self._current_batch_size_bytes

    def _to_operation(self, record: RecordInput) -> WriteOperation:
        """
        Converts a record into a write operation.

        Raises:
            DocumentParseError: If the payload cannot be decoded or the id cannot
                                be extracted.
        """
        preset_id = None
        if isinstance(record, Record):
            preset_id = record.document_id
            record = record.data

        source, document = _decode_record(record)

        if preset_id is not None:
            document_id = preset_id
        else:
            try:
                document_id = self._extractor.extract_identifier(document)
            except Exception as e:
                raise _make_exception(
                    "Failed to extract the document id", e, DocumentParseError
                ) from e

        return WriteOperation(
            index=self.index_name,
            source=source,
            document=document,
            document_id=document_id,
        )

    def accumulate(self, record: RecordInput) -> WriteOperation:
        """
        Appends a record to the current batch.

        Args:
            record: A `Record`, a JSON string/bytes payload or a decoded mapping.

        Returns:
            WriteOperation: The operation created for the record.

        Raises:
            RuntimeError: If the current batch is ready and was not drained.
            DocumentParseError: If the record cannot be converted.
        """
        if self.current_batch_ready():
            raise RuntimeError(
                "Current batch reached its size threshold: drain it before accumulating."
            )

        operation = self._to_operation(record)
        self._current_operations.append(operation)
        self._current_batch_size_bytes += operation.size_bytes
        return operation

    def current_batch_ready(self) -> bool:
        """True once the estimated batch size reached the threshold."""
        if self.max_batch_size_bytes <= 0 or not self._current_operations:
            return False
        return self._current_batch_size_bytes >= self.max_batch_size_bytes

    def drain_current_batch(self) -> Batch:
        """
        Hands over the current batch and resets the buffer.
        """
        batch = Batch(
            operations=tuple(self._current_operations),
            size_bytes=self._current_batch_size_bytes,
        )

        # Reset immediately
        self._current_operations = []
        self._current_batch_size_bytes = 0

        return batch
