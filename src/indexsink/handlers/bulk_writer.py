"""
Bulk Writing Module.

This module sends one accumulated `Batch` to the document store in a single
bulk request and decodes the response into a `BulkOutcome`.

No retry happens at this layer: a failed request is reported once, and the
caller decides what to do with the failed operations.
"""

import json
import logging as log
from typing import Any, List, Mapping

from ..comm.transport import OpenSearchTransport
from ..models.operation import (
    Batch,
    BulkOutcome,
    ItemResult,
    Transmitted,
    TransportFailure,
)


def _serialize_batch(batch: Batch) -> str:
    """Encodes a batch as an NDJSON bulk body (action line, then source line)."""
    lines: List[str] = []
    for op in batch.operations:
        lines.append(json.dumps(op.action_line()))
        lines.append(op.source)
    return "\n".join(lines) + "\n"


def _describe_error(error: Any) -> str:
    """Flattens an item error (usually {"type": ..., "reason": ...}) to a message."""
    if isinstance(error, Mapping):
        err_type = error.get("type")
        reason = error.get("reason")
        if err_type and reason:
            return f"{err_type}: {reason}"
        if reason or err_type:
            return str(reason or err_type)
        return json.dumps(error)
    return str(error)


def _parse_item(raw_item: Any) -> ItemResult:
    """
    Decodes one entry of the response `items` array.

    Each entry maps the action name (e.g. "index") to its result.
    """
    if not isinstance(raw_item, Mapping) or len(raw_item) != 1:
        raise ValueError(f"Malformed bulk response item: {raw_item!r}")

    result = next(iter(raw_item.values()))
    if not isinstance(result, Mapping):
        raise ValueError(f"Malformed bulk response item: {raw_item!r}")

    status = result.get("status")
    error = result.get("error")
    if error is not None:
        return ItemResult(ok=False, error=_describe_error(error), status=status)
    if isinstance(status, int) and status >= 300:
        return ItemResult(ok=False, error=f"status {status}", status=status)
    return ItemResult(ok=True, status=status)


def _parse_response(response: Any, expected_items: int) -> Transmitted:
    """
    Decodes a bulk response into per-item results aligned with the batch.

    Raises:
        ValueError: If the response cannot be aligned with the batch.
    """
    if not isinstance(response, Mapping):
        raise ValueError(f"Unexpected bulk response type '{type(response).__name__}'")

    raw_items = response.get("items")
    if not isinstance(raw_items, list):
        raise ValueError("Bulk response has no 'items' array")
    if len(raw_items) != expected_items:
        raise ValueError(
            f"Bulk response has {len(raw_items)} items for {expected_items} operations"
        )

    return Transmitted(items=tuple(_parse_item(item) for item in raw_items))


class BulkWriter:
    """
    Sends batches to a single index (or write alias).
    """

    def __init__(self, transport: OpenSearchTransport, index_name: str):
        """
        Args:
            transport (OpenSearchTransport): The store connection.
            index_name (str): Default target of the bulk requests.
        """
        self._transport = transport
        self._index_name = index_name

    def send(self, batch: Batch) -> BulkOutcome:
        """
        Performs exactly one bulk request for the batch.

        Args:
            batch (Batch): A non-empty batch.

        Returns:
            BulkOutcome: `Transmitted` with one result per operation, in batch order,
                         or `TransportFailure` if the request itself failed or its
                         response could not be decoded.

        Raises:
            ValueError: If the batch is empty.
        """
        if not batch:
            raise ValueError("Cannot send an empty batch")

        body = _serialize_batch(batch)
        log.debug(
            f"Sending bulk request to '{self._index_name}': "
            f"{len(batch)} operations, ~{batch.size_bytes} bytes"
        )

        try:
            response = self._transport.bulk(body=body, index=self._index_name)
        except Exception as e:
            log.error(
                f"Bulk request of {len(batch)} operations to '{self._index_name}' failed: {e}"
            )
            return TransportFailure(cause=str(e) or type(e).__name__)

        try:
            outcome = _parse_response(response, len(batch))
        except ValueError as e:
            log.error(f"Invalid bulk response from '{self._index_name}': {e}")
            return TransportFailure(cause=str(e))

        if outcome.has_failures:
            failed = sum(1 for item in outcome.items if not item.ok)
            log.warning(
                f"Bulk request to '{self._index_name}': {failed}/{len(batch)} operations failed"
            )
        return outcome
