"""
Batching Sink Module.

This module acts as the central controller of the index sink. It owns the
store connection and the dead-letter file for the whole life of the sink,
prepares the destination on startup, and turns each collection of records
handed over by the pipeline into size-bounded bulk requests.
"""

import logging as log
from typing import Any, Iterable, Optional, Type

from ..comm.transport import OpenSearchTransport
from ..models.operation import Batch
from .bootstrapper import DestinationBootstrapper
from .bulk_writer import BulkWriter
from .config import SinkConfig
from .enum import SinkStatus
from .extractor import IdentifierExtractor, _make_extractor
from .failure_sink import FailureSink
from .internal.batch_state import RecordInput, _BatchAccumulator


class BatchingSink:
    """
    Writes pipeline records to an index in bulk.

    **Key Responsibilities:**
    1.  **Lifecycle Management:** `start()` opens the dead-letter file and
        bootstraps the destination; `stop()` releases the client and the file.
    2.  **Batching:** `write()` groups records into bulk requests no larger than
        the configured threshold (the request crossing it is sent immediately).
    3.  **Failure Routing:** every operation the store refuses ends up in the
        `FailureSink`; the caller only sees the aggregate result.

    Usage:
        ```python
        with BatchingSink.from_config(config) as sink:
            ok = sink.write(records)
        ```
    """

    # -------------------- Class attributes --------------------
    _config: SinkConfig
    _transport: OpenSearchTransport
    """The store connection, owned by the sink until `stop()`."""

    _extractor: IdentifierExtractor
    """Source of the document ids of the indexed records."""

    _status: SinkStatus = SinkStatus.Null

    # -------------------- Constructor --------------------
    def __init__(
        self,
        config: SinkConfig,
        transport: OpenSearchTransport,
        extractor: Optional[IdentifierExtractor] = None,
    ):
        """
        Args:
            config (SinkConfig): Validated sink configuration.
            transport (OpenSearchTransport): An already-authenticated store connection.
            extractor (Optional[IdentifierExtractor]): Overrides the extractor built
                from `config.document_id_field`.
        """
        self._config = config
        self._transport = transport
        self._extractor = extractor or _make_extractor(config.document_id_field)

        index_alias = config.index.index_alias
        self._bootstrapper = DestinationBootstrapper(transport, config.index)
        self._bulk_writer = BulkWriter(transport, index_alias)
        self._failure_sink = FailureSink(config.retry.dlq_file)

    @classmethod
    def from_config(
        cls,
        config: SinkConfig,
        transport: Optional[OpenSearchTransport] = None,
        extractor: Optional[IdentifierExtractor] = None,
    ) -> "BatchingSink":
        """
        Factory method building the transport from `config.connection` when
        none is provided.

        Raises:
            ValueError: If no transport is given and the config has no connection section.
        """
        if transport is None:
            if config.connection is None:
                raise ValueError(
                    "A transport or a 'connection' configuration section is required."
                )
            transport = OpenSearchTransport.connect(config.connection)
        return cls(config=config, transport=transport, extractor=extractor)

    # --- Context Manager ---
    def __enter__(self) -> "BatchingSink":
        try:
            self.start()
        except Exception:
            # __exit__ is not called when __enter__ raises
            self.stop()
            raise
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[Any],
    ) -> bool:
        """
        Releases the sink resources.

        Returns:
            bool: False, ensuring exceptions are propagated.
        """
        try:
            self.stop()
        except Exception as e:
            log.exception(
                f"Error releasing resources of sink '{self._config.index.index_alias}': {e}"
            )
        return False

    def __del__(self):
        """Destructor check to warn if the sink was left started."""
        status = getattr(self, "_status", SinkStatus.Null)
        if status == SinkStatus.Started:
            log.warning(
                "BatchingSink destroyed without calling stop(). "
                "Resources may not have been released properly."
            )

    def _check_started(self):
        """Ensures writes only happen between `start()` and `stop()`."""
        if self._status != SinkStatus.Started:
            raise RuntimeError(
                f"BatchingSink must be started before writing (status: {self._status.value})."
            )

    # --- Public API ---
    @property
    def config(self) -> SinkConfig:
        return self._config

    @property
    def failure_sink(self) -> FailureSink:
        return self._failure_sink

    def sink_status(self) -> SinkStatus:
        """Returns the current lifecycle status of the sink."""
        return self._status

    def start(self) -> None:
        """
        Acquires the dead-letter file and prepares the destination.

        Calling `start()` on a started sink is a no-op.

        Raises:
            BootstrapError: If the destination cannot be prepared.
            OSError: If the dead-letter file cannot be opened.
            RuntimeError: If the sink was already stopped.
        """
        if self._status == SinkStatus.Started:
            return
        if self._status == SinkStatus.Stopped:
            raise RuntimeError("A stopped BatchingSink cannot be restarted.")

        try:
            self._failure_sink.open()
            self._bootstrapper.ensure_destination()
        except Exception:
            self._failure_sink.close()
            self._status = SinkStatus.Error
            raise

        self._status = SinkStatus.Started
        log.info(f"BatchingSink for '{self._config.index.index_alias}' started.")

    def write(self, records: Iterable[RecordInput]) -> bool:
        """
        Indexes a collection of records.

        Records are sent in input order. A bulk request is sent as soon as the
        accumulated size reaches the threshold, and the remainder is sent once
        the input is exhausted. A failed item never stops the remaining records
        from being sent.

        Args:
            records: `Record` objects, JSON strings/bytes or decoded mappings.

        Returns:
            bool: True only if every record was indexed. An empty input returns
                  True without contacting the store.

        Raises:
            DocumentParseError: If a record is not a JSON object. Batches sent before
                                the bad record are kept.
            RuntimeError: If the sink is not started.
        """
        self._check_started()

        # One accumulator per call: concurrent writes never share a buffer
        accumulator = _BatchAccumulator(
            index_name=self._config.index.index_alias,
            max_batch_size_bytes=self._config.index.bulk_size_bytes,
            extractor=self._extractor,
        )

        success = True
        for record in records:
            accumulator.accumulate(record)
            if accumulator.current_batch_ready():
                # send before combining: every batch is attempted
                success = self._flush_batch(accumulator.drain_current_batch()) and success

        # Flush the remaining operations
        if len(accumulator) > 0:
            success = self._flush_batch(accumulator.drain_current_batch()) and success

        return success

    def _flush_batch(self, batch: Batch) -> bool:
        """
        Sends one batch and routes its failed operations to the failure sink.

        Returns:
            bool: True if every operation of the batch was indexed.
        """
        outcome = self._bulk_writer.send(batch)
        failures = outcome.failure_records(batch)
        for failure in failures:
            self._failure_sink.record(failure)
        return not failures

    def stop(self) -> None:
        """
        Releases the store connection and the dead-letter file.

        Both are released even if the other fails to close; close errors are
        logged, not raised. Calling `stop()` more than once is a no-op.
        """
        if self._status == SinkStatus.Stopped:
            return

        try:
            self._transport.close()
        except Exception as e:
            log.error(f"Error closing the store connection: {e}")
        finally:
            self._failure_sink.close()

        self._status = SinkStatus.Stopped
        log.info(f"BatchingSink for '{self._config.index.index_alias}' stopped.")
