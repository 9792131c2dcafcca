import json
import logging as log
import math

import pytest

from indexsink.errors import BootstrapError, DocumentParseError
from indexsink.handlers.enum import SinkStatus
from indexsink.handlers.extractor import NoIdentifierExtractor
from indexsink.handlers.sink import BatchingSink
from indexsink.models.operation import Record

from .helpers import (
    TEST_INDEX_ALIAS,
    FakeTransport,
    bulk_response,
    make_record,
    make_sink_config,
)


def _dlq_lines(dlq_path):
    if not dlq_path.exists():
        return []
    return [json.loads(line) for line in dlq_path.read_text(encoding="utf-8").splitlines()]


def _ids(batches):
    return [[doc.get("spanId") for doc in batch] for batch in batches]


# --- Lifecycle ---


def test_write_requires_started_sink(make_sink):
    sink = make_sink()
    assert sink.sink_status() == SinkStatus.Null
    with pytest.raises(RuntimeError, match="must be started before writing"):
        sink.write([make_record("a1", 100)])


def test_start_bootstraps_destination(make_sink, transport, dlq_path):
    sink = make_sink()
    sink.start()

    assert sink.sink_status() == SinkStatus.Started
    assert transport.created == [(f"{TEST_INDEX_ALIAS}-000001", TEST_INDEX_ALIAS)]
    assert sink.failure_sink.is_open()
    assert dlq_path.exists()

    # starting twice is a no-op
    sink.start()
    assert len(transport.created) == 1


def test_restart_against_prepared_store(transport, dlq_path):
    config = make_sink_config(dlq_file=dlq_path)
    with BatchingSink(config, transport):
        pass
    with BatchingSink(config, transport):
        pass
    assert len(transport.created) == 1


def test_failed_bootstrap_releases_dead_letter_file(make_sink, transport):
    transport.create_error = RuntimeError("cluster red")
    sink = make_sink()

    with pytest.raises(BootstrapError):
        sink.start()

    assert sink.sink_status() == SinkStatus.Error
    assert not sink.failure_sink.is_open()
    with pytest.raises(RuntimeError):
        sink.write([make_record("a1", 100)])


def test_stop_releases_resources(make_sink, transport):
    sink = make_sink()
    sink.start()
    sink.stop()

    assert sink.sink_status() == SinkStatus.Stopped
    assert transport.closed == 1
    assert not sink.failure_sink.is_open()

    # stopping twice is a no-op, restarting is refused
    sink.stop()
    assert transport.closed == 1
    with pytest.raises(RuntimeError, match="cannot be restarted"):
        sink.start()


def test_stop_closes_dead_letter_file_when_transport_close_fails(make_sink, transport, caplog):
    transport.close_error = ConnectionError("already gone")
    sink = make_sink()
    sink.start()

    with caplog.at_level(log.ERROR):
        sink.stop()

    assert "Error closing the store connection" in caplog.text
    assert not sink.failure_sink.is_open()
    assert sink.sink_status() == SinkStatus.Stopped


def test_context_manager(transport, dlq_path):
    config = make_sink_config(dlq_file=dlq_path)
    with BatchingSink(config, transport) as sink:
        assert sink.sink_status() == SinkStatus.Started
        assert sink.write([make_record("a1", 100)])
    assert sink.sink_status() == SinkStatus.Stopped
    assert transport.closed == 1


def test_context_manager_releases_resources_on_failed_start(transport, dlq_path):
    transport.create_error = RuntimeError("cluster red")
    config = make_sink_config(dlq_file=dlq_path)

    with pytest.raises(BootstrapError):
        with BatchingSink(config, transport) as _:
            pass

    # __exit__ never runs here: the client must still be released
    assert transport.closed == 1


def test_context_manager_propagates_errors(transport, dlq_path):
    config = make_sink_config(dlq_file=dlq_path)
    with pytest.raises(DocumentParseError):
        with BatchingSink(config, transport) as sink:
            sink.write(["{broken"])
    assert sink.sink_status() == SinkStatus.Stopped


def test_from_config_requires_transport_or_connection():
    with pytest.raises(ValueError, match="'connection' configuration section is required"):
        BatchingSink.from_config(make_sink_config())

    transport = FakeTransport()
    sink = BatchingSink.from_config(make_sink_config(), transport=transport)
    assert sink.config.index.index_alias == TEST_INDEX_ALIAS


# --- Writing ---


def test_empty_write_does_not_contact_store(make_sink, transport):
    sink = make_sink(threshold_bytes=1000)
    sink.start()

    assert sink.write([]) is True
    assert transport.bulk_calls == []


def test_write_all_succeeded(make_sink, transport, dlq_path):
    sink = make_sink(threshold_bytes=1000)
    sink.start()

    assert sink.write([make_record(f"a{i}", 100) for i in range(5)]) is True
    assert len(transport.bulk_calls) == 1
    assert all(index == TEST_INDEX_ALIAS for _, index in transport.bulk_calls)
    assert _dlq_lines(dlq_path) == []


def test_batches_split_at_threshold(make_sink, transport):
    """Three 400 byte records against a 1000 byte threshold: all in one request."""
    sink = make_sink(threshold_bytes=1000)
    sink.start()

    assert sink.write([make_record(f"a{i}", 400) for i in range(3)])
    assert _ids(transport.sent_batches()) == [["a0", "a1", "a2"]]


def test_batches_preserve_order_and_bound_count(make_sink, transport):
    sink = make_sink(threshold_bytes=1000)
    sink.start()

    records = [make_record(f"a{i}", 400) for i in range(10)]
    assert sink.write(records)

    batches = transport.sent_batches()
    # 3 + 3 + 3 + 1
    assert [len(b) for b in batches] == [3, 3, 3, 1]
    assert [doc for batch in _ids(batches) for doc in batch] == [f"a{i}" for i in range(10)]
    assert len(batches) <= math.ceil(10 * 400 / 1000)


def test_oversized_record_sent_alone(make_sink, transport):
    sink = make_sink(threshold_bytes=1000)
    sink.start()

    assert sink.write([make_record("big", 3000), make_record("small", 100)])
    assert _ids(transport.sent_batches()) == [["big"], ["small"]]


def test_disabled_threshold_single_request(make_sink, transport):
    sink = make_sink(threshold_bytes=0)
    sink.start()

    assert sink.write([make_record(f"a{i}", 1000) for i in range(20)])
    assert len(transport.bulk_calls) == 1


def test_each_write_call_is_independent(make_sink, transport):
    sink = make_sink(threshold_bytes=1000)
    sink.start()

    sink.write([make_record("a1", 400)])
    sink.write([make_record("a2", 400)])
    # records are never buffered across calls
    assert _ids(transport.sent_batches()) == [["a1"], ["a2"]]


def test_accepts_any_iterable_and_payload_type(make_sink, transport):
    sink = make_sink(threshold_bytes=0)
    sink.start()

    def _records():
        yield '{"spanId": "s1"}'
        yield b'{"spanId": "s2"}'
        yield {"spanId": "s3"}
        yield Record(data={"other": 1}, document_id="s4")

    assert sink.write(_records())
    assert len(transport.bulk_calls) == 1
    body, _ = transport.bulk_calls[0]
    action_lines = [json.loads(line) for line in body.splitlines()[::2]]
    assert [a["index"]["_id"] for a in action_lines] == ["s1", "s2", "s3", "s4"]


def test_store_generated_ids(make_sink, transport):
    sink = make_sink(document_id_field=None)
    sink.start()

    assert sink.write([make_record("a1", 100)])
    body, _ = transport.bulk_calls[0]
    assert json.loads(body.splitlines()[0]) == {"index": {}}


def test_custom_extractor(make_sink, transport):
    sink = make_sink(extractor=NoIdentifierExtractor())
    sink.start()

    sink.write([make_record("a1", 100)])
    body, _ = transport.bulk_calls[0]
    assert json.loads(body.splitlines()[0]) == {"index": {}}


# --- Failures ---


def test_item_failures_routed_to_dead_letter_file(make_sink, transport, dlq_path):
    sink = make_sink(threshold_bytes=1000)
    sink.start()
    transport.bulk_handler = lambda body, index, n: bulk_response(body, failing=[0, 2])

    assert sink.write([make_record(f"a{i}", 100) for i in range(4)]) is False

    failed = _dlq_lines(dlq_path)
    # exactly one line per failed operation
    assert [f["Document"]["id"] for f in failed] == ["a0", "a2"]
    assert failed[0]["Document"]["index"] == TEST_INDEX_ALIAS
    assert failed[0]["Document"]["source"]["spanId"] == "a0"
    assert failed[0]["failure"] == "mapper_parsing_exception: failed to parse document 0"
    assert sink.failure_sink.records_written == 2


def test_transport_failure_on_second_batch(make_sink, transport, dlq_path):
    sink = make_sink(threshold_bytes=1000)
    sink.start()

    def _fail_second(body, index, n):
        if n == 2:
            raise ConnectionError("connection reset")
        return bulk_response(body)

    transport.bulk_handler = _fail_second
    records = [make_record(f"a{i}", 400) for i in range(7)]

    assert sink.write(records) is False

    # every batch is attempted: the third request is still sent
    assert _ids(transport.sent_batches()) == [
        ["a0", "a1", "a2"],
        ["a3", "a4", "a5"],
        ["a6"],
    ]
    failed = _dlq_lines(dlq_path)
    assert [f["Document"]["id"] for f in failed] == ["a3", "a4", "a5"]
    assert all(f["failure"] == "connection reset" for f in failed)


def test_transport_failure_on_last_of_two_batches(make_sink, transport, dlq_path):
    sink = make_sink(threshold_bytes=1000)
    sink.start()

    def _fail_second(body, index, n):
        if n == 2:
            raise TimeoutError("read timed out")
        return bulk_response(body)

    transport.bulk_handler = _fail_second

    assert sink.write([make_record(f"a{i}", 400) for i in range(5)]) is False

    # the first batch is neither retried nor rolled back
    assert _ids(transport.sent_batches()) == [["a0", "a1", "a2"], ["a3", "a4"]]
    failed = _dlq_lines(dlq_path)
    assert [f["Document"]["id"] for f in failed] == ["a3", "a4"]
    assert {f["failure"] for f in failed} == {"read timed out"}


def test_failed_first_batch_does_not_skip_later_batches(make_sink, transport, dlq_path):
    sink = make_sink(threshold_bytes=1000)
    sink.start()
    transport.bulk_handler = lambda body, index, n: bulk_response(
        body, failing=[0] if n == 1 else []
    )

    assert sink.write([make_record(f"a{i}", 400) for i in range(6)]) is False
    assert len(transport.bulk_calls) == 2
    assert [f["Document"]["id"] for f in _dlq_lines(dlq_path)] == ["a0"]


def test_failures_logged_without_dead_letter_file(make_sink, transport, caplog):
    sink = make_sink(use_dlq=False)
    sink.start()
    transport.bulk_handler = lambda body, index, n: bulk_response(body, failing=[0])

    with caplog.at_level(log.WARNING):
        assert sink.write([make_record("a1", 100)]) is False

    assert "has failure: mapper_parsing_exception" in caplog.text


def test_parse_error_keeps_sent_batches(make_sink, transport):
    sink = make_sink(threshold_bytes=1000)
    sink.start()

    records = [make_record(f"a{i}", 400) for i in range(3)] + ["{broken", make_record("b", 400)]
    with pytest.raises(DocumentParseError):
        sink.write(records)

    # the full batch before the bad record was already sent
    assert _ids(transport.sent_batches()) == [["a0", "a1", "a2"]]
