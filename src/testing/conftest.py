from typing import List

import pytest

from indexsink.handlers.sink import BatchingSink
from testing.unit.helpers import FakeTransport, make_sink_config


def pytest_addoption(parser):
    parser.addoption("--host", action="store", type=str, help="Set OpenSearch host.")
    parser.addoption("--port", action="store", type=int, help="Set OpenSearch port.")


@pytest.fixture(scope="session")
def host(request):
    return request.config.getoption("--host")


@pytest.fixture(scope="session")
def port(request):
    return request.config.getoption("--port")


@pytest.fixture(scope="function")
def transport():
    """A fresh in-memory transport FOR EACH function using this fixture"""
    return FakeTransport()


@pytest.fixture(scope="function")
def dlq_path(tmp_path):
    return tmp_path / "dlq" / "failed.ndjson"


@pytest.fixture(scope="function")
def make_sink(transport, dlq_path):
    """Factory of sinks bound to the `transport` fixture; every sink is stopped on teardown"""
    sinks: List[BatchingSink] = []

    def _make(threshold_bytes=0, use_dlq=True, extractor=None, **kwargs):
        config = make_sink_config(
            threshold_bytes=threshold_bytes,
            dlq_file=dlq_path if use_dlq else None,
            **kwargs,
        )
        sink = BatchingSink(config, transport, extractor=extractor)
        sinks.append(sink)
        return sink

    yield _make

    # free resources
    for sink in sinks:
        sink.stop()
