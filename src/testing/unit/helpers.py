import json
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from indexsink.comm.connection import BYTES_PER_MB
from indexsink.enum import IndexType
from indexsink.handlers.config import IndexConfig, RetryConfig, SinkConfig
from indexsink.models.operation import REQUEST_OVERHEAD_BYTES

TEST_INDEX_ALIAS = "test-span-index"


def make_record(span_id: Optional[str], size_bytes: int) -> str:
    """Builds a JSON document whose estimated operation size is exactly `size_bytes`."""
    doc: Dict[str, Any] = {"pad": ""}
    if span_id is not None:
        doc["spanId"] = span_id
    base = len(json.dumps(doc))
    pad = size_bytes - REQUEST_OVERHEAD_BYTES - base
    assert pad >= 0, f"size {size_bytes} too small for a record"
    doc["pad"] = "x" * pad
    return json.dumps(doc)


def parse_bulk_body(body: str) -> List[Tuple[Dict[str, Any], Dict[str, Any]]]:
    """Splits an NDJSON bulk body into (action, source) pairs."""
    lines = body.splitlines()
    assert len(lines) % 2 == 0
    return [
        (json.loads(lines[i]), json.loads(lines[i + 1])) for i in range(0, len(lines), 2)
    ]


def bulk_response(body: str, failing: Iterable[int] = ()) -> Dict[str, Any]:
    """Builds a bulk response for `body`, failing the operations at the given positions."""
    failing = set(failing)
    items = []
    for pos, (action, _) in enumerate(parse_bulk_body(body)):
        doc_id = action["index"].get("_id", f"generated-{pos}")
        if pos in failing:
            items.append(
                {
                    "index": {
                        "_id": doc_id,
                        "status": 400,
                        "error": {
                            "type": "mapper_parsing_exception",
                            "reason": f"failed to parse document {pos}",
                        },
                    }
                }
            )
        else:
            items.append({"index": {"_id": doc_id, "status": 201, "result": "created"}})
    return {"took": 1, "errors": bool(failing), "items": items}


def make_sink_config(
    threshold_bytes: int = 0,
    dlq_file=None,
    index_type: IndexType = IndexType.Raw,
    template_file: Optional[str] = None,
    document_id_field: Optional[str] = "spanId",
) -> SinkConfig:
    return SinkConfig(
        index=IndexConfig(
            index_alias=TEST_INDEX_ALIAS,
            index_type=index_type,
            template_file=template_file,
            bulk_size=threshold_bytes / BYTES_PER_MB,
        ),
        retry=RetryConfig(dlq_file=dlq_file),
        document_id_field=document_id_field,
    )


class FakeTransport:
    """
    In-memory stand-in for `OpenSearchTransport`.

    Bulk requests succeed unless `bulk_handler` is set; the handler receives
    (body, index, call_number) and returns a response or raises.
    """

    def __init__(self, existing: Iterable[str] = ()):
        self.existing = set(existing)
        self.bulk_calls: List[Tuple[str, str]] = []
        self.created: List[Tuple[str, Optional[str]]] = []
        self.templates: List[Tuple[str, List[str], Dict[str, Any]]] = []
        self.exists_calls = 0
        self.closed = 0

        self.bulk_handler: Optional[Callable[[str, str, int], Any]] = None
        self.exists_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.template_error: Optional[Exception] = None
        self.close_error: Optional[Exception] = None

    def bulk(self, body: str, index: str) -> Dict[str, Any]:
        self.bulk_calls.append((body, index))
        if self.bulk_handler is not None:
            return self.bulk_handler(body, index, len(self.bulk_calls))
        return bulk_response(body)

    def index_exists(self, name: str) -> bool:
        self.exists_calls += 1
        if self.exists_error is not None:
            raise self.exists_error
        return name in self.existing

    def create_index(self, name: str, alias: Optional[str] = None) -> None:
        if self.create_error is not None:
            raise self.create_error
        self.created.append((name, alias))
        self.existing.add(name)
        if alias is not None:
            self.existing.add(alias)

    def put_template(self, name, patterns, source) -> None:
        if self.template_error is not None:
            raise self.template_error
        self.templates.append((name, list(patterns), dict(source)))

    def close(self) -> None:
        self.closed += 1
        if self.close_error is not None:
            raise self.close_error

    # --- inspection helpers ---
    def sent_batches(self) -> List[List[Dict[str, Any]]]:
        """Returns the sources of each bulk request, in sending order."""
        return [[src for _, src in parse_bulk_body(body)] for body, _ in self.bulk_calls]
