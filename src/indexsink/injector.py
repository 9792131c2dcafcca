"""
NDJSON Injection Tool.

This module provides a command-line interface (CLI) and a Python API for
injecting the documents of a newline-delimited JSON file into an index
through a `BatchingSink`.

It handles:
1.  **Ingestion:** Reading the file line by line and grouping lines into
    chunks, the way a pipeline hands records over to a sink.
2.  **Transmission:** Writing each chunk with the sink (bulk batching,
    failure routing to the dead-letter file).
3.  **Reporting:** Showing the progress with a `rich` progress bar.

Typical usage as a script:
    $ indexsink-inject ./spans.ndjson --hosts http://localhost:9200 --alias otel-v1-apm-span

Typical usage as a library:
    config = InjectionConfig(file_path=Path("spans.ndjson"), sink=SinkConfig(...))
    ok = NdjsonInjector(config).run()
"""

import argparse
from dataclasses import dataclass
from itertools import islice
import logging as log
from pathlib import Path
import sys
from typing import Iterator, List, Optional

from pydantic import ValidationError
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)

from .enum import IndexType
from .handlers.config import SinkConfig
from .handlers.sink import BatchingSink
from .comm.connection import DEFAULT_BULK_SIZE_MB

DEFAULT_CHUNK_SIZE = 1_000

# --- Configuration ---


@dataclass
class InjectionConfig:
    """
    Configuration object for the NDJSON injection process.

    Attributes:
        file_path (Path): Path to the input NDJSON file.
        sink (SinkConfig): The sink configuration (connection section required).
        chunk_size (int): Number of lines handed to each `BatchingSink.write()` call.
        log_level (str): Logging verbosity ("DEBUG", "INFO", "WARNING", "ERROR").
    """

    file_path: Path
    sink: SinkConfig
    chunk_size: int = DEFAULT_CHUNK_SIZE
    log_level: str = "INFO"


def _iter_chunks(file_path: Path, chunk_size: int) -> Iterator[List[str]]:
    """Yields the non-blank lines of the file in lists of `chunk_size`."""
    with open(file_path, "r", encoding="utf-8") as f:
        lines = (line for line in f if line.strip())
        while True:
            chunk = list(islice(lines, chunk_size))
            if not chunk:
                return
            yield chunk


def _count_lines(file_path: Path) -> int:
    with open(file_path, "r", encoding="utf-8") as f:
        return sum(1 for line in f if line.strip())


# --- Main Injector Class ---


class NdjsonInjector:
    """
    Controller class for the NDJSON injection workflow.
    """

    def __init__(self, config: InjectionConfig):
        """
        Args:
            config: The injection settings, sink configuration included.
        """
        if config.chunk_size < 1:
            raise ValueError("'chunk_size' must be at least 1")
        self.cfg = config
        self._setup_logging()

        self.chunks_sent = 0
        self.chunks_failed = 0

    def _setup_logging(self):
        """Routes library logs to stderr at the configured level."""
        log.basicConfig(
            level=getattr(log, self.cfg.log_level.upper()),
            format="%(asctime)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        self.logger = log.getLogger("NdjsonInjector")

    def run(self, sink: Optional[BatchingSink] = None) -> bool:
        """
        Streams the file through the sink, chunk by chunk.

        Args:
            sink (Optional[BatchingSink]): A not yet started sink to use instead of
                                           one built from the configuration.

        Returns:
            bool: True if every document was indexed.
        """
        file_path = self.cfg.file_path
        if not file_path.is_file():
            self.logger.error(f"Input file not found: {file_path}")
            return False

        total = _count_lines(file_path)
        self.logger.info(f"Injecting {total} documents from {file_path}...")

        try:
            # Context: Sink (store connection + dead-letter file)
            with sink or BatchingSink.from_config(self.cfg.sink) as active_sink:
                with Progress(
                    TextColumn("[bold cyan]{task.fields[name]}"),
                    BarColumn(),
                    MofNCompleteColumn(),
                    "[progress.percentage]{task.percentage:>3.1f}%",
                    "•",
                    TimeRemainingColumn(),
                    "•",
                    TimeElapsedColumn(),
                    expand=True,
                ) as progress:
                    task = progress.add_task(
                        "", total=total, name=self.cfg.sink.index.index_alias
                    )
                    for chunk in _iter_chunks(file_path, self.cfg.chunk_size):
                        if not active_sink.write(chunk):
                            self.chunks_failed += 1
                        self.chunks_sent += 1
                        progress.advance(task, len(chunk))

        except KeyboardInterrupt:
            self.logger.warning("Operation cancelled by user. Shutting down...")
            return False
        except Exception as e:
            self.logger.exception(f"Fatal error during injection: {e}")
            return False

        if self.chunks_failed:
            self.logger.warning(
                f"Injection completed with failures in {self.chunks_failed}/{self.chunks_sent} chunks."
            )
            return False

        self.logger.info("Injection completed successfully.")
        return True


# --- CLI Entry Point ---


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Inject NDJSON documents into an OpenSearch index."
    )

    # Required Arguments
    parser.add_argument("file_path", type=Path, help="Path to the .ndjson file")
    parser.add_argument("--alias", "-a", required=True, help="Target index alias")

    # Connection Arguments
    parser.add_argument(
        "--hosts",
        nargs="+",
        default=["http://localhost:9200"],
        help="Store endpoints (Default: http://localhost:9200)",
    )
    parser.add_argument("--username", help="Basic auth user")
    parser.add_argument("--password", help="Basic auth password")

    # Index Arguments
    parser.add_argument(
        "--index-type",
        default=IndexType.Raw.value,
        choices=[t.value for t in IndexType],
        help="Destination layout created when missing (Default: raw)",
    )
    parser.add_argument("--template", help="Path or URL of an index template")
    parser.add_argument(
        "--bulk-size",
        type=float,
        default=DEFAULT_BULK_SIZE_MB,
        help=f"Bulk request threshold in MB (Default: {DEFAULT_BULK_SIZE_MB})",
    )
    parser.add_argument(
        "--id-field",
        default="spanId",
        help="Document field used as id; pass an empty string for generated ids",
    )

    # Advanced Arguments
    parser.add_argument("--dlq-file", type=Path, help="NDJSON file for failed documents")
    parser.add_argument(
        "--chunk-size",
        type=int,
        default=DEFAULT_CHUNK_SIZE,
        help=f"Documents per sink write (Default: {DEFAULT_CHUNK_SIZE})",
    )
    parser.add_argument(
        "-l",
        "--log",
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Logging level.",
    )
    return parser


def _config_from_args(args: argparse.Namespace) -> InjectionConfig:
    """
    Builds the injection configuration from parsed CLI arguments.

    Raises:
        pydantic.ValidationError: If the sink settings are invalid.
        ValueError: If no store host is given.
    """
    sink_config = SinkConfig.from_settings(
        {
            "hosts": args.hosts,
            "username": args.username,
            "password": args.password,
            "index_alias": args.alias,
            "index_type": args.index_type,
            "template_file": args.template,
            "bulk_size": args.bulk_size,
            "dlq_file": args.dlq_file,
            "document_id_field": args.id_field or None,
        }
    )
    if sink_config.connection is None:
        # the CLI always builds its own transport
        raise ValueError("At least one store host is required (--hosts)")
    return InjectionConfig(
        file_path=args.file_path,
        sink=sink_config,
        chunk_size=args.chunk_size,
        log_level=args.log,
    )


def ndjson_injector(argv: Optional[List[str]] = None):
    """
    Console script entry point.
    Exits with 0 when every document was indexed, 1 on failures and 2 on
    invalid settings.
    """
    args = _build_parser().parse_args(argv)

    try:
        config = _config_from_args(args)
        injector = NdjsonInjector(config)
    except (ValidationError, ValueError) as e:
        log.error(f"Invalid injection settings:\n{e}")
        sys.exit(2)

    # --- Execution ---
    sys.exit(0 if injector.run() else 1)


if __name__ == "__main__":
    ndjson_injector()
