"""
Destination Bootstrap Module.

This module prepares the document store before the sink accepts writes:
it applies the configured index template, then makes sure the write target
exists, creating it if needed. Every step is idempotent, so a restarted sink
can bootstrap again against an already prepared store.
"""

import json
import logging as log
from pathlib import Path
from typing import Any, Dict
from urllib.parse import urlparse
from urllib.request import url2pathname

import requests

from ..comm.transport import OpenSearchTransport
from ..enum import IndexType
from ..errors import BootstrapError, TemplateSourceError
from ..helpers import (
    pack_initial_index_name,
    pack_template_name,
    pack_template_pattern,
)
from .config import IndexConfig
from .helpers import _make_exception

# Timeout (seconds) for fetching a remote index template
_TEMPLATE_FETCH_TIMEOUT = 10


def _read_template_source(locator: str) -> Dict[str, Any]:
    """
    Loads an index template document.

    Args:
        locator (str): A local path, a `file://` URL or an `http(s)://` URL.

    Returns:
        Dict[str, Any]: The decoded template.

    Raises:
        TemplateSourceError: If the template cannot be read or is not a JSON object.
    """
    parsed = urlparse(locator)
    try:
        if parsed.scheme in ("http", "https"):
            resp = requests.get(locator, timeout=_TEMPLATE_FETCH_TIMEOUT)
            resp.raise_for_status()
            text = resp.text
        elif parsed.scheme == "file":
            text = Path(url2pathname(parsed.path)).read_text(encoding="utf-8")
        else:
            text = Path(locator).read_text(encoding="utf-8")
    except (requests.RequestException, OSError) as e:
        raise _make_exception(
            f"Unable to read index template from '{locator}'", e, TemplateSourceError
        ) from e

    try:
        template = json.loads(text)
    except json.JSONDecodeError as e:
        raise _make_exception(
            f"Index template at '{locator}' is not valid JSON", e, TemplateSourceError
        ) from e

    if not isinstance(template, dict):
        raise TemplateSourceError(
            f"Index template at '{locator}' must be a JSON object, got {type(template).__name__}"
        )
    return template


class DestinationBootstrapper:
    """
    Ensures the index (or write alias) of the sink exists.

    **Steps performed by `ensure_destination()`:**
    1.  If `template_file` is configured, the template is stored as
        `<alias>-index-template` for the `<alias>-*` pattern.
    2.  If nothing named `<alias>` exists yet:
        -   `IndexType.Raw`: `<alias>-000001` is created with `<alias>` bound
            to it as write alias.
        -   `IndexType.Custom`: `<alias>` is created as a plain index.
    """

    def __init__(self, transport: OpenSearchTransport, config: IndexConfig):
        self._transport = transport
        self._config = config

    def ensure_destination(self) -> None:
        """
        Prepares the destination.

        Raises:
            BootstrapError: If any step fails. The sink must not accept writes.
        """
        if self._config.template_file is not None:
            self._apply_template()
        self._check_and_create_index()

    def _apply_template(self):
        index_alias = self._config.index_alias
        assert self._config.template_file is not None

        template = _read_template_source(self._config.template_file)
        template_name = pack_template_name(index_alias)

        try:
            self._transport.put_template(
                name=template_name,
                patterns=[pack_template_pattern(index_alias)],
                source=template,
            )
        except Exception as e:
            raise _make_exception(
                f"Failed to apply index template '{template_name}'", e, BootstrapError
            ) from e

        log.info(f"Index template '{template_name}' applied.")

    def _check_and_create_index(self):
        index_alias = self._config.index_alias

        try:
            exists = self._transport.index_exists(index_alias)
        except Exception as e:
            raise _make_exception(
                f"Failed to check existence of '{index_alias}'", e, BootstrapError
            ) from e

        if exists:
            log.debug(f"Destination '{index_alias}' already exists.")
            return

        if self._config.index_type == IndexType.Raw:
            index_name = pack_initial_index_name(index_alias)
            alias = index_alias
        else:
            index_name = index_alias
            alias = None

        try:
            self._transport.create_index(name=index_name, alias=alias)
        except Exception as e:
            raise _make_exception(
                f"Failed to create index '{index_name}'", e, BootstrapError
            ) from e

        if alias is not None:
            log.info(f"Index '{index_name}' created with write alias '{alias}'.")
        else:
            log.info(f"Index '{index_name}' created.")
