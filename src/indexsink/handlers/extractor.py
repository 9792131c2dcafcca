"""
Document Identifier Extraction.

The sink does not assume a payload shape: the id of an indexed document is
obtained through an `IdentifierExtractor`. The default reads a top-level
field (`spanId`, for trace spans).
"""

from typing import Any, Mapping, Optional, Protocol, runtime_checkable

DEFAULT_DOCUMENT_ID_FIELD = "spanId"


@runtime_checkable
class IdentifierExtractor(Protocol):
    """Capability of deriving a document id from a decoded document."""

    def extract_identifier(self, document: Mapping[str, Any]) -> Optional[str]:
        """
        Returns the id of the document, or None to let the store generate one.

        Raises:
            ValueError: If the document holds an id field that cannot be used.
        """
        ...


class FieldIdentifierExtractor:
    """Reads the document id from a top-level field."""

    def __init__(self, field: str = DEFAULT_DOCUMENT_ID_FIELD):
        if not field:
            raise ValueError("Identifier field name must not be empty")
        self.field = field

    def extract_identifier(self, document: Mapping[str, Any]) -> Optional[str]:
        value = document.get(self.field)
        if value is None:
            return None
        # bool is an int subclass, but never a meaningful id
        if isinstance(value, bool) or not isinstance(value, (str, int, float)):
            raise ValueError(
                f"Field '{self.field}' must be a string or a number, got {type(value).__name__}"
            )
        return str(value)

    def __repr__(self) -> str:
        return f"FieldIdentifierExtractor(field={self.field!r})"


class NoIdentifierExtractor:
    """Never yields an id: every document gets a store-generated id."""

    def extract_identifier(self, document: Mapping[str, Any]) -> Optional[str]:
        return None


def _make_extractor(field: Optional[str]) -> IdentifierExtractor:
    """Builds the extractor matching a `document_id_field` setting."""
    if field is None:
        return NoIdentifierExtractor()
    return FieldIdentifierExtractor(field)
