from enum import StrEnum


class IndexType(StrEnum):
    """
    Defines how the destination of the sink is laid out in the document store.

    The index type decides what the sink creates on startup when the configured
    name does not exist yet.
    """

    Raw = "raw"
    """
    Append-only stream of documents (e.g. trace spans).
    The configured name is used as a write alias bound to a physical index
    named `<alias>-000001`, so that the index can later be rolled over
    without changing the name the sink writes to.
    """

    Custom = "custom"
    """
    A single mutable index created directly under the configured name,
    with no alias indirection.
    """
