"""
Helper Utilities.

Provides utility functions for exception chaining and validation of
destination names.
"""

from typing import Optional, Type

from ..errors import SinkError

# Characters the document store rejects in index and alias names
_INVALID_INDEX_NAME_CHARS = set('\\/*?"<>| ,#:')
_INVALID_INDEX_NAME_PREFIXES = ("-", "_", "+")


def _make_exception(
    msg: str,
    exc_msg: Optional[Exception] = None,
    exc_type: Type[Exception] = SinkError,
) -> Exception:
    """
    Creates a new exception that chains an inner exception's message.
    Useful for adding context to low-level transport errors.

    Args:
        msg (str): The high-level error message.
        exc_msg (Optional[Exception]): The original exception.
        exc_type (Type[Exception]): The class of the exception to build.

    Returns:
        Exception: A new exception combining both messages.
    """
    if exc_msg is None:
        return exc_type(msg)
    else:
        return exc_type(f"{msg}\nInner err: {exc_msg}")


def _validate_index_name(name: str):
    if not name:
        raise ValueError("Index name must not be empty")
    if name != name.lower():
        raise ValueError(f"Index name '{name}' must be lowercase")
    if name.startswith(_INVALID_INDEX_NAME_PREFIXES):
        raise ValueError(
            f"Index name '{name}' must not start with any of {_INVALID_INDEX_NAME_PREFIXES}"
        )
    if name in (".", ".."):
        raise ValueError(f"Invalid index name '{name}'")
    bad = sorted(_INVALID_INDEX_NAME_CHARS.intersection(name))
    if bad:
        raise ValueError(f"Invalid characters {bad} in index name '{name}'")
