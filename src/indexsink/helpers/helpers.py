"""
Helper Utilities.

Provides naming conventions for the physical resources created behind a
write alias, and utilities for producing bounded log output.
"""

# Suffix of the first physical index created behind a Raw-mode alias
INITIAL_INDEX_SUFFIX = "000001"


def truncate_long_strings(data, max_length=100):
    """
    Returns a copy of a document where every string longer than `max_length`
    is cut and suffixed with "...". Used to keep failed documents readable
    in log lines.
    """
    if isinstance(data, str):
        if len(data) <= max_length:
            return data
        return f"{data[:max_length]}..."

    # only values are shortened, field names are kept
    if isinstance(data, dict):
        return {k: truncate_long_strings(v, max_length) for k, v in data.items()}

    if isinstance(data, (list, tuple)):
        items = [truncate_long_strings(v, max_length) for v in data]
        return items if isinstance(data, list) else tuple(items)

    # numbers, booleans, None
    return data


def pack_initial_index_name(index_alias: str) -> str:
    """
    Builds the name of the first physical index bound to a write alias.

    Args:
        index_alias (str): The write alias.

    Returns:
        str: The physical index name (e.g., "otel-v1-apm-span-000001").
    """
    return f"{index_alias}-{INITIAL_INDEX_SUFFIX}"


def pack_template_name(index_alias: str) -> str:
    """
    Builds the name under which the index template for an alias is stored.

    Args:
        index_alias (str): The write alias.

    Returns:
        str: The template name (e.g., "otel-v1-apm-span-index-template").
    """
    return f"{index_alias}-index-template"


def pack_template_pattern(index_alias: str) -> str:
    """
    Builds the index pattern the template of an alias applies to.

    Every physical index rolled over behind the alias matches this pattern.

    Args:
        index_alias (str): The write alias.

    Returns:
        str: The index pattern (e.g., "otel-v1-apm-span-*").
    """
    return f"{index_alias}-*"
