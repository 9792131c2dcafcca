"""
Exceptions Module.

Errors raised past the sink boundary. Per-item write failures never surface
as exceptions: they are routed to the failure sink and folded into the
boolean result of `BatchingSink.write()`.
"""


class SinkError(Exception):
    """Base error for the index sink."""

    pass


class BootstrapError(SinkError):
    """The destination could not be prepared (template, alias check or index creation)."""

    pass


class TemplateSourceError(BootstrapError):
    """The index template could not be fetched or is not a JSON object."""

    pass


class DocumentParseError(SinkError, ValueError):
    """A record payload could not be parsed into a JSON document."""

    pass
