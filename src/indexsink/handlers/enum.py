"""
Enumerations Module.

Defines the state machine of the sink lifecycle.
"""

from enum import Enum


class SinkStatus(Enum):
    """
    Represents the lifecycle state of a BatchingSink.
    """

    Null = "null"  # Constructed; destination not yet prepared.
    Started = "started"  # Destination ready; accepting writes.
    Stopped = "stopped"  # Resources released; no further writes.
    Error = "error"  # Startup failed; only stop() is allowed.
