"""
Append-only audit logging.
"""

from civictrust.kernel.events.event_store import EventStore

__all__ = ["EventStore"]
