"""Durable ant traffic recorder with live count and rate models."""

from .errors import MalformedRecord, OutOfOrderEvent, QueueOverloadAdvisory
from .models import Append, DeleteLast, Event, EventType, FileAction, Shutdown

__all__ = [
    "Append",
    "DeleteLast",
    "Event",
    "EventType",
    "FileAction",
    "MalformedRecord",
    "OutOfOrderEvent",
    "QueueOverloadAdvisory",
    "Shutdown",
]
