"""Concurrent traversal of LDP containment trees."""
from .channel import Channel, ChannelClosed
from .visitor import (
    EventType,
    Predicate,
    Retriever,
    VisitError,
    VisitEvent,
    Visitor,
    WalkError,
    accept_pass_resources,
    descend_all,
)
