"""EventBus for decoupled publish/subscribe communication."""

from enum import Enum, auto
from typing import Any, Callable
from collections import defaultdict


class EventType(Enum):
    # Pointer interaction
    HOVER_CHANGED = auto()        # data: link_name (str | None)
    SELECTION_CHANGED = auto()    # data: kind (str), id (str), subtype (str | None)
    JOINT_LIVE_UPDATE = auto()    # data: joint_name (str), value (float)
    JOINT_COMMIT = auto()         # data: joint_name (str), value (float)
    DRAG_STARTED = auto()         # data: joint_name (str)

    # Loading events
    LOADING_STARTED = auto()
    LOADING_COMPLETE = auto()     # data: root, index
    LOADING_FAILED = auto()       # data: error (str)
    INDEX_REBUILT = auto()        # data: index

    # Display
    VISIBILITY_CHANGED = auto()   # data: show_visual (bool), show_collision (bool)
    MODE_CHANGED = auto()         # data: mode (InteractionMode)


class EventBus:
    """Simple publish/subscribe event system."""

    def __init__(self):
        self._handlers: dict[EventType, list[Callable]] = defaultdict(list)

    def subscribe(self, event_type: EventType, handler: Callable) -> None:
        self._handlers[event_type].append(handler)

    def unsubscribe(self, event_type: EventType, handler: Callable) -> None:
        handlers = self._handlers[event_type]
        if handler in handlers:
            handlers.remove(handler)

    def publish(self, event_type: EventType, **data: Any) -> None:
        for handler in list(self._handlers[event_type]):
            handler(**data)

    def clear(self) -> None:
        self._handlers.clear()
