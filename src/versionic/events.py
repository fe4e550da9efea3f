"""
versionic.events  ──  Decorators for versioned-write lifecycle hooks

    @on.update(Story)
    def reindex(row: Story) -> None: ...

Handlers run after the write succeeded, in registration order, and may be
coroutine functions. Bypass (``history=True``) writes never emit.
"""

from __future__ import annotations

import inspect
from collections import defaultdict
from typing import TYPE_CHECKING, Callable, Dict, List, Type

if TYPE_CHECKING:
    from .core.record import VersionedRecord

EVENT_TYPES = ("create", "update", "delete")


class EventRegistry:
    """Central registry for event handlers"""

    def __init__(self):
        # Maps event type -> record class -> handlers
        self._handlers: Dict[str, Dict[type, List[Callable]]] = {
            name: defaultdict(list) for name in EVENT_TYPES
        }

    def register(
        self,
        event_type: str,
        record_classes: tuple[Type[VersionedRecord], ...],
        handler: Callable,
    ) -> None:
        """Register a handler for specific record classes"""
        for cls in record_classes:
            if handler not in self._handlers[event_type][cls]:
                self._handlers[event_type][cls].append(handler)

    def handlers_for(self, event_type: str, record_class: type) -> List[Callable]:
        """Handlers registered on ``record_class`` or any of its bases."""
        found: List[Callable] = []
        for cls in record_class.__mro__:
            for handler in self._handlers[event_type].get(cls, ()):
                if handler not in found:
                    found.append(handler)
        return found

    async def emit(self, event_type: str, instance: VersionedRecord) -> None:
        """Emit event to all matching handlers"""
        for handler in self.handlers_for(event_type, instance.__class__):
            result = handler(instance)
            if inspect.isawaitable(result):
                await result

    def clear(self) -> None:
        for handlers in self._handlers.values():
            handlers.clear()


# Global registry instance
registry = EventRegistry()


class OnDecorator:
    """Namespace for event decorators"""

    @staticmethod
    def create(*record_classes: Type[VersionedRecord]) -> Callable:
        """Decorator for handling entity creation events"""

        def decorator(func: Callable) -> Callable:
            registry.register("create", record_classes, func)
            return func

        return decorator

    @staticmethod
    def update(*record_classes: Type[VersionedRecord]) -> Callable:
        """Decorator for handling new-version events"""

        def decorator(func: Callable) -> Callable:
            registry.register("update", record_classes, func)
            return func

        return decorator

    @staticmethod
    def delete(*record_classes: Type[VersionedRecord]) -> Callable:
        """Decorator for handling logical deletes (receives the closed row)"""

        def decorator(func: Callable) -> Callable:
            registry.register("delete", record_classes, func)
            return func

        return decorator


# Export the decorator interface
on = OnDecorator()
