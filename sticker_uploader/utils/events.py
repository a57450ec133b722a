import asyncio
import inspect
import logging
from typing import Callable, Dict, List

logger = logging.getLogger(__name__)


class EventEmitter:
    """Event emitter for upload progress. Listener failures never reach the emitter."""

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}
        self._lock = asyncio.Lock()

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)

    async def emit(self, event_name: str, *args, **kwargs):
        """Emit an event to all listeners, in subscription order."""
        if event_name not in self._listeners:
            return

        async with self._lock:
            for callback in self._listeners[event_name][:]:
                try:
                    result = callback(*args, **kwargs)
                    if inspect.isawaitable(result):
                        await result
                except Exception as e:
                    logger.error(f"Error in event listener for {event_name}: {e}")
