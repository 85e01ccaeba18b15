"""Event emitter used to report per-file progress of a publish run."""
from typing import Callable, Dict, List
import asyncio
import inspect
import logging
logger = logging.getLogger(__name__)

FILE_START = "file_start"
FILE_COMPLETE = "file_complete"
FILE_FAIL = "file_fail"


class EventEmitter:
    """Simple event emitter for publish events.

    Listener errors are logged and never interrupt the pipeline.
    """

    def __init__(self):
        self._listeners: Dict[str, List[Callable]] = {}
        self._lock = asyncio.Lock()

    def on(self, event_name: str, callback: Callable):
        """Subscribe to an event."""
        listeners = self._listeners.setdefault(event_name, [])
        if callback not in listeners:
            listeners.append(callback)

    def off(self, event_name: str, callback: Callable):
        """Unsubscribe from an event."""
        if callback in self._listeners.get(event_name, []):
            self._listeners[event_name].remove(callback)

    async def emit(self, event_name: str, *args, **kwargs):
        """Emit an event to all listeners."""
        if event_name not in self._listeners:
            return

        async with self._lock:
            for callback in self._listeners[event_name][:]:
                try:
                    if inspect.iscoroutinefunction(callback):
                        await callback(*args, **kwargs)
                    else:
                        callback(*args, **kwargs)
                except Exception as e:
                    logger.error(f"Error in event listener for {event_name}: {e}")
