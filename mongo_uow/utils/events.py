from collections import defaultdict
from typing import Any, Callable, Dict, List

Listener = Callable[..., Any]


class EventEmitter:
    """
    Per-instance subscriber lists keyed by event name.

    Listeners run synchronously in registration order; a listener that raises
    propagates to the emitter's caller.
    """

    def __init__(self) -> None:
        self._listeners: Dict[str, List[Listener]] = defaultdict(list)

    def on(self, event: str, listener: Listener) -> None:
        self._listeners[event].append(listener)

    def off(self, event: str, listener: Listener) -> None:
        handlers = self._listeners.get(event)
        if handlers and listener in handlers:
            handlers.remove(listener)

    def listeners(self, event: str) -> List[Listener]:
        return list(self._listeners.get(event, []))

    def emit(self, event: str, *args: Any) -> int:
        """Call every listener of `event`; returns how many ran."""
        handlers = self.listeners(event)
        for handler in handlers:
            handler(*args)
        return len(handlers)

    def clear(self) -> None:
        self._listeners.clear()
