"""In-process publish/subscribe channel for named signals.

Created once at the composition root and passed to producers and
consumers, in place of an ambient global event target.
"""

from collections import defaultdict
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Union

from charityhub.app.core.logging import get_log_context, get_logger
from charityhub.app.services.events.signals import Signal, SignalPayload

logger = get_logger(__name__)

Payload = Union[Mapping[str, Any], SignalPayload, None]
Handler = Callable[[Signal, Payload], Awaitable[None]]


class EventBus:
    """Delivers each published signal to its subscribers in subscription order.

    A failing subscriber is logged and skipped; the publisher never sees
    its exception.
    """

    def __init__(self) -> None:
        self._subscribers: Dict[Signal, List[Handler]] = defaultdict(list)

    def subscribe(self, signal: Union[str, Signal], handler: Handler) -> Callable[[], None]:
        """Register ``handler`` and return a function that unregisters it."""
        signal = Signal(signal)
        self._subscribers[signal].append(handler)

        def _unsubscribe() -> None:
            self.unsubscribe(signal, handler)

        return _unsubscribe

    def unsubscribe(self, signal: Union[str, Signal], handler: Handler) -> bool:
        handlers = self._subscribers.get(Signal(signal), [])
        if handler in handlers:
            handlers.remove(handler)
            return True
        return False

    def subscriber_count(self, signal: Union[str, Signal]) -> int:
        return len(self._subscribers.get(Signal(signal), []))

    async def publish(self, signal: Union[str, Signal], payload: Payload = None) -> int:
        """Deliver ``payload`` to every subscriber of ``signal``.

        Returns:
            Number of handlers that completed without raising
        """
        signal = Signal(signal)
        delivered = 0
        for handler in list(self._subscribers.get(signal, [])):
            try:
                await handler(signal, payload)
                delivered += 1
            except Exception:
                logger.exception(
                    "Signal handler failed",
                    extra=get_log_context(signal=signal.value),
                )
        return delivered
