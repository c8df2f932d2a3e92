"""Typed publish/subscribe channel for cross-domain invalidation.

The bus is the only way one domain (definitions, bands, audio sources)
tells another that derived state is out of date. Producers and consumers
hold a reference to the bus, never to each other.
"""

import logging
from typing import Callable

logger = logging.getLogger(__name__)

Listener = Callable[[object], None]


class InvalidationBus:
    """Synchronous, fault-isolated publish/subscribe.

    Subscribers are called in registration order. A subscriber that raises
    is logged and skipped; delivery continues to the remaining subscribers.
    Subscribing again with an existing ``listener_id`` replaces the previous
    callback but keeps its position.

    Examples
    --------
    >>> bus = InvalidationBus()
    >>> unsubscribe = bus.subscribe("cache", lambda event: print(event.kind))
    >>> bus.publish(DefinitionAdded(signal_id="a"))
    definition_added
    >>> unsubscribe()
    """

    def __init__(self):
        self._listeners: dict[str, Listener] = {}

    def subscribe(self, listener_id: str, callback: Listener) -> Callable[[], None]:
        """Register ``callback`` under ``listener_id``.

        Returns
        -------
        callable
            Unsubscribe function. It only removes the registration it
            created; a later replacement under the same id survives.
        """
        if listener_id in self._listeners:
            logger.debug(f"Replacing bus listener '{listener_id}'")
        self._listeners[listener_id] = callback

        def unsubscribe():
            if self._listeners.get(listener_id) is callback:
                del self._listeners[listener_id]

        return unsubscribe

    def publish(self, event) -> None:
        """Deliver ``event`` to every subscriber, in registration order."""
        for listener_id, callback in list(self._listeners.items()):
            try:
                callback(event)
            except Exception:
                logger.exception(
                    f"Bus listener '{listener_id}' failed on {getattr(event, 'kind', event)!r}"
                )

    def listener_ids(self) -> list[str]:
        return list(self._listeners)

    def clear(self) -> None:
        self._listeners.clear()
