"""
Spark Agent - Event Channels

Synchronous publish/subscribe on named channels. Every publish delivers the
payload to the channel's current subscribers, in subscription order, before
returning.
"""

import itertools
import threading
from typing import Any, Callable, Dict

import structlog

logger = structlog.get_logger(__name__)

Handler = Callable[[Any], Any]


class Channels:
    """Channel names."""
    METRICS = "metrics"
    ERROR = "error"
    DATA = "data"


class Subscription:
    """Handle returned by :meth:`EventEmitter.subscribe`."""

    def __init__(self, emitter: "EventEmitter", channel: str, token: int):
        self._emitter = emitter
        self.channel = channel
        self._token = token

    @property
    def active(self) -> bool:
        return self._emitter._has_token(self.channel, self._token)

    def unsubscribe(self) -> None:
        """Stop receiving events. Safe to call more than once."""
        self._emitter._remove(self.channel, self._token)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info) -> None:
        self.unsubscribe()


class EventEmitter:
    """Registry of handlers keyed by channel name."""

    def __init__(self):
        self._channels: Dict[str, Dict[int, Handler]] = {}  # channel -> token -> handler
        self._tokens = itertools.count(1)
        self._handlers_lock = threading.Lock()

    def subscribe(self, channel: str, handler: Handler) -> Subscription:
        """Register ``handler`` for ``channel``."""
        if not callable(handler):
            raise TypeError("handler must be callable")

        with self._handlers_lock:
            token = next(self._tokens)
            self._channels.setdefault(channel, {})[token] = handler

        logger.debug("Handler subscribed", channel=channel)
        return Subscription(self, channel, token)

    # Alias familiar from emitter APIs
    on = subscribe

    def publish(self, channel: str, payload: Any) -> int:
        """Deliver ``payload`` to every handler on ``channel``.

        A handler that raises is logged and skipped; the rest still receive
        the payload. Returns the number of handlers called.
        """
        with self._handlers_lock:
            handlers = list(self._channels.get(channel, {}).values())

        for handler in handlers:
            try:
                handler(payload)
            except Exception as e:
                logger.exception("Event handler error", channel=channel, error=str(e))

        return len(handlers)

    def subscriber_count(self, channel: str) -> int:
        """Get number of handlers on a channel."""
        with self._handlers_lock:
            return len(self._channels.get(channel, {}))

    def _has_token(self, channel: str, token: int) -> bool:
        with self._handlers_lock:
            return token in self._channels.get(channel, {})

    def _remove(self, channel: str, token: int) -> None:
        with self._handlers_lock:
            handlers = self._channels.get(channel)
            if handlers is not None:
                handlers.pop(token, None)
                if not handlers:
                    del self._channels[channel]
