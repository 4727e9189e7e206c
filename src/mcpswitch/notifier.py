# ABOUTME: Push notifications from the config store to the presentation layer
# ABOUTME: Delivery is asynchronous and ordered on a single worker thread
import logging
import threading
from collections.abc import Callable
from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any

logger = logging.getLogger(__name__)

SETTINGS_UPDATED = "settings-updated"
SETTINGS_ERROR = "settings-error"
REGISTRY_UPDATED = "registry-updated"
REGISTRY_ERROR = "registry-error"
BATCH_ERROR = "batch-error"

EVENTS = (
    SETTINGS_UPDATED,
    SETTINGS_ERROR,
    REGISTRY_UPDATED,
    REGISTRY_ERROR,
    BATCH_ERROR,
)

Callback = Callable[[Any], None]


class Notifier:
    """Event hub delivering store updates to subscribers.

    ABOUTME: emit() never blocks on subscribers and never raises because of them
    ABOUTME: A single worker keeps notifications in emission order

    Examples:
        >>> notifier = Notifier()
        >>> unsubscribe = notifier.subscribe(SETTINGS_UPDATED, print)
        >>> notifier.emit(SETTINGS_UPDATED, {"platforms": []})
        >>> notifier.flush()
        {'platforms': []}
        True
        >>> unsubscribe()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._subscribers: dict[str, list[Callback]] = {event: [] for event in EVENTS}
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="mcpswitch-notify")
        self._closed = False

    def subscribe(self, event: str, callback: Callback) -> Callable[[], None]:
        """Register callback for event and return a function that removes it.

        Raises:
            ValueError: If event is not one of EVENTS
        """
        if event not in self._subscribers:
            raise ValueError(f"Unknown event '{event}'. Must be one of: {', '.join(EVENTS)}")

        with self._lock:
            self._subscribers[event].append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers[event]:
                    self._subscribers[event].remove(callback)

        return unsubscribe

    def emit(self, event: str, payload: Any) -> None:
        """Queue payload for delivery to the current subscribers of event."""
        if event not in self._subscribers:
            raise ValueError(f"Unknown event '{event}'. Must be one of: {', '.join(EVENTS)}")

        with self._lock:
            if self._closed:
                logger.debug(f"Notifier closed, dropping {event}")
                return
            self._executor.submit(self._deliver, event, payload)

    def _deliver(self, event: str, payload: Any) -> None:
        with self._lock:
            callbacks = list(self._subscribers[event])

        for callback in callbacks:
            try:
                callback(payload)
            except Exception:
                logger.exception(f"Subscriber for {event} failed")

    def flush(self, timeout: float | None = None) -> bool:
        """Wait until every notification queued so far has been delivered.

        Returns:
            True if delivery finished within timeout
        """
        with self._lock:
            if self._closed:
                return True
            marker: Future[None] = self._executor.submit(lambda: None)

        try:
            marker.result(timeout=timeout)
        except FutureTimeoutError:
            return False
        return True

    def close(self) -> None:
        """Deliver pending notifications and stop the worker."""
        with self._lock:
            if self._closed:
                return
            self._closed = True
        self._executor.shutdown(wait=True)
