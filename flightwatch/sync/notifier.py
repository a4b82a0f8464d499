"""Callback registration for state-change notifications."""

import threading
from typing import Callable, Generic, TypeVar

from ..logging.config import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class ChangeNotifier(Generic[T]):
    """
    Fan-out of state snapshots to registered callbacks.

    The engines publish immutable snapshots; the presentation layer
    subscribes and renders them. A failing callback is logged and does not
    prevent the others from running.
    """

    def __init__(self, name: str):
        self.name = name
        self._callbacks: list[Callable[[T], None]] = []
        self._lock = threading.Lock()

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """
        Register ``callback``.

        Returns:
            A function that removes the registration when called
        """
        with self._lock:
            self._callbacks.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._callbacks:
                    self._callbacks.remove(callback)

        return unsubscribe

    def publish(self, value: T) -> None:
        with self._lock:
            callbacks = list(self._callbacks)

        for callback in callbacks:
            try:
                callback(value)
            except Exception as e:
                logger.error(
                    "Change listener failed",
                    notifier=self.name,
                    callback=getattr(callback, "__qualname__", repr(callback)),
                    error=str(e)
                )

    def __len__(self) -> int:
        with self._lock:
            return len(self._callbacks)
