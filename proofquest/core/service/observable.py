from typing import Callable, Generic, List, TypeVar

from proofquest.core.logger.logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")
Listener = Callable[[T], None]


class Observable(Generic[T]):
    """
    Current value plus change notifications for the UI layer.

    Listeners are plain callables invoked synchronously on every `set`; a
    listener that raises is logged and does not stop the others.
    """

    def __init__(self, value: T):
        self._value = value
        self._listeners: List[Listener] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for listener in list(self._listeners):
            try:
                listener(value)
            except Exception as e:
                logger.error(
                    "Observable listener failed",
                    extra={"listener": repr(listener), "error": str(e)},
                    exc_info=True
                )

    def subscribe(self, listener: Listener, emit_current: bool = False) -> Callable[[], None]:
        """Register a listener; returns a function that unsubscribes it"""
        self._listeners.append(listener)
        if emit_current:
            listener(self._value)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe
