from dataclasses import dataclass
from typing import Callable, List
import logging

logger = logging.getLogger(__name__)


@dataclass
class ToastMessage:
    text: str
    type: str = "info"  # 'info', 'success', 'error', 'warning'
    timeout: int = 3000  # milliseconds


class ToastService:
    """
    Fire-and-forget user notifications. Subscribers are called synchronously in registration order.
    """

    def __init__(self):
        self._subscribers: List[Callable[[ToastMessage], None]] = []

    def subscribe(self, callback: Callable[[ToastMessage], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)
        return unsubscribe

    def show(self, text: str, type: str = "info", timeout: int = 3000):
        message = ToastMessage(text, type, timeout)
        for callback in list(self._subscribers):
            callback(message)

    def success(self, text: str, timeout: int = 3000):
        self.show(text, "success", timeout)

    def error(self, text: str, timeout: int = 4000):
        self.show(text, "error", timeout)

    def info(self, text: str, timeout: int = 3000):
        self.show(text, "info", timeout)

    def warn(self, text: str, timeout: int = 4000):
        self.show(text, "warning", timeout)
