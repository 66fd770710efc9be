"""Message-queue consumer that turns messages into saved orders."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Callable

from .model import Order

_log = logging.getLogger(__name__)

MessageHandler = Callable[[Any], None]


@dataclass(frozen=True)
class ConsumerConfig:
    brokers: list[str] = field(default_factory=list)
    topic: str = ""
    group_id: str = ""


class Consumer:
    """Fetches messages from a reader and commits the ones handled successfully.

    The reader offers fetch_message(), commit_messages(message) and close().
    """

    retry_delay: float = 2.0

    def __init__(self, reader: Any, handler: MessageHandler) -> None:
        self.reader = reader
        self.handler = handler

    def run(self, stop_event: threading.Event) -> None:
        """Consume until stop_event is set."""
        while not stop_event.is_set():
            try:
                message = self.reader.fetch_message()
            except Exception:
                _log.warning("error while reading message", exc_info=True)
                if stop_event.wait(self.retry_delay):
                    break
                continue
            try:
                self.handler(message)
            except Exception as exc:
                _log.warning("error while handling message: %s", exc)
                continue
            try:
                self.reader.commit_messages(message)
            except Exception:
                _log.warning("error while committing message", exc_info=True)
        _log.info("consumer is stopped")

    def close(self) -> None:
        self.reader.close()


def make_message_handler(service: Any) -> MessageHandler:
    """Build a handler that decodes, validates and saves the order in a message."""

    def handle(message: Any) -> None:
        try:
            order = Order.from_json(message.value)
        except ValueError:
            _log.warning("couldn't unmarshal message")
            raise
        order.validate()
        service.save_order(order)

    return handle