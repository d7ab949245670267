from __future__ import annotations

import threading
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")

_EMPTY = object()


class ChannelClosed(Exception):
    pass


class Channel(Generic[T]):
    """Unbuffered, thread-safe channel.

    `send` blocks until a receiver has taken the item, so a slow consumer
    throttles its producers. Iterating a channel yields items until it is
    closed and drained.
    """

    def __init__(self, name: str = "") -> None:
        self.name = name
        self._cond = threading.Condition()
        self._item: object = _EMPTY
        self._closed = False
        self._sent = 0
        self._received = 0

    @property
    def closed(self) -> bool:
        with self._cond:
            return self._closed

    def send(self, item: T) -> None:
        with self._cond:
            # one item in the hand-off slot at a time
            while self._item is not _EMPTY and not self._closed:
                self._cond.wait()
            if self._closed:
                raise ChannelClosed(f"send on closed channel '{self.name}'")
            self._item = item
            self._sent += 1
            ticket = self._sent
            self._cond.notify_all()
            while self._received < ticket and not self._closed:
                self._cond.wait()

    def receive(self) -> T:
        with self._cond:
            while self._item is _EMPTY and not self._closed:
                self._cond.wait()
            if self._item is _EMPTY:
                raise ChannelClosed(f"receive on closed channel '{self.name}'")
            item = self._item
            self._item = _EMPTY
            self._received += 1
            self._cond.notify_all()
            return item  # type: ignore[return-value]

    def close(self) -> None:
        with self._cond:
            if self._closed:
                raise ChannelClosed(f"close of closed channel '{self.name}'")
            self._closed = True
            self._cond.notify_all()

    def __iter__(self) -> Iterator[T]:
        while True:
            try:
                yield self.receive()
            except ChannelClosed:
                return
