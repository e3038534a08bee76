"""Thread-safe queue with an optional size policy and end-of-data signalling."""

from __future__ import annotations

import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Generic, Iterable, List, Optional, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class DataStorePolicy:
    """How many items a queue may hold and which end is dropped when full.

    ``max_size`` of ``None`` means unlimited.
    """

    max_size: Optional[int] = None
    pop_front: bool = True

    def regulate(self, queue: Deque) -> None:
        """Drop items from ``queue`` until it holds at most ``max_size``."""
        if self.max_size is None:
            return
        excess = len(queue) - self.max_size
        if excess <= 0:
            return
        drop = queue.popleft if self.pop_front else queue.pop
        for _ in range(excess):
            drop()

    @classmethod
    def unlimited(cls) -> "DataStorePolicy":
        return cls()

    @classmethod
    def upto(cls, max_size: int, pop_front: bool = True) -> "DataStorePolicy":
        if max_size < 0:
            raise ValueError("max_size must not be negative")
        return cls(max_size=max_size, pop_front=pop_front)


class ConcurrentVector(Generic[T]):
    """A FIFO container guarded by a lock, suited to one producer and one consumer."""

    def __init__(self, policy: Optional[DataStorePolicy] = None) -> None:
        self._policy = policy if policy is not None else DataStorePolicy.unlimited()
        self._values: Deque[T] = deque()
        self._cond = threading.Condition(threading.Lock())
        self._end_of_data = False

    def submit_end_of_data(self) -> None:
        """Mark that no more data will arrive and wake all waiters."""
        with self._cond:
            self._end_of_data = True
            self._cond.notify_all()

    def empty(self) -> bool:
        with self._cond:
            return not self._values

    def __len__(self) -> int:
        with self._cond:
            return len(self._values)

    def push_back(self, value: T) -> None:
        with self._cond:
            self._values.append(value)
            self._policy.regulate(self._values)
            self._cond.notify()

    def clear(self) -> None:
        with self._cond:
            self._values.clear()

    def front(self) -> T:
        with self._cond:
            if not self._values:
                raise IndexError("front of an empty container")
            return self._values[0]

    def back(self) -> T:
        with self._cond:
            if not self._values:
                raise IndexError("back of an empty container")
            return self._values[-1]

    def insert(self, new_values: Iterable[T]) -> None:
        """Append all of ``new_values`` at the end."""
        items = list(new_values)
        if not items:
            return
        with self._cond:
            self._values.extend(items)
            self._policy.regulate(self._values)
            self._cond.notify_all()

    def pop(self) -> Optional[T]:
        """Remove and return the first item, or ``None`` when empty."""
        with self._cond:
            if not self._values:
                return None
            return self._values.popleft()

    def pop_wait(self) -> Optional[T]:
        """Wait for an item and return it; ``None`` once empty and ended."""
        with self._cond:
            self._cond.wait_for(lambda: bool(self._values) or self._end_of_data)
            if not self._values:
                return None
            return self._values.popleft()

    def get_all_and_clear_wait(self) -> List[T]:
        """Wait for data, then return and remove all of it; empty once ended."""
        with self._cond:
            self._cond.wait_for(lambda: bool(self._values) or self._end_of_data)
            items = list(self._values)
            self._values.clear()
            return items

    def get_all_and_clear(self) -> List[T]:
        with self._cond:
            items = list(self._values)
            self._values.clear()
            return items

    def get_and_clear(self, num_max: int) -> List[T]:
        """Remove and return up to ``num_max`` items from the front."""
        with self._cond:
            count = min(max(num_max, 0), len(self._values))
            return [self._values.popleft() for _ in range(count)]