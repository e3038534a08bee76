"""Find the pair of stamped values that brackets a target time in a stream."""

from __future__ import annotations

import bisect
import enum
import logging
from collections import deque
from dataclasses import dataclass
from typing import Deque, Generic, Optional, Tuple, TypeVar

Value = TypeVar("Value")

logger = logging.getLogger(__name__)


class InterpolationHelperResult(enum.Enum):
    SUCCESS = "success"  # values covering the target stamp were found
    FAILURE = "failure"  # all values are newer than the target stamp
    WAITING = "waiting"  # all values are older than the target stamp


class InterpolationHelperSearchMode(enum.Enum):
    LINEAR = "linear"
    BINARY = "binary"


@dataclass(frozen=True)
class FindResult(Generic[Value]):
    """Outcome of a search; the bracketing values are set only on success."""

    status: InterpolationHelperResult
    left: Optional[Tuple[float, Value]] = None
    right: Optional[Tuple[float, Value]] = None
    remove_cursor: Optional[int] = None


class InterpolationHelper(Generic[Value]):
    """Queue of time-ordered values with a bracketing search."""

    def __init__(self, search_mode: InterpolationHelperSearchMode = InterpolationHelperSearchMode.LINEAR) -> None:
        self.search_mode = search_mode
        self._values: Deque[Tuple[float, Value]] = deque()

    def empty(self) -> bool:
        return not self._values

    def __len__(self) -> int:
        return len(self._values)

    def leftmost_time(self) -> float:
        """Oldest stamp in the queue, or 0.0 when empty."""
        return self._values[0][0] if self._values else 0.0

    def rightmost_time(self) -> float:
        """Newest stamp in the queue, or 0.0 when empty."""
        return self._values[-1][0] if self._values else 0.0

    def add(self, stamp: float, value: Value) -> None:
        """Append a value; values older than the newest one are rejected."""
        if self._values and self._values[-1][0] > stamp:
            logger.error("inserting non-ordered values!! (stamp=%f last=%f)", stamp, self._values[-1][0])
            return
        self._values.append((stamp, value))

    def find(self, stamp: float) -> FindResult[Value]:
        """Find the closest values at or before and at or after ``stamp``."""
        values = self._values
        if not values or values[-1][0] < stamp:
            return FindResult(InterpolationHelperResult.WAITING)
        if values[0][0] > stamp:
            return FindResult(InterpolationHelperResult.FAILURE)

        if self.search_mode is InterpolationHelperSearchMode.LINEAR:
            right = 1
            while right < len(values) and values[right][0] < stamp:
                right += 1
        else:
            right = bisect.bisect_left(values, stamp, key=lambda item: item[0])

        left = right - 1
        if left < 0 or right >= len(values) or values[left][0] > stamp or values[right][0] < stamp:
            raise RuntimeError(f"invalid interpolation condition for stamp {stamp}")

        return FindResult(
            InterpolationHelperResult.SUCCESS,
            left=values[left],
            right=values[right],
            remove_cursor=left - 1,
        )

    def erase(self, remove_cursor: int) -> None:
        """Drop the first ``remove_cursor`` values."""
        for _ in range(min(remove_cursor, len(self._values))):
            self._values.popleft()