"""Closed integer intervals and consolidated interval sets

Used to collapse firewall port ranges such as ``22``, ``80``, ``1000-2000``
and ``*`` into the smallest equivalent sorted list of ranges.
"""

import bisect
import re
from dataclasses import dataclass
from typing import Iterable, Iterator, List, Optional, Tuple, Union

from .exceptions import IntervalParseError, InvalidIntervalError

PORT_MIN = 1
PORT_MAX = 65535

# Tokens that stand for "any port" in NSG rules
WILDCARD_TOKENS = frozenset({"*", "any"})

_RANGE_PATTERN = re.compile(r"^\s*([0-9]+)\s*(?:-\s*([0-9]+)\s*)?$")


@dataclass(frozen=True, order=True)
class ClosedInterval:
    """Contiguous inclusive range of integers [lower, upper]"""

    lower: int
    upper: int

    def __post_init__(self):
        for bound in (self.lower, self.upper):
            if isinstance(bound, bool) or not isinstance(bound, int):
                raise IntervalParseError(bound, "bounds must be integers")
        if self.lower > self.upper:
            raise InvalidIntervalError(self.lower, self.upper)

    @classmethod
    def parse(cls, text: Union[str, int]) -> "ClosedInterval":
        """Parse ``"<n>"``, ``"<lower>-<upper>"`` or a wildcard token

        Raises IntervalParseError for anything else and InvalidIntervalError
        when the lower bound is greater than the upper bound.
        """
        if isinstance(text, bool):
            raise IntervalParseError(text)
        if isinstance(text, int):
            return cls(text, text)
        if not isinstance(text, str):
            raise IntervalParseError(text, f"unsupported type {type(text).__name__}")

        if text.strip().lower() in WILDCARD_TOKENS:
            return cls.full_range()

        match = _RANGE_PATTERN.match(text)
        if not match:
            raise IntervalParseError(text)

        lower = int(match.group(1))
        upper = int(match.group(2)) if match.group(2) is not None else lower
        return cls(lower, upper)

    @classmethod
    def full_range(cls) -> "ClosedInterval":
        return cls(PORT_MIN, PORT_MAX)

    @property
    def size(self) -> int:
        return self.upper - self.lower + 1

    def is_adjacent_or_overlapping(self, other: "ClosedInterval") -> bool:
        """True when no integer lies between the two intervals"""
        first, second = (self, other) if self.lower <= other.lower else (other, self)
        return first.upper + 1 >= second.lower

    def try_merge(self, other: "ClosedInterval") -> Optional["ClosedInterval"]:
        """Return the union of both intervals, or None if they are disjoint"""
        if not self.is_adjacent_or_overlapping(other):
            return None
        return ClosedInterval(min(self.lower, other.lower), max(self.upper, other.upper))

    def contains(self, item: Union[int, "ClosedInterval"]) -> bool:
        if isinstance(item, ClosedInterval):
            return self.lower <= item.lower and item.upper <= self.upper
        return self.lower <= item <= self.upper

    def __contains__(self, item) -> bool:
        return self.contains(item)

    def __str__(self) -> str:
        if self.lower == self.upper:
            return str(self.lower)
        return f"{self.lower}-{self.upper}"


IntervalLike = Union[ClosedInterval, str, int]


def parse_interval(text: Union[str, int]) -> ClosedInterval:
    """Module level shortcut for ClosedInterval.parse"""
    return ClosedInterval.parse(text)


class IntervalSet:
    """Sorted, fully consolidated set of closed intervals

    After any sequence of ``add`` calls no two stored intervals overlap or
    touch, and they are ordered by lower bound. The stored list is owned by
    the set; callers only ever see tuple snapshots.
    """

    def __init__(self, intervals: Optional[Iterable[IntervalLike]] = None):
        self._intervals: List[ClosedInterval] = []
        if intervals is not None:
            self.add_all(intervals)

    def add(self, interval: IntervalLike) -> "IntervalSet":
        if not isinstance(interval, ClosedInterval):
            interval = ClosedInterval.parse(interval)

        self._intervals.append(interval)
        # list.sort is stable, equal lower bounds keep insertion order
        self._intervals.sort(key=lambda item: item.lower)
        self._intervals = self._consolidate(self._intervals)
        return self

    def add_all(self, intervals: Iterable[IntervalLike]) -> "IntervalSet":
        for interval in intervals:
            self.add(interval)
        return self

    @staticmethod
    def _consolidate(ordered: List[ClosedInterval]) -> List[ClosedInterval]:
        if not ordered:
            return []

        merged = []
        current = ordered[0]
        for candidate in ordered[1:]:
            # current keeps growing, so every later candidate is tested
            # against the widened range rather than its original neighbour
            union = current.try_merge(candidate)
            if union is not None:
                current = union
                continue
            merged.append(current)
            current = candidate
        merged.append(current)
        return merged

    @property
    def intervals(self) -> Tuple[ClosedInterval, ...]:
        return tuple(self._intervals)

    def contains(self, item: Union[int, ClosedInterval]) -> bool:
        lower = item.lower if isinstance(item, ClosedInterval) else item
        index = bisect.bisect_right([interval.lower for interval in self._intervals], lower) - 1
        return index >= 0 and self._intervals[index].contains(item)

    def is_full_range(self) -> bool:
        return self.intervals == (ClosedInterval.full_range(),)

    def to_strings(self) -> List[str]:
        return [str(interval) for interval in self._intervals]

    def __contains__(self, item) -> bool:
        return self.contains(item)

    def __iter__(self) -> Iterator[ClosedInterval]:
        return iter(tuple(self._intervals))

    def __len__(self) -> int:
        return len(self._intervals)

    def __eq__(self, other) -> bool:
        if not isinstance(other, IntervalSet):
            return NotImplemented
        return self._intervals == other._intervals

    def __repr__(self) -> str:
        return f"IntervalSet({self.to_strings()!r})"

    def __str__(self) -> str:
        return "{" + ",".join(self.to_strings()) + "}"


def consolidate(intervals: Iterable[IntervalLike]) -> IntervalSet:
    """Build a consolidated IntervalSet from range descriptors or intervals"""
    return IntervalSet(intervals)
