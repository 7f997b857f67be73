"""Event calendar: one pending event per node plus the dispatcher slot."""

from __future__ import annotations

import heapq
import math
from dataclasses import dataclass
from typing import List, Tuple

from .errors import CalendarExhaustion

INFINITE = math.inf


@dataclass
class Event:
    time: float = INFINITE
    active: bool = False


class EventCalendar:
    """
    Fixed set of slots indexed 0..N, slot 0 being the dispatcher.

    ``next_event`` scans the slots linearly and keeps the first minimum it
    finds, so equal times resolve to the lowest index.
    """

    def __init__(self, node_count: int):
        self.node_count = node_count
        self.events: List[Event] = [Event() for _ in range(node_count + 1)]

    def reset(self) -> None:
        for event in self.events:
            event.time = INFINITE
            event.active = False

    def schedule(self, index: int, time: float) -> None:
        event = self.events[index]
        event.time = time
        event.active = True

    def cancel(self, index: int) -> None:
        event = self.events[index]
        event.time = INFINITE
        event.active = False

    def time(self, index: int) -> float:
        return self.events[index].time

    def is_active(self, index: int) -> bool:
        return self.events[index].active

    def any_active(self) -> bool:
        return any(event.active for event in self.events)

    def next_event(self) -> int:
        best = -1
        best_time = INFINITE
        for index, event in enumerate(self.events):
            if event.active and (best < 0 or event.time < best_time):
                best = index
                best_time = event.time
        if best < 0:
            raise CalendarExhaustion("No active event left in the calendar.")
        return best


class HeapEventCalendar(EventCalendar):
    """
    Calendar backed by a binary heap of ``(time, index)`` entries.

    Entries are invalidated lazily: a popped entry is only trusted when it
    still matches the slot's current time and active flag.
    """

    def __init__(self, node_count: int):
        super().__init__(node_count)
        self._heap: List[Tuple[float, int]] = []

    def reset(self) -> None:
        super().reset()
        self._heap.clear()

    def schedule(self, index: int, time: float) -> None:
        super().schedule(index, time)
        heapq.heappush(self._heap, (time, index))

    def next_event(self) -> int:
        heap = self._heap
        while heap:
            time, index = heap[0]
            event = self.events[index]
            if event.active and event.time == time:
                return index
            heapq.heappop(heap)
        raise CalendarExhaustion("No active event left in the calendar.")
