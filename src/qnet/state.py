"""Mutable state owned by a single simulation run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .calendar import EventCalendar, HeapEventCalendar


class NodeStatus(Enum):
    IDLE = "idle"
    BUSY = "busy"


@dataclass
class NodeState:
    index: int
    capacity: Optional[int] = None
    queue_length: int = 0

    @property
    def status(self) -> NodeStatus:
        return NodeStatus.BUSY if self.queue_length > 0 else NodeStatus.IDLE


@dataclass
class Clock:
    current: float = 0.0
    next: float = 0.0


@dataclass
class NodeCounters:
    area: float = 0.0
    served: int = 0
    arrived: int = 0
    completed: int = 0
    service: float = 0.0


@dataclass
class RunStatistics:
    nodes: List[NodeCounters]
    arrivals: int = 0
    departures: int = 0
    refused: int = 0
    last_arrival: float = 0.0

    @classmethod
    def empty(cls, node_count: int) -> "RunStatistics":
        # Slot 0 mirrors the calendar layout and stays at zero.
        return cls(nodes=[NodeCounters() for _ in range(node_count + 1)])


@dataclass
class SimulationState:
    """Everything a run mutates: queues, calendar, clock and counters."""

    nodes: List[NodeState]
    calendar: EventCalendar
    clock: Clock = field(default_factory=Clock)
    stats: Optional[RunStatistics] = None

    def __post_init__(self) -> None:
        if self.stats is None:
            self.stats = RunStatistics.empty(len(self.nodes))

    @classmethod
    def fresh(
        cls,
        capacities: List[Optional[int]],
        heap_calendar: bool = False,
    ) -> "SimulationState":
        node_count = len(capacities)
        calendar_cls = HeapEventCalendar if heap_calendar else EventCalendar
        nodes = [NodeState(index=i, capacity=c) for i, c in enumerate(capacities, start=1)]
        return cls(nodes=nodes, calendar=calendar_cls(node_count))

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    def node(self, index: int) -> NodeState:
        return self.nodes[index - 1]

    def in_network(self) -> int:
        return sum(node.queue_length for node in self.nodes)

    def is_empty(self) -> bool:
        return all(node.queue_length == 0 for node in self.nodes)
