"""Arrival and departure transitions of the network."""

from __future__ import annotations

from .config import NetworkConfig
from .routing import DISPATCHER, EXIT
from .state import SimulationState
from .variates import ARRIVAL_STREAM, ROUTING_STREAM, VariateSource


class EventProcessor:
    """Applies the effects of a calendar event to a ``SimulationState``."""

    def __init__(self, config: NetworkConfig, source: VariateSource):
        self.config = config
        self.source = source
        self.routing = config.routing

    def _interarrival(self) -> float:
        self.source.select_stream(ARRIVAL_STREAM)
        return self.config.arrival.draw(self.source)

    def _service(self, index: int) -> float:
        self.source.select_stream(self.config.stream_of(index))
        return self.config.nodes[index - 1].service.draw(self.source)

    def _route(self, source_index: int) -> int:
        if self.routing.is_deterministic(source_index):
            return self.routing.row(source_index)[0][0]
        self.source.select_stream(ROUTING_STREAM)
        return self.routing.lookup(source_index, self.source.uniform())

    def _schedule_next_arrival(self, state: SimulationState, previous: float) -> None:
        when = previous + self._interarrival()
        if when > self.config.horizon:
            # Doors closed: no more exogenous arrivals.
            state.calendar.cancel(DISPATCHER)
        else:
            state.calendar.schedule(DISPATCHER, when)

    def start(self, state: SimulationState) -> None:
        """Schedule the first exogenous arrival of a freshly reset state."""
        self._schedule_next_arrival(state, state.clock.current)

    def fire(self, state: SimulationState, index: int) -> None:
        if index == DISPATCHER:
            self.dispatch(state)
        else:
            self.depart(state, index)

    def dispatch(self, state: SimulationState) -> None:
        """Admit one exogenous job and schedule the next one."""
        stats = state.stats
        stats.arrivals += 1
        stats.last_arrival = state.clock.current
        target = self._route(DISPATCHER)
        self.arrive(state, target)
        self._schedule_next_arrival(state, state.clock.current)

    def arrive(self, state: SimulationState, index: int) -> bool:
        """Deliver a job to node ``index``; returns False if it was refused."""
        node = state.node(index)
        counters = state.stats.nodes[index]
        if node.capacity is not None and node.queue_length > node.capacity:
            state.stats.refused += 1
            return False
        counters.arrived += 1
        if node.queue_length == 0:
            self._begin_service(state, index)
        node.queue_length += 1
        return True

    def depart(self, state: SimulationState, index: int) -> None:
        """Complete the job in service at ``index`` and route it onward."""
        node = state.node(index)
        node.queue_length -= 1
        state.stats.nodes[index].completed += 1
        if node.queue_length > 0:
            self._begin_service(state, index)
        else:
            state.calendar.cancel(index)

        destination = self._route(index)
        if destination == EXIT:
            state.stats.departures += 1
        else:
            # Arrivals never route further, so this call cannot cascade.
            self.arrive(state, destination)

    def _begin_service(self, state: SimulationState, index: int) -> None:
        service_time = self._service(index)
        state.calendar.schedule(index, state.clock.current + service_time)
        counters = state.stats.nodes[index]
        counters.service += service_time
        counters.served += 1
