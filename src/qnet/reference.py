"""Process-interaction model of the same network, built on SimPy.

Jobs are SimPy processes queueing on one-slot resources. Given the same
seed it consumes every variate stream in the same order as the next-event
kernel, so both produce the same sample path; tests use it as an
independent check of the calendar and transition logic.
"""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict, List, Tuple

import simpy

from .config import NetworkConfig
from .errors import ConfigurationError
from .routing import DISPATCHER, EXIT
from .variates import ARRIVAL_STREAM, ROUTING_STREAM, VariateSource


@dataclass
class ReferenceResult:
    arrivals: int
    departures: int
    refused: int
    served: Tuple[int, ...]
    area: Tuple[float, ...]
    last_change: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


class ReferenceNetwork:
    """Encapsulates the SimPy processes and on-the-fly measurements."""

    def __init__(self, env: simpy.Environment, config: NetworkConfig, source: VariateSource):
        self.env = env
        self.config = config
        self.source = source
        n = config.node_count
        self.servers = {i: simpy.Resource(env, capacity=1) for i in range(1, n + 1)}
        self.in_node: List[int] = [0] * (n + 1)
        self.area: List[float] = [0.0] * (n + 1)
        self.served: List[int] = [0] * (n + 1)
        self.arrivals = 0
        self.departures = 0
        self.refused = 0
        self.last_event_time = 0.0

    def _route(self, index: int) -> int:
        table = self.config.routing
        if table.is_deterministic(index):
            return table.row(index)[0][0]
        self.source.select_stream(ROUTING_STREAM)
        return table.lookup(index, self.source.uniform())

    def _update_time_integrals(self) -> None:
        now = self.env.now
        dt = now - self.last_event_time
        self.last_event_time = now
        if dt <= 0:
            return
        for i in range(1, len(self.in_node)):
            self.area[i] += self.in_node[i] * dt

    def arrival_process(self):
        """Generate exogenous jobs until the horizon."""
        while True:
            self.source.select_stream(ARRIVAL_STREAM)
            yield self.env.timeout(self.config.arrival.draw(self.source))
            if self.env.now > self.config.horizon:
                break
            self._update_time_integrals()
            self.arrivals += 1
            self._join(self._route(DISPATCHER))

    def _join(self, index: int) -> None:
        capacity = self.config.nodes[index - 1].capacity
        if capacity is not None and self.in_node[index] > capacity:
            self.refused += 1
            return
        self.in_node[index] += 1
        self.env.process(self._visit(index))

    def _visit(self, index: int):
        with self.servers[index].request() as req:
            yield req
            self.source.select_stream(self.config.stream_of(index))
            service_time = self.config.nodes[index - 1].service.draw(self.source)
            self.served[index] += 1
            yield self.env.timeout(service_time)
            self._update_time_integrals()
            self.in_node[index] -= 1

        destination = self._route(index)
        if destination == EXIT:
            self.departures += 1
        else:
            self._join(destination)


def run_reference(config: NetworkConfig, seed: int = 0) -> ReferenceResult:
    """Run the SimPy model to the horizon and let it drain."""
    if math.isinf(config.horizon):
        raise ConfigurationError("The reference model needs a finite horizon.")
    env = simpy.Environment()
    network = ReferenceNetwork(env, config, VariateSource(seed))
    env.process(network.arrival_process())
    env.run()
    return ReferenceResult(
        arrivals=network.arrivals,
        departures=network.departures,
        refused=network.refused,
        served=tuple(network.served),
        area=tuple(network.area),
        last_change=network.last_event_time,
    )
