"""Next-event simulation loop and the single-run driver."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Optional

from .config import NetworkConfig
from .errors import ConfigurationError, DegenerateStatistic
from .processor import EventProcessor
from .routing import DISPATCHER
from .state import SimulationState
from .stats import NetworkReport, StatisticsCollector, WaitStatistic, network_report
from .variates import VariateSource

logger = logging.getLogger(__name__)

Trace = Callable[[float, int], None]


class Simulation:
    """
    One run of the network: state, calendar and counters plus the loop.

    Each ``step`` selects the next event, integrates occupancy, advances the
    clock and applies the event. ``reset`` rebuilds every piece of run state
    but keeps the variate source (and so its stream positions) untouched.
    """

    def __init__(
        self,
        config: NetworkConfig,
        source: Optional[VariateSource] = None,
        seed: int = 0,
        convention: str = "pre",
        heap_calendar: bool = False,
        trace: Optional[Trace] = None,
    ):
        self.config = config
        self.source = source if source is not None else VariateSource(seed)
        self.processor = EventProcessor(config, self.source)
        self.convention = convention
        self.heap_calendar = heap_calendar
        self.trace = trace
        self.reset()

    def reset(self) -> None:
        self.state = SimulationState.fresh(self.config.capacities, heap_calendar=self.heap_calendar)
        self.collector = StatisticsCollector(self.config.node_count, self.convention)
        self.processor.start(self.state)

    def step(self) -> int:
        state = self.state
        index = state.calendar.next_event()
        next_time = state.calendar.time(index)
        state.clock.next = next_time
        self.collector.before(state, next_time)
        elapsed = next_time - state.clock.current
        state.clock.current = next_time
        self.processor.fire(state, index)
        self.collector.after(state, elapsed)
        if self.trace is not None:
            self.trace(next_time, index)
        return index

    @property
    def accepting(self) -> bool:
        return self.state.calendar.is_active(DISPATCHER)

    def drained(self) -> bool:
        return not self.accepting and self.state.is_empty()

    def run(self) -> SimulationState:
        """Process events until the doors close and the network is empty."""
        if math.isinf(self.config.horizon):
            raise ConfigurationError("A drained run needs a finite horizon.")
        while not self.drained():
            self.step()
        return self.state

    def run_until(self, horizon: float) -> SimulationState:
        """Process events while the next arrival is due before ``horizon``."""
        calendar = self.state.calendar
        while calendar.time(DISPATCHER) < horizon:
            self.step()
        return self.state


@dataclass
class SingleRunResult:
    seed: int
    report: NetworkReport
    access_wait: float
    state: SimulationState
    statistic: str = "access"


def run_network(
    config: NetworkConfig,
    seed: int = 0,
    convention: str = "pre",
    weighting: str = "uniform",
    relay: Optional[int] = None,
    trace: Optional[Trace] = None,
) -> SingleRunResult:
    """
    Run to the horizon, drain the queues and report.

    ``access_wait`` holds the access-point wait when the routing has a relay
    node and the network mean response otherwise; ``statistic`` says which.
    """
    statistic = WaitStatistic(config.routing, relay, weighting)
    sim = Simulation(config, seed=seed, convention=convention, trace=trace)
    state = sim.run()
    try:
        wait = statistic.of_state(state)
    except DegenerateStatistic as exc:
        logger.warning("Wait undefined for seed %d: %s", seed, exc)
        wait = math.nan
    report = network_report(state)
    logger.debug(
        "Run seed=%d finished at t=%.3f with %d departures", seed, state.clock.current, report.departures
    )
    return SingleRunResult(
        seed=seed, report=report, access_wait=wait, state=state, statistic=statistic.kind
    )
