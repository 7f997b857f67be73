"""Occupancy integration, derived per-node metrics and interval estimates."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass
from typing import Dict, List, Optional, Sequence

import numpy as np

from .errors import ConfigurationError, DegenerateStatistic
from .routing import DISPATCHER, RoutingTable
from .state import SimulationState

CONVENTIONS = ("pre", "post")
WEIGHTINGS = ("uniform", "routing")


class StatisticsCollector:
    """
    Time-weighted occupancy integrals.

    With the default ``"pre"`` convention, ``before`` integrates each node's
    queue length over ``[clock.current, next_time)`` using the counts that
    held before the event fires. ``"post"`` defers the same integration
    until after the event, i.e. it charges the new counts to the elapsed
    interval; it exists only to reproduce the early single-run program.

    Besides the run-wide ``area`` counters, the collector keeps a resettable
    per-node window used by the batch-means driver.
    """

    def __init__(self, node_count: int, convention: str = "pre"):
        if convention not in CONVENTIONS:
            raise ConfigurationError(f"Unknown integration convention '{convention}'.")
        self.convention = convention
        self.window: List[float] = [0.0] * (node_count + 1)

    def before(self, state: SimulationState, next_time: float) -> None:
        if self.convention == "pre":
            self._integrate(state, next_time - state.clock.current)

    def after(self, state: SimulationState, elapsed: float) -> None:
        if self.convention == "post":
            self._integrate(state, elapsed)

    def _integrate(self, state: SimulationState, dt: float) -> None:
        if dt <= 0:
            return
        counters = state.stats.nodes
        window = self.window
        for node in state.nodes:
            if node.queue_length:
                occupied = dt * node.queue_length
                counters[node.index].area += occupied
                window[node.index] += occupied

    def seal(self) -> List[float]:
        """Return the window areas (index 0 unused) and restart the window."""
        sealed = self.window
        self.window = [0.0] * len(sealed)
        return sealed


def ratio(numerator: float, denominator: float, metric: str, node: Optional[int] = None) -> float:
    if denominator == 0:
        raise DegenerateStatistic(metric, node)
    return numerator / denominator


def _or_nan(numerator: float, denominator: float) -> float:
    try:
        return ratio(numerator, denominator, "ratio")
    except DegenerateStatistic:
        return math.nan


@dataclass(frozen=True)
class NodeReport:
    index: int
    utilization: float
    avg_service: float
    share: float
    avg_wait: float
    avg_delay: float

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass(frozen=True)
class NetworkReport:
    """Aggregate metrics of a finished run; undefined values are ``nan``."""

    elapsed: float
    arrivals: int
    departures: int
    refused: int
    avg_interarrival: float
    avg_wait: float
    avg_in_network: float
    avg_delay: float
    avg_in_queue: float
    nodes: tuple

    @property
    def rejection_rate(self) -> float:
        return 100.0 * _or_nan(self.refused, self.arrivals)

    def as_dict(self) -> Dict[str, float]:
        payload = asdict(self)
        payload.pop("nodes")
        return payload


def node_reports(state: SimulationState) -> List[NodeReport]:
    stats = state.stats
    elapsed = state.clock.current
    total_served = sum(stats.nodes[n.index].served for n in state.nodes)
    reports = []
    for node in state.nodes:
        c = stats.nodes[node.index]
        avg_service = _or_nan(c.service, c.served)
        avg_wait = _or_nan(c.area, c.served)
        reports.append(
            NodeReport(
                index=node.index,
                utilization=_or_nan(c.service, elapsed),
                avg_service=avg_service,
                share=_or_nan(c.served, total_served),
                avg_wait=avg_wait,
                avg_delay=avg_wait - avg_service,
            )
        )
    return reports


def network_report(state: SimulationState) -> NetworkReport:
    stats = state.stats
    elapsed = state.clock.current
    total_area = sum(stats.nodes[n.index].area for n in state.nodes)
    queue_area = total_area - sum(stats.nodes[n.index].service for n in state.nodes)
    return NetworkReport(
        elapsed=elapsed,
        arrivals=stats.arrivals,
        departures=stats.departures,
        refused=stats.refused,
        avg_interarrival=_or_nan(stats.last_arrival, stats.arrivals),
        avg_wait=_or_nan(total_area, stats.departures),
        avg_in_network=_or_nan(total_area, elapsed),
        avg_delay=_or_nan(queue_area, stats.departures),
        avg_in_queue=_or_nan(queue_area, elapsed),
        nodes=tuple(node_reports(state)),
    )


def find_relay(table: RoutingTable, required: bool = True) -> Optional[int]:
    """
    Return the node that collects the feeders' traffic and releases it.

    When the topology has no such node, raise ``ConfigurationError`` or,
    with ``required=False``, return None.
    """
    exiting = [n for n in range(1, table.node_count + 1) if table.exits(n)]
    fed = [n for n in exiting if table.feeders(n)]
    if len(fed) == 1:
        return fed[0]
    if len(exiting) == 1:
        return exiting[0]
    if required:
        raise ConfigurationError("Cannot infer the relay node; pass it explicitly.")
    return None


def access_wait(
    areas: Sequence[float],
    counts: Sequence[float],
    table: RoutingTable,
    relay: Optional[int] = None,
    weighting: str = "uniform",
) -> float:
    """
    Mean wait of a user entering through a feeder node and leaving via the relay.

    ``areas`` and ``counts`` are indexed by node (index 0 unused). With
    ``weighting="uniform"`` every feeder counts the same; ``"routing"``
    weights feeders by their share of the exogenous traffic.

    Raises:
        DegenerateStatistic: when a node involved has a zero count.
    """
    if weighting not in WEIGHTINGS:
        raise ConfigurationError(f"Unknown weighting '{weighting}'.")
    relay = find_relay(table) if relay is None else relay
    relay_wait = ratio(areas[relay], counts[relay], "avg_wait", relay)
    feeders = table.feeders(relay)
    if not feeders:
        return relay_wait

    if weighting == "uniform":
        weights = [1.0 / len(feeders)] * len(feeders)
    else:
        shares = [table.probability(DISPATCHER, f) for f in feeders]
        total = sum(shares)
        if total == 0:
            raise ConfigurationError("Feeder nodes receive no exogenous traffic.")
        weights = [s / total for s in shares]

    feeder_wait = sum(
        w * ratio(areas[f], counts[f], "avg_wait", f) for w, f in zip(weights, feeders)
    )
    return feeder_wait + relay_wait


def network_wait(areas: Sequence[float], departures: int) -> float:
    """Mean time in the network per job that left it (index 0 of ``areas`` unused)."""
    return ratio(sum(areas[1:]), departures, "network_wait")


class WaitStatistic:
    """
    Per-run wait estimate, bound to the routing topology before a run starts.

    With a relay node (given or inferred) this is ``access_wait``; when the
    routing has no unique relay it falls back to ``network_wait``.
    """

    def __init__(self, table: RoutingTable, relay: Optional[int] = None, weighting: str = "uniform"):
        if weighting not in WEIGHTINGS:
            raise ConfigurationError(f"Unknown weighting '{weighting}'.")
        if relay is None:
            relay = find_relay(table, required=False)
        elif not 1 <= relay <= table.node_count:
            raise ConfigurationError(f"Relay node {relay} is not in the network.")
        self.table = table
        self.relay = relay
        self.weighting = weighting

    @property
    def kind(self) -> str:
        return "network" if self.relay is None else "access"

    def __call__(self, areas: Sequence[float], counts: Sequence[float], departures: int) -> float:
        if self.relay is None:
            return network_wait(areas, departures)
        return access_wait(areas, counts, self.table, self.relay, self.weighting)

    def of_state(self, state: SimulationState) -> float:
        nodes = state.stats.nodes
        return self(
            [c.area for c in nodes], [c.served for c in nodes], state.stats.departures
        )


@dataclass(frozen=True)
class IntervalEstimate:
    mean: float
    std: float
    half_width: float
    n: int
    dropped: int = 0

    @property
    def lower(self) -> float:
        return self.mean - self.half_width

    @property
    def upper(self) -> float:
        return self.mean + self.half_width

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


def interval_estimate(values: Sequence[float], z: float = 1.96) -> IntervalEstimate:
    """Mean ± z·s/√n over the finite entries of ``values``."""
    data = np.asarray(values, dtype=float)
    finite = data[np.isfinite(data)]
    n = int(finite.size)
    dropped = int(data.size) - n
    if n == 0:
        return IntervalEstimate(mean=math.nan, std=math.nan, half_width=math.nan, n=0, dropped=dropped)
    mean = float(finite.mean())
    std = float(finite.std(ddof=1)) if n > 1 else 0.0
    half = z * std / math.sqrt(n) if n > 1 else 0.0
    return IntervalEstimate(mean=mean, std=std, half_width=half, n=n, dropped=dropped)


def lag1_autocorrelation(values: Sequence[float]) -> float:
    data = np.asarray(values, dtype=float)
    data = data[np.isfinite(data)]
    if data.size < 3:
        return math.nan
    centered = data - data.mean()
    denom = float(np.dot(centered, centered))
    if denom == 0:
        return math.nan
    return float(np.dot(centered[:-1], centered[1:]) / denom)
