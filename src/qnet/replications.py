"""Transient analysis by independent replications."""

from __future__ import annotations

import logging
import math
from dataclasses import asdict, dataclass, field
from typing import Callable, Dict, Iterable, List, Optional

from .config import NetworkConfig
from .errors import ConfigurationError, DegenerateStatistic
from .kernel import Simulation
from .stats import IntervalEstimate, WaitStatistic, interval_estimate
from .variates import VariateSource

logger = logging.getLogger(__name__)

SEEDINGS = ("continue", "chain")


@dataclass(frozen=True)
class Replication:
    index: int
    seed: int
    horizon: float
    estimate: float
    arrivals: int
    departures: int
    refused: int
    in_network: int
    degenerate: bool = False

    def as_dict(self) -> Dict[str, float]:
        return asdict(self)


@dataclass
class TransientResult:
    horizon: float
    seeding: str
    statistic: str = "access"
    replications: List[Replication] = field(default_factory=list)

    @property
    def estimates(self) -> List[float]:
        return [r.estimate for r in self.replications]

    @property
    def refused(self) -> int:
        return sum(r.refused for r in self.replications)

    @property
    def arrivals(self) -> int:
        return sum(r.arrivals for r in self.replications)

    @property
    def rejection_rate(self) -> float:
        """Refused jobs as a percentage of exogenous arrivals, over all replications."""
        if self.arrivals == 0:
            return math.nan
        return 100.0 * self.refused / self.arrivals

    @property
    def degenerate(self) -> int:
        return sum(1 for r in self.replications if r.degenerate)

    def interval(self, z: float = 1.96) -> IntervalEstimate:
        return interval_estimate(self.estimates, z=z)


def replicate(
    config: NetworkConfig,
    horizon: float,
    source: VariateSource,
    index: int = 0,
    seed: int = 0,
    weighting: str = "uniform",
    relay: Optional[int] = None,
    statistic: Optional[WaitStatistic] = None,
) -> Replication:
    """Run one replication from an empty network up to ``horizon``."""
    if statistic is None:
        statistic = WaitStatistic(config.routing, relay, weighting)
    sim = Simulation(config.with_horizon(horizon), source=source)
    state = sim.run_until(horizon)
    stats = state.stats
    try:
        estimate = statistic.of_state(state)
        degenerate = False
    except DegenerateStatistic as exc:
        logger.warning("Replication %d is degenerate: %s", index, exc)
        estimate, degenerate = math.nan, True
    return Replication(
        index=index,
        seed=seed,
        horizon=horizon,
        estimate=estimate,
        arrivals=stats.arrivals,
        departures=stats.departures,
        refused=stats.refused,
        in_network=state.in_network(),
        degenerate=degenerate,
    )


def run_replications(
    config: NetworkConfig,
    replications: int,
    horizon: float,
    seed: int = 0,
    seeding: str = "continue",
    weighting: str = "uniform",
    relay: Optional[int] = None,
    progress: Optional[Callable[[Iterable[int]], Iterable[int]]] = None,
) -> TransientResult:
    """
    Run ``replications`` independent short runs of length ``horizon``.

    ``seeding="continue"`` plants ``seed`` once and lets every stream carry
    on from one replication to the next. ``seeding="chain"`` replants before
    each replication from the state the previous one left behind, so each
    replication is reproducible from its recorded seed alone.
    """
    if replications < 1:
        raise ConfigurationError("Number of replications must be >= 1.")
    if not horizon > 0 or math.isinf(horizon):
        raise ConfigurationError("Replication horizon must be positive and finite.")
    if seeding not in SEEDINGS:
        raise ConfigurationError(f"Unknown seeding policy '{seeding}'.")
    statistic = WaitStatistic(config.routing, relay, weighting)

    source = VariateSource(seed)
    result = TransientResult(horizon=horizon, seeding=seeding, statistic=statistic.kind)
    current_seed = seed
    indices: Iterable[int] = range(replications)
    if progress is not None:
        indices = progress(indices)

    for index in indices:
        if seeding == "chain":
            source.plant_seeds(current_seed)
        rep = replicate(config, horizon, source, index, current_seed, statistic=statistic)
        result.replications.append(rep)
        logger.debug("Replication %d (seed %d): %.6f", index, current_seed, rep.estimate)
        if seeding == "chain":
            source.select_stream(0)
            current_seed = source.get_seed()
    return result
