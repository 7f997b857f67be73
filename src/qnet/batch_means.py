"""Steady-state estimation by the method of batch means."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple

from .config import NetworkConfig
from .errors import ConfigurationError, DegenerateStatistic
from .kernel import Simulation
from .stats import IntervalEstimate, WaitStatistic, interval_estimate, lag1_autocorrelation
from .variates import VariateSource

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Batch:
    """Per-node occupancy area and completions over one batch span."""

    index: int
    start: float
    end: float
    area: Tuple[float, ...]
    departures: Tuple[int, ...]
    estimate: float
    degenerate: bool = False

    def as_dict(self) -> Dict[str, float]:
        payload = {
            "batch": self.index,
            "start": self.start,
            "end": self.end,
            "estimate": self.estimate,
            "degenerate": self.degenerate,
        }
        for node in range(1, len(self.area)):
            payload[f"area_{node}"] = self.area[node]
            payload[f"departures_{node}"] = self.departures[node]
        return payload


@dataclass
class BatchMeansResult:
    seed: int
    batch_size: int
    discard: int
    statistic: str = "access"
    batches: List[Batch] = field(default_factory=list)
    arrivals: int = 0
    departures: int = 0

    @property
    def kept(self) -> List[Batch]:
        return self.batches[self.discard:]

    @property
    def estimates(self) -> List[float]:
        return [b.estimate for b in self.kept]

    @property
    def degenerate(self) -> int:
        return sum(1 for b in self.kept if b.degenerate)

    def interval(self, z: float = 1.96) -> IntervalEstimate:
        return interval_estimate(self.estimates, z=z)

    @property
    def lag1(self) -> float:
        return lag1_autocorrelation(self.estimates)


def run_batch_means(
    config: NetworkConfig,
    departures: int,
    batches: int,
    seed: int = 0,
    discard: int = 0,
    weighting: str = "uniform",
    relay: Optional[int] = None,
    source: Optional[VariateSource] = None,
    progress: Optional[Callable[[int], object]] = None,
) -> BatchMeansResult:
    """
    Run one long simulation and split it into ``batches`` spans of
    ``departures // batches`` jobs leaving the network each.

    A boundary is crossed only by jobs exiting the network; internal
    completions and arrivals never advance it. ``discard`` leading batches
    are kept in the result but left out of the estimates.

    Raises:
        ConfigurationError: on bad sizes, including a ``departures`` that
            ``batches`` does not divide, or on a bad weighting or relay.
    """
    if batches < 1:
        raise ConfigurationError("Number of batches must be >= 1.")
    if departures < batches:
        raise ConfigurationError("Need at least one departure per batch.")
    if departures % batches:
        raise ConfigurationError(
            f"{departures} departures do not split into {batches} equal batches."
        )
    if not 0 <= discard < batches:
        raise ConfigurationError("Warm-up discard must leave at least one batch.")
    statistic = WaitStatistic(config.routing, relay, weighting)

    batch_size = departures // batches
    target = departures
    sim = Simulation(config, source=source, seed=seed)
    state = sim.state
    node_count = config.node_count
    result = BatchMeansResult(
        seed=seed, batch_size=batch_size, discard=discard, statistic=statistic.kind
    )

    exits_mark = 0
    completed_mark = [0] * (node_count + 1)
    start = state.clock.current

    while state.stats.departures < target:
        if sim.drained():
            logger.warning(
                "Network drained after %d of %d departures; %d batches sealed.",
                state.stats.departures,
                target,
                len(result.batches),
            )
            break
        sim.step()
        if state.stats.departures - exits_mark < batch_size:
            continue

        area = tuple(sim.collector.seal())
        completed = [c.completed for c in state.stats.nodes]
        counts = tuple(now - then for now, then in zip(completed, completed_mark))
        try:
            estimate = statistic(area, counts, batch_size)
            degenerate = False
        except DegenerateStatistic as exc:
            logger.warning("Batch %d is degenerate: %s", len(result.batches), exc)
            estimate, degenerate = math.nan, True

        batch = Batch(
            index=len(result.batches),
            start=start,
            end=state.clock.current,
            area=area,
            departures=counts,
            estimate=estimate,
            degenerate=degenerate,
        )
        result.batches.append(batch)
        logger.debug("Sealed batch %d at t=%.3f: %.6f", batch.index, batch.end, estimate)
        if progress is not None:
            progress(1)

        exits_mark = state.stats.departures
        completed_mark = completed
        start = state.clock.current

    result.arrivals = state.stats.arrivals
    result.departures = state.stats.departures
    return result
