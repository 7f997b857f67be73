"""Closed-form performance metrics for M/M/1 nodes and Jackson networks."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Mapping, Optional, Tuple

import numpy as np

from .config import NetworkConfig
from .errors import ConfigurationError
from .routing import DISPATCHER, RoutingTable
from .stats import WaitStatistic, access_wait
from .variates import Exponential


@dataclass(frozen=True)
class MM1Theory:
    """Bundle of theoretical steady-state metrics for an M/M/1 system."""

    rho: float
    L: float
    Lq: float
    W: float
    Wq: float

    def as_dict(self) -> Mapping[str, float]:
        """Return the metrics as a plain dictionary (handy for printing)."""
        return asdict(self)


def rho(lam: float, mu: float) -> float:
    """Return the traffic intensity λ/μ validating the input domain."""
    if lam < 0:
        raise ValueError("Arrival rate lam must be non-negative.")
    if mu <= 0:
        raise ValueError("Service rate mu must be strictly positive.")
    return lam / mu


def mm1_theory(lam: float, mu: float) -> MM1Theory:
    """
    Compute steady-state M/M/1 metrics.

    Raises:
        ValueError: when ρ ≥ 1 (system unstable) or inputs are invalid.
    """
    r = rho(lam, mu)
    if r >= 1.0:
        raise ValueError("Unstable system: rho must be < 1 for M/M/1.")

    if lam == 0:
        return MM1Theory(rho=0.0, L=0.0, Lq=0.0, W=1.0 / mu, Wq=0.0)

    denom = 1.0 - r
    L = r / denom
    Lq = (r * r) / denom
    W = L / lam
    Wq = Lq / lam
    return MM1Theory(rho=r, L=L, Lq=Lq, W=W, Wq=Wq)


def relative_error(sim_value: float, reference_value: float) -> float:
    """Return |sim-ref| / ref guarding division by zero."""
    if reference_value == 0:
        return 0.0 if sim_value == 0 else float("inf")
    return abs(sim_value - reference_value) / abs(reference_value)


def traffic_rates(table: RoutingTable, lam: float) -> np.ndarray:
    """
    Solve the traffic equations λ = λ0·p0 + Pᵀ·λ.

    Returns the total arrival rate of every node (position i is node i+1).
    """
    n = table.node_count
    external = np.array([lam * table.probability(DISPATCHER, j) for j in range(1, n + 1)])
    P = np.array(
        [[table.probability(i, j) for j in range(1, n + 1)] for i in range(1, n + 1)]
    )
    try:
        return np.linalg.solve(np.eye(n) - P.T, external)
    except np.linalg.LinAlgError as exc:
        raise ConfigurationError("Routing has no exit: traffic equations are singular.") from exc


@dataclass(frozen=True)
class NetworkTheory:
    """Product-form steady state of an open network of exponential nodes."""

    lam: float
    rates: Tuple[float, ...]
    nodes: Tuple[MM1Theory, ...]

    @property
    def L(self) -> float:
        return float(sum(node.L for node in self.nodes))

    @property
    def W(self) -> float:
        """Mean time a job spends in the network (Little's law)."""
        return self.L / self.lam

    def node_wait(self, index: int) -> float:
        return self.nodes[index - 1].W

    def access_wait(
        self, table: RoutingTable, weighting: str = "uniform", relay: Optional[int] = None
    ) -> float:
        """Theoretical counterpart of ``WaitStatistic`` for the same topology."""
        statistic = WaitStatistic(table, relay, weighting)
        if statistic.relay is None:
            return self.W
        waits = [0.0] + [node.W for node in self.nodes]
        return access_wait(waits, [1] * len(waits), table, statistic.relay, weighting)


def network_theory(config: NetworkConfig) -> NetworkTheory:
    """
    Jackson-network metrics for ``config``.

    Raises:
        ConfigurationError: if some law is not exponential.
        ValueError: when a node is saturated.
    """
    if not isinstance(config.arrival, Exponential):
        raise ConfigurationError("Closed forms need exponential inter-arrival times.")
    services = []
    for index, node in enumerate(config.nodes, start=1):
        if not isinstance(node.service, Exponential):
            raise ConfigurationError(f"Node {index} does not have exponential service.")
        services.append(node.service.rate)
    lam = config.arrival.rate
    rates = traffic_rates(config.routing, lam)
    nodes = tuple(mm1_theory(float(r), mu) for r, mu in zip(rates, services))
    return NetworkTheory(lam=lam, rates=tuple(float(r) for r in rates), nodes=nodes)
