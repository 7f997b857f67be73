"""Pre-defined network configurations of the campus Wi-Fi model."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterable, Optional

from .config import NetworkConfig, NodeConfig
from .errors import ConfigurationError
from .routing import EXIT, RoutingTable
from .variates import BoundedPareto, Distribution, Exponential

ACCESS_POINTS = 4
AP_SHARE = 1.0 / 20
# Services of the access points share one stream, the switch has its own.
AP_STREAM = 2
SWITCH_STREAM = 3

MU_AP = 0.332800
MU_SWITCH = 46.137344
AP_BOUNDS = (0.3756009615, 8.756197416)
SWITCH_BOUNDS = (0.002709302035, 0.0631606037)


def wifi_network(
    lam: float,
    ap_service: Distribution,
    switch_service: Distribution,
    horizon: float = math.inf,
    capacity: Optional[int] = None,
    access_points: int = ACCESS_POINTS,
    ap_share: float = AP_SHARE,
) -> NetworkConfig:
    """
    Access points 1..n forward every job to the switch (node n+1), which
    also takes the exogenous traffic the access points do not receive.
    ``capacity`` limits the access points only.
    """
    if access_points * ap_share >= 1.0:
        raise ConfigurationError("Access points cannot take all the exogenous traffic.")
    switch = access_points + 1
    dispatcher = [(ap, ap_share) for ap in range(1, switch)]
    dispatcher.append((switch, 1.0 - access_points * ap_share))
    routes = {ap: [(switch, 1.0)] for ap in range(1, switch)}
    routes[switch] = [(EXIT, 1.0)]
    table = RoutingTable(switch, dispatcher, routes)

    nodes = [NodeConfig(ap_service, capacity=capacity, stream=AP_STREAM)] * access_points
    nodes.append(NodeConfig(switch_service, stream=SWITCH_STREAM))
    return NetworkConfig(
        routing=table,
        arrival=Exponential.from_rate(lam),
        nodes=tuple(nodes),
        horizon=horizon,
    )


def mm1_network(lam: float, mu: float, horizon: float = math.inf) -> NetworkConfig:
    """A single exponential node: the M/M/1 queue as a one-node network."""
    table = RoutingTable(1, [(1, 1.0)], {1: [(EXIT, 1.0)]})
    return NetworkConfig(
        routing=table,
        arrival=Exponential.from_rate(lam),
        nodes=(NodeConfig(Exponential.from_rate(mu)),),
        horizon=horizon,
    )


@dataclass(frozen=True)
class Scenario:
    name: str
    lam: float
    alpha: Optional[float]  # None: exponential service
    horizon: float
    capacity: Optional[int] = None

    def ap_service(self) -> Distribution:
        if self.alpha is None:
            return Exponential.from_rate(MU_AP)
        return BoundedPareto(self.alpha, *AP_BOUNDS)

    def switch_service(self) -> Distribution:
        if self.alpha is None:
            return Exponential.from_rate(MU_SWITCH)
        return BoundedPareto(self.alpha, *SWITCH_BOUNDS)


SCENARIOS: Dict[str, Scenario] = {
    "exp": Scenario(name="exp", lam=5.0, alpha=None, horizon=30_000.0),
    "bp": Scenario(name="bp", lam=5.0, alpha=0.5, horizon=30_000.0),
    "steady": Scenario(name="steady", lam=5.0, alpha=1.5, horizon=math.inf),
    "transient": Scenario(name="transient", lam=10.0, alpha=0.5, horizon=105.0),
    "loss": Scenario(name="loss", lam=10.0, alpha=0.5, horizon=410.0, capacity=10),
}


def list_scenarios() -> Iterable[str]:
    """Return available scenario identifiers."""
    return sorted(SCENARIOS.keys())


def get_config(
    name: str,
    horizon: Optional[float] = None,
    capacity: Optional[int] = None,
) -> NetworkConfig:
    """Return the `NetworkConfig` of a named scenario, optionally overridden."""
    key = name.lower()
    if key not in SCENARIOS:
        raise KeyError(f"Scenario '{name}' is not defined. Available: {list(list_scenarios())}")
    scenario = SCENARIOS[key]
    return wifi_network(
        lam=scenario.lam,
        ap_service=scenario.ap_service(),
        switch_service=scenario.switch_service(),
        horizon=scenario.horizon if horizon is None else horizon,
        capacity=scenario.capacity if capacity is None else capacity,
    )
