"""Network configuration bundled in validated, immutable records."""

from __future__ import annotations

import math
from dataclasses import dataclass, replace
from typing import List, Optional, Tuple

from .errors import ConfigurationError
from .routing import RoutingTable
from .variates import ROUTING_STREAM, Distribution


@dataclass(frozen=True)
class NodeConfig:
    """Service law, optional buffer limit and variate stream of one node."""

    service: Distribution
    capacity: Optional[int] = None
    stream: Optional[int] = None

    def __post_init__(self) -> None:
        if self.capacity is not None:
            if isinstance(self.capacity, bool) or not isinstance(self.capacity, int):
                raise ConfigurationError("Node capacity must be an integer.")
            if self.capacity <= 0:
                raise ConfigurationError("Node capacity must be strictly positive.")
        if self.stream is not None and self.stream < 0:
            raise ConfigurationError("Stream index must be non-negative.")


@dataclass(frozen=True)
class NetworkConfig:
    routing: RoutingTable
    arrival: Distribution
    nodes: Tuple[NodeConfig, ...]
    horizon: float = math.inf

    def __post_init__(self) -> None:
        if not isinstance(self.nodes, tuple):
            object.__setattr__(self, "nodes", tuple(self.nodes))
        if len(self.nodes) != self.routing.node_count:
            raise ConfigurationError(
                f"{len(self.nodes)} nodes configured but routing covers "
                f"{self.routing.node_count}."
            )
        if not self.horizon > 0:
            raise ConfigurationError("Simulation horizon must be positive.")

    @property
    def node_count(self) -> int:
        return len(self.nodes)

    @property
    def capacities(self) -> List[Optional[int]]:
        return [node.capacity for node in self.nodes]

    @property
    def blocking(self) -> bool:
        return any(node.capacity is not None for node in self.nodes)

    def stream_of(self, index: int) -> int:
        """Service stream of node ``index``; defaults to one stream per node."""
        stream = self.nodes[index - 1].stream
        return ROUTING_STREAM + index if stream is None else stream

    def with_horizon(self, horizon: float) -> "NetworkConfig":
        return replace(self, horizon=horizon)
