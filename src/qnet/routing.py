"""Row-stochastic routing with cumulative-threshold lookup."""

from __future__ import annotations

import math
from bisect import bisect_left
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from .errors import ConfigurationError

DISPATCHER = 0
# On a node row, destination 0 means the job leaves the network.
EXIT = 0

_TOLERANCE = 1e-9

Row = Tuple[Tuple[int, float], ...]


def _cumulate(source: int, pairs: Iterable[Tuple[int, float]]) -> Row:
    row: List[Tuple[int, float]] = []
    total = 0.0
    for destination, probability in pairs:
        if probability < 0:
            raise ConfigurationError(f"Negative routing probability from source {source}.")
        if probability == 0:
            continue
        total += probability
        row.append((int(destination), total))
    if not row or not math.isclose(total, 1.0, rel_tol=0.0, abs_tol=_TOLERANCE):
        raise ConfigurationError(
            f"Routing probabilities from source {source} sum to {total}, expected 1."
        )
    last_destination, _ = row[-1]
    row[-1] = (last_destination, 1.0)
    return tuple(row)


class RoutingTable:
    """
    Destination distribution for the dispatcher and for every node.

    Each source holds ``(destination, cumulative)`` pairs with strictly
    increasing thresholds ending at exactly 1.0. A uniform draw ``u`` selects
    the first destination whose threshold satisfies ``u <= threshold``, i.e.
    the half-open interval ``(previous, threshold]``; ``u == 0`` falls in the
    first interval.
    """

    def __init__(
        self,
        node_count: int,
        dispatcher: Sequence[Tuple[int, float]],
        nodes: Mapping[int, Sequence[Tuple[int, float]]],
    ):
        if node_count < 1:
            raise ConfigurationError("A network needs at least one node.")
        self.node_count = node_count
        self._rows: Dict[int, Row] = {DISPATCHER: _cumulate(DISPATCHER, dispatcher)}
        for index in range(1, node_count + 1):
            if index not in nodes:
                raise ConfigurationError(f"No departure routing for node {index}.")
            self._rows[index] = _cumulate(index, nodes[index])
        extra = set(nodes) - set(range(1, node_count + 1))
        if extra:
            raise ConfigurationError(f"Routing given for unknown nodes {sorted(extra)}.")
        for source, row in self._rows.items():
            for destination, _ in row:
                if destination < 0 or destination > node_count:
                    raise ConfigurationError(
                        f"Source {source} routes to unknown node {destination}."
                    )
                if source == DISPATCHER and destination == EXIT:
                    raise ConfigurationError("The dispatcher cannot route to the exit.")
        self._thresholds = {
            source: [threshold for _, threshold in row] for source, row in self._rows.items()
        }

    @classmethod
    def from_probabilities(
        cls,
        dispatcher: Sequence[float],
        matrix: Sequence[Sequence[float]],
    ) -> "RoutingTable":
        """
        Build a table from plain probability vectors.

        ``dispatcher[j]`` is the share of exogenous jobs sent to node ``j+1``;
        ``matrix[i][j]`` is the probability that a job leaving node ``i+1``
        moves to node ``j+1``. Whatever a row leaves unassigned exits.
        """
        node_count = len(dispatcher)
        if len(matrix) != node_count:
            raise ConfigurationError("Routing matrix must have one row per node.")
        nodes = {}
        for i, row in enumerate(matrix, start=1):
            if len(row) != node_count:
                raise ConfigurationError(f"Row {i} of the routing matrix has the wrong width.")
            pairs = [(j, p) for j, p in enumerate(row, start=1)]
            leftover = 1.0 - sum(row)
            if leftover > _TOLERANCE:
                pairs.append((EXIT, leftover))
            nodes[i] = pairs
        return cls(node_count, [(j, p) for j, p in enumerate(dispatcher, start=1)], nodes)

    def row(self, source: int) -> Row:
        return self._rows[source]

    def is_deterministic(self, source: int) -> bool:
        return len(self._rows[source]) == 1

    def lookup(self, source: int, u: float) -> int:
        """Classify ``u`` against the thresholds of ``source``."""
        row = self._rows[source]
        position = bisect_left(self._thresholds[source], u)
        if position >= len(row):
            position = len(row) - 1
        return row[position][0]

    def probability(self, source: int, destination: int) -> float:
        previous = 0.0
        for dest, threshold in self._rows[source]:
            if dest == destination:
                return threshold - previous
            previous = threshold
        return 0.0

    def exits(self, source: int) -> bool:
        """True when some job leaving ``source`` leaves the network."""
        return any(dest == EXIT for dest, _ in self._rows[source])

    def feeders(self, destination: int) -> List[int]:
        """Nodes whose departures can be routed to ``destination``."""
        return [
            source
            for source in range(1, self.node_count + 1)
            if source != destination and self.probability(source, destination) > 0
        ]
