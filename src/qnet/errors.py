"""Exception taxonomy for the network simulator."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Invalid model or estimator setup. Raised before any event is processed."""


class DegenerateStatistic(ArithmeticError):
    """A per-node average was requested over an empty count."""

    def __init__(self, metric: str, node: int | None = None):
        self.metric = metric
        self.node = node
        where = f" at node {node}" if node is not None else ""
        super().__init__(f"{metric}{where} is undefined: zero denominator.")


class CalendarExhaustion(RuntimeError):
    """The event calendar has no active slot left."""
