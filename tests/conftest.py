"""Shared fixtures: a small probabilistic network and an invariant checker."""

import pytest

from qnet import EXIT, Exponential, NetworkConfig, NodeConfig, RoutingTable
from qnet.calendar import INFINITE
from qnet.state import NodeStatus


def make_small_network(horizon=2_000.0, capacity=None):
    # 1 -> {2, 3}; 3 -> {2, exit}; 2 -> exit
    table = RoutingTable(
        3,
        [(1, 0.5), (2, 0.2), (3, 0.3)],
        {
            1: [(2, 0.5), (3, 0.5)],
            2: [(EXIT, 1.0)],
            3: [(2, 0.3), (EXIT, 0.7)],
        },
    )
    nodes = (
        NodeConfig(Exponential(mean=0.6), capacity=capacity),
        NodeConfig(Exponential(mean=0.4)),
        NodeConfig(Exponential(mean=0.8)),
    )
    return NetworkConfig(table, Exponential(mean=1.0), nodes, horizon=horizon)


@pytest.fixture
def small_network():
    return make_small_network()


def check_invariants(state):
    stats = state.stats
    assert stats.arrivals == stats.departures + stats.refused + state.in_network()
    for node in state.nodes:
        event = state.calendar.events[node.index]
        assert node.queue_length >= 0
        assert (node.status is NodeStatus.BUSY) == (node.queue_length > 0) == event.active
        assert event.active == (event.time != INFINITE)
        if node.capacity is not None:
            assert node.queue_length <= node.capacity + 1


class InvariantTrace:
    """Trace hook that validates the state after every event."""

    def __init__(self):
        self.sim = None
        self.events = []

    def __call__(self, time, index):
        self.events.append((time, index))
        if self.sim is not None:
            check_invariants(self.sim.state)


@pytest.fixture
def invariant_trace():
    return InvariantTrace()
