"""Routing table construction and threshold lookup."""

import pytest

from qnet import DISPATCHER, EXIT, ConfigurationError, RoutingTable, VariateSource, get_config
from qnet.variates import ROUTING_STREAM


@pytest.fixture
def five_nodes():
    return RoutingTable(
        5,
        [(1, 0.05), (2, 0.05), (3, 0.05), (4, 0.05), (5, 0.80)],
        {1: [(5, 1.0)], 2: [(5, 1.0)], 3: [(5, 1.0)], 4: [(5, 1.0)], 5: [(EXIT, 1.0)]},
    )


def test_thresholds_are_cumulative_and_end_at_one(five_nodes):
    thresholds = [t for _, t in five_nodes.row(DISPATCHER)]
    assert thresholds == pytest.approx([0.05, 0.10, 0.15, 0.20, 1.0])
    assert thresholds[-1] == 1.0
    assert all(a < b for a, b in zip(thresholds, thresholds[1:]))


def test_lookup_uses_half_open_intervals(five_nodes):
    assert five_nodes.lookup(DISPATCHER, 0.12) == 3
    assert five_nodes.lookup(DISPATCHER, 0.21) == 5
    assert five_nodes.lookup(DISPATCHER, 0.05) == 1
    assert five_nodes.lookup(DISPATCHER, 1.0) == 5


def test_zero_draw_goes_to_first_interval(five_nodes):
    assert five_nodes.lookup(DISPATCHER, 0.0) == 1


def test_probabilities_must_sum_to_one():
    with pytest.raises(ConfigurationError):
        RoutingTable(2, [(1, 0.5), (2, 0.4)], {1: [(EXIT, 1.0)], 2: [(EXIT, 1.0)]})
    with pytest.raises(ConfigurationError):
        RoutingTable(1, [(1, 1.0)], {1: [(EXIT, 0.7)]})


def test_invalid_destinations_are_rejected():
    with pytest.raises(ConfigurationError):
        RoutingTable(1, [(2, 1.0)], {1: [(EXIT, 1.0)]})
    with pytest.raises(ConfigurationError):
        RoutingTable(1, [(EXIT, 1.0)], {1: [(EXIT, 1.0)]})
    with pytest.raises(ConfigurationError):
        RoutingTable(2, [(1, 1.0)], {1: [(EXIT, 1.0)]})


def test_from_probabilities_adds_exit_for_leftover():
    table = RoutingTable.from_probabilities([0.3, 0.7], [[0.0, 0.4], [0.0, 0.0]])
    assert table.probability(1, 2) == pytest.approx(0.4)
    assert table.probability(1, EXIT) == pytest.approx(0.6)
    assert table.is_deterministic(2)
    assert table.exits(2)
    assert table.feeders(2) == [1]


def test_wifi_feeders(five_nodes):
    assert five_nodes.feeders(5) == [1, 2, 3, 4]
    assert five_nodes.feeders(1) == []


def test_routing_fidelity_over_many_draws():
    table = get_config("exp").routing
    source = VariateSource(2021)
    source.select_stream(ROUTING_STREAM)
    draws = 200_000
    counts = {node: 0 for node in range(1, 6)}
    for _ in range(draws):
        counts[table.lookup(DISPATCHER, source.uniform())] += 1
    for node in range(1, 6):
        expected = table.probability(DISPATCHER, node)
        assert abs(counts[node] / draws - expected) < 0.005
