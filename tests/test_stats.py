"""Occupancy integration, derived metrics and interval estimates."""

import math

import pytest

from qnet import (
    EXIT,
    DegenerateStatistic,
    RoutingTable,
    get_config,
    interval_estimate,
    lag1_autocorrelation,
)
from qnet.errors import ConfigurationError
from qnet.state import SimulationState
from qnet.stats import (
    StatisticsCollector,
    WaitStatistic,
    access_wait,
    find_relay,
    network_report,
    network_wait,
)


def test_pre_event_integration_uses_counts_before_the_event():
    state = SimulationState.fresh([None, None])
    collector = StatisticsCollector(2)
    state.node(1).queue_length = 2
    state.clock.current = 1.0
    collector.before(state, 4.0)
    assert state.stats.nodes[1].area == pytest.approx(6.0)
    assert state.stats.nodes[2].area == 0.0
    assert collector.seal() == [0.0, pytest.approx(6.0), 0.0]
    assert collector.window == [0.0, 0.0, 0.0]


def test_post_event_integration_waits_for_the_new_counts():
    state = SimulationState.fresh([None])
    collector = StatisticsCollector(1, convention="post")
    state.node(1).queue_length = 1
    collector.before(state, 2.0)
    assert state.stats.nodes[1].area == 0.0
    state.node(1).queue_length = 3
    collector.after(state, 2.0)
    assert state.stats.nodes[1].area == pytest.approx(6.0)


def test_unknown_convention_is_a_configuration_error():
    with pytest.raises(ConfigurationError):
        StatisticsCollector(1, convention="mid")


def test_reports_turn_zero_counts_into_nan():
    state = SimulationState.fresh([None, None])
    state.clock.current = 10.0
    counters = state.stats.nodes[1]
    counters.served, counters.service, counters.area = 4, 2.0, 6.0
    report = network_report(state)
    first, second = report.nodes
    assert first.utilization == pytest.approx(0.2)
    assert first.avg_service == pytest.approx(0.5)
    assert first.avg_wait == pytest.approx(1.5)
    assert first.avg_delay == pytest.approx(1.0)
    assert first.share == pytest.approx(1.0)
    assert math.isnan(second.avg_wait)
    assert math.isnan(report.avg_wait)
    assert math.isnan(report.rejection_rate)


def test_access_wait_weightings():
    table = RoutingTable(
        3,
        [(1, 0.1), (2, 0.3), (3, 0.6)],
        {1: [(3, 1.0)], 2: [(3, 1.0)], 3: [(EXIT, 1.0)]},
    )
    areas = [0.0, 10.0, 40.0, 5.0]
    counts = [0, 5, 10, 10]
    assert find_relay(table) == 3
    # Feeder waits 2 and 4, relay wait 0.5.
    assert access_wait(areas, counts, table) == pytest.approx(3.0 + 0.5)
    assert access_wait(areas, counts, table, weighting="routing") == pytest.approx(
        0.25 * 2.0 + 0.75 * 4.0 + 0.5
    )


def test_equal_shares_make_weightings_agree():
    table = get_config("exp").routing
    areas = [0.0, 3.0, 5.0, 7.0, 9.0, 1.0]
    counts = [0, 1, 1, 1, 1, 2]
    assert access_wait(areas, counts, table, weighting="routing") == pytest.approx(
        access_wait(areas, counts, table)
    )


def test_access_wait_raises_on_unserved_node():
    table = get_config("exp").routing
    with pytest.raises(DegenerateStatistic) as info:
        access_wait([0.0, 1.0, 1.0, 0.0, 1.0, 1.0], [0, 1, 1, 0, 1, 1], table)
    assert info.value.node == 3


def test_relay_must_be_unambiguous():
    table = RoutingTable(2, [(1, 0.5), (2, 0.5)], {1: [(EXIT, 1.0)], 2: [(EXIT, 1.0)]})
    with pytest.raises(ConfigurationError):
        find_relay(table)
    assert find_relay(table, required=False) is None


def test_wait_statistic_falls_back_to_network_response():
    table = RoutingTable(2, [(1, 0.5), (2, 0.5)], {1: [(EXIT, 1.0)], 2: [(EXIT, 1.0)]})
    statistic = WaitStatistic(table)
    assert statistic.relay is None
    assert statistic.kind == "network"
    assert statistic([0.0, 6.0, 2.0], [0, 3, 1], 4) == pytest.approx(2.0)
    with pytest.raises(DegenerateStatistic):
        network_wait([0.0, 1.0, 1.0], 0)


def test_wait_statistic_uses_the_relay_when_there_is_one():
    table = get_config("exp").routing
    statistic = WaitStatistic(table, weighting="routing")
    assert statistic.relay == 5
    assert statistic.kind == "access"
    areas = [0.0, 3.0, 5.0, 7.0, 9.0, 1.0]
    counts = [0, 1, 1, 1, 1, 2]
    assert statistic(areas, counts, 2) == pytest.approx(access_wait(areas, counts, table))


@pytest.mark.parametrize("kwargs", [{"relay": 0}, {"relay": 6}, {"weighting": "median"}])
def test_wait_statistic_rejects_bad_settings(kwargs):
    with pytest.raises(ConfigurationError):
        WaitStatistic(get_config("exp").routing, **kwargs)


def test_interval_estimate_ignores_nan():
    estimate = interval_estimate([1.0, 2.0, 3.0, float("nan")])
    assert estimate.n == 3
    assert estimate.dropped == 1
    assert estimate.mean == pytest.approx(2.0)
    assert estimate.half_width == pytest.approx(1.96 * 1.0 / math.sqrt(3))
    assert estimate.lower < estimate.mean < estimate.upper


def test_interval_estimate_of_nothing_is_nan():
    estimate = interval_estimate([float("nan")])
    assert estimate.n == 0
    assert math.isnan(estimate.mean)


def test_lag1_autocorrelation_signs():
    assert lag1_autocorrelation([1, -1] * 20) < -0.9
    assert lag1_autocorrelation(list(range(40))) > 0.9
    assert math.isnan(lag1_autocorrelation([1.0, 2.0]))
