"""Independent replications for transient analysis, with and without loss."""

import math

import pytest

from qnet import (
    ConfigurationError,
    Simulation,
    VariateSource,
    get_config,
    mm1_network,
    run_replications,
)
from qnet.replications import replicate
from qnet.routing import DISPATCHER

from conftest import InvariantTrace


def test_one_estimate_per_replication():
    config = get_config("transient")
    result = run_replications(config, replications=8, horizon=105.0, seed=123456789)
    assert len(result.replications) == 8
    assert [r.index for r in result.replications] == list(range(8))
    assert all(r.horizon == 105.0 for r in result.replications)
    assert len(set(result.estimates)) == 8
    assert result.refused == 0


def test_replications_are_reproducible():
    config = get_config("transient")
    a = run_replications(config, replications=4, horizon=50.0, seed=7, seeding="chain")
    b = run_replications(config, replications=4, horizon=50.0, seed=7, seeding="chain")
    assert a.estimates == b.estimates
    c = run_replications(config, replications=4, horizon=50.0, seed=7)
    d = run_replications(config, replications=4, horizon=50.0, seed=7)
    assert c.estimates == d.estimates


def test_chained_replication_is_reproducible_from_its_seed():
    config = get_config("transient")
    result = run_replications(config, replications=3, horizon=60.0, seed=99, seeding="chain")
    third = result.replications[2]
    assert third.seed != 99
    again = replicate(config, 60.0, VariateSource(third.seed), index=2, seed=third.seed)
    assert again.estimate == third.estimate
    assert again.arrivals == third.arrivals


def test_each_replication_starts_empty():
    config = get_config("transient")
    result = run_replications(config, replications=5, horizon=30.0, seed=1)
    for rep in result.replications:
        # Roughly λ·T arrivals each; nothing carried over from earlier replications.
        assert rep.arrivals < 600
        assert rep.arrivals == rep.departures + rep.refused + rep.in_network


def test_run_stops_at_horizon_without_draining():
    config = mm1_network(5.0, 1.0, horizon=40.0)
    sim = Simulation(config, seed=3)
    state = sim.run_until(40.0)
    assert state.calendar.time(DISPATCHER) >= 40.0
    assert state.stats.last_arrival <= 40.0
    # Overloaded node: the backlog is left in place, not drained.
    assert state.in_network() > 0


def test_short_horizon_gives_flagged_nan_not_a_crash():
    config = get_config("transient")
    result = run_replications(config, replications=10, horizon=0.5, seed=5)
    assert len(result.replications) == 10
    assert result.degenerate > 0
    flagged = [r for r in result.replications if r.degenerate]
    assert all(math.isnan(r.estimate) for r in flagged)
    assert result.interval().dropped == result.degenerate


def test_loss_variant_counts_refusals_and_respects_capacity():
    config = get_config("loss")
    result = run_replications(config, replications=10, horizon=410.0, seed=123456789)
    assert result.refused > 0
    assert 0.0 < result.rejection_rate < 100.0
    for rep in result.replications:
        assert rep.arrivals == rep.departures + rep.refused + rep.in_network


def test_capacity_bound_holds_at_every_event():
    config = get_config("loss", capacity=3).with_horizon(300.0)
    trace = InvariantTrace()
    sim = Simulation(config, seed=8, trace=trace)
    trace.sim = sim
    sim.run_until(300.0)
    assert sim.state.stats.refused > 0
    for ap in range(1, 5):
        assert sim.state.node(ap).queue_length <= 4


@pytest.mark.parametrize(
    "kwargs",
    [
        {"replications": 0, "horizon": 10.0},
        {"replications": 2, "horizon": 0.0},
        {"replications": 2, "horizon": math.inf},
        {"replications": 2, "horizon": 10.0, "seeding": "fresh"},
        {"replications": 2, "horizon": 10.0, "seed": -3},
    ],
)
def test_invalid_setup_raises(kwargs):
    with pytest.raises(ConfigurationError):
        run_replications(get_config("transient"), **kwargs)
