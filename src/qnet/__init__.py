"""Next-event simulation of queueing networks with batch-means and transient estimators."""

from .batch_means import Batch, BatchMeansResult, run_batch_means
from .calendar import INFINITE, EventCalendar, HeapEventCalendar
from .config import NetworkConfig, NodeConfig
from .errors import CalendarExhaustion, ConfigurationError, DegenerateStatistic
from .kernel import Simulation, SingleRunResult, run_network
from .metrics import MM1Theory, NetworkTheory, mm1_theory, network_theory, relative_error, rho
from .reference import ReferenceResult, run_reference
from .replications import Replication, TransientResult, run_replications
from .routing import DISPATCHER, EXIT, RoutingTable
from .scenarios import Scenario, get_config, list_scenarios, mm1_network, wifi_network
from .stats import IntervalEstimate, WaitStatistic, interval_estimate, lag1_autocorrelation
from .variates import BoundedPareto, Exponential, VariateSource

__all__ = [
    "Batch",
    "BatchMeansResult",
    "BoundedPareto",
    "CalendarExhaustion",
    "ConfigurationError",
    "DISPATCHER",
    "DegenerateStatistic",
    "EXIT",
    "EventCalendar",
    "Exponential",
    "HeapEventCalendar",
    "INFINITE",
    "IntervalEstimate",
    "MM1Theory",
    "NetworkConfig",
    "NetworkTheory",
    "NodeConfig",
    "ReferenceResult",
    "Replication",
    "RoutingTable",
    "Scenario",
    "Simulation",
    "SingleRunResult",
    "TransientResult",
    "VariateSource",
    "WaitStatistic",
    "get_config",
    "interval_estimate",
    "lag1_autocorrelation",
    "list_scenarios",
    "mm1_network",
    "mm1_theory",
    "network_theory",
    "relative_error",
    "rho",
    "run_batch_means",
    "run_network",
    "run_reference",
    "run_replications",
    "wifi_network",
]
