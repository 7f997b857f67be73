"""Command line interface to run the queueing-network simulations."""

from __future__ import annotations

import argparse
import logging
import math
from pathlib import Path
from typing import Optional

import pandas as pd
from tqdm import tqdm

from qnet import (
    ConfigurationError,
    NetworkConfig,
    get_config,
    list_scenarios,
    mm1_network,
    network_theory,
    relative_error,
    run_batch_means,
    run_network,
    run_reference,
    run_replications,
)


WAIT_LABELS = {
    "access": "Espera media de los usuarios",
    "network": "Tiempo medio en la red",
}


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Next-event simulation of the campus Wi-Fi queueing network."
    )
    parser.add_argument(
        "--mode",
        type=str,
        choices=["single", "batch", "transient"],
        default="single",
        help="single run, batch means (steady state) or replications (transient).",
    )
    parser.add_argument(
        "--scenario",
        type=str,
        choices=list(list_scenarios()) + ["mm1"],
        default="exp",
        help="Named network configuration.",
    )
    parser.add_argument("--lam", type=float, default=0.5, help="Arrival rate for --scenario mm1.")
    parser.add_argument("--mu", type=float, default=1.0, help="Service rate for --scenario mm1.")
    parser.add_argument("--seed", type=int, default=123456789, help="Base random seed.")
    parser.add_argument("--horizon", type=float, help="Close-the-door time (overrides the scenario).")
    parser.add_argument("--capacity", type=int, help="Access-point capacity (blocking variant).")
    parser.add_argument("--departures", type=int, default=400_000, help="Batch means: total departures N.")
    parser.add_argument("--batches", type=int, default=64, help="Batch means: number of batches K.")
    parser.add_argument("--discard", type=int, default=0, help="Batch means: leading batches to drop.")
    parser.add_argument("--replications", type=int, default=100, help="Transient: number of replications.")
    parser.add_argument(
        "--seeding",
        type=str,
        choices=["continue", "chain"],
        default="continue",
        help="Transient: keep streams running or replant a derived seed per replication.",
    )
    parser.add_argument(
        "--weighting",
        type=str,
        choices=["uniform", "routing"],
        default="uniform",
        help="How access-point waits are combined into the user wait.",
    )
    parser.add_argument(
        "--engine",
        type=str,
        choices=["kernel", "simpy"],
        default="kernel",
        help="Single mode: next-event kernel or the SimPy reference model.",
    )
    parser.add_argument(
        "--relay",
        type=int,
        help="Node that collects the access traffic (inferred when omitted).",
    )
    parser.add_argument(
        "--convention",
        type=str,
        choices=["pre", "post"],
        default="pre",
        help="Occupancy integration with pre- or post-event counts (single mode).",
    )
    parser.add_argument(
        "--outputs",
        type=Path,
        default=Path("outputs/results.csv"),
        help="Path where the CSV results will be written.",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    return parser.parse_args()


def resolve_config(args: argparse.Namespace) -> NetworkConfig:
    if args.scenario == "mm1":
        horizon = args.horizon if args.horizon is not None else 50_000.0
        return mm1_network(args.lam, args.mu, horizon=horizon)
    return get_config(args.scenario, horizon=args.horizon, capacity=args.capacity)


def ensure_parent(path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)


def print_theory(
    config: NetworkConfig, sim_wait: float, weighting: str, relay: Optional[int] = None
) -> None:
    try:
        theory = network_theory(config)
        expected = theory.access_wait(config.routing, weighting, relay)
    except (ConfigurationError, ValueError):
        return
    print("\nTeoria (red de Jackson):")
    for i, node in enumerate(theory.nodes, start=1):
        print(f"  nodo {i}: rho={node.rho:>9.6f}  W={node.W:>10.6f}  Wq={node.Wq:>10.6f}")
    print(f"  espera usuario: {expected:>10.6f}")
    print(f"  error relativo: {relative_error(sim_wait, expected) * 100:>9.3f}%")


def main_single(args: argparse.Namespace, config: NetworkConfig) -> None:
    if math.isinf(config.horizon):
        raise SystemExit("El modo single necesita un horizonte finito (--horizon).")
    result = run_network(
        config,
        seed=args.seed,
        convention=args.convention,
        weighting=args.weighting,
        relay=args.relay,
    )
    report = result.report

    df = pd.DataFrame([node.as_dict() for node in report.nodes])
    ensure_parent(args.outputs)
    df.to_csv(args.outputs, index=False)

    print(f"\nEstadisticas (calculadas con {report.departures} trabajos):")
    print("1) Globales")
    print(f"  tiempo medio entre llegadas = {report.avg_interarrival:>10.6f}")
    print(f"  espera media ............. = {report.avg_wait:>10.6f}")
    print(f"  trabajos medios en la red  = {report.avg_in_network:>10.6f}")
    print(f"  retardo medio ............ = {report.avg_delay:>10.6f}")
    print(f"  trabajos medios en cola .. = {report.avg_in_queue:>10.6f}")
    if config.blocking:
        print(f"  rechazados ............... = {report.refused} ({report.rejection_rate:.2f}%)")

    print("\n2) Por nodo")
    print("  nodo   utilizacion   servicio      fraccion      espera        retardo")
    for node in report.nodes:
        print(
            f"  {node.index:>4} {node.utilization:>13.6f} {node.avg_service:>13.6f} "
            f"{node.share:>13.6f} {node.avg_wait:>13.6f} {node.avg_delay:>13.6f}"
        )
    label = WAIT_LABELS[result.statistic]
    print(f"\n  {label}: {result.access_wait:>13.6f}")
    print_theory(config, result.access_wait, args.weighting, args.relay)
    print(f"\nResultados guardados en {args.outputs.resolve()}")


def main_reference(args: argparse.Namespace, config: NetworkConfig) -> None:
    if math.isinf(config.horizon):
        raise SystemExit("El modelo SimPy necesita un horizonte finito (--horizon).")
    result = run_reference(config, seed=args.seed)

    df = pd.DataFrame(
        {
            "index": range(1, config.node_count + 1),
            "served": result.served[1:],
            "area": result.area[1:],
        }
    )
    ensure_parent(args.outputs)
    df.to_csv(args.outputs, index=False)

    print(f"\nModelo SimPy (calculado con {result.departures} trabajos):")
    print(f"  llegadas = {result.arrivals}  salidas = {result.departures}  rechazados = {result.refused}")
    print("  nodo   servidos      espera")
    for index in range(1, config.node_count + 1):
        served = result.served[index]
        wait = result.area[index] / served if served else math.nan
        print(f"  {index:>4} {served:>10} {wait:>11.6f}")
    total = sum(result.area[1:])
    in_network = total / result.departures if result.departures else math.nan
    print(f"\n  Tiempo medio en la red: {in_network:>13.6f}")
    print(f"\nResultados guardados en {args.outputs.resolve()}")


def main_batch(args: argparse.Namespace, config: NetworkConfig) -> None:
    with tqdm(total=args.batches, desc="Batches", unit="batch") as bar:
        result = run_batch_means(
            config,
            departures=args.departures,
            batches=args.batches,
            seed=args.seed,
            discard=args.discard,
            weighting=args.weighting,
            relay=args.relay,
            progress=bar.update,
        )

    df = pd.DataFrame([batch.as_dict() for batch in result.batches])
    ensure_parent(args.outputs)
    df.to_csv(args.outputs, index=False)

    for value in result.estimates:
        print(f"{value:f}")

    interval = result.interval()
    print(f"\nTamano de batch (B): {result.batch_size}")
    print(f"Batches usados     : {interval.n} (degenerados: {result.degenerate})")
    print(f"Media +/- IC95     : {interval.mean:.6f} +/- {interval.half_width:.6f}")
    print(f"Autocorrelacion r1 : {result.lag1:.4f}")
    print(f"\nResultados guardados en {args.outputs.resolve()}")


def main_transient(args: argparse.Namespace, config: NetworkConfig) -> None:
    horizon = args.horizon if args.horizon is not None else config.horizon
    result = run_replications(
        config,
        replications=args.replications,
        horizon=horizon,
        seed=args.seed,
        seeding=args.seeding,
        weighting=args.weighting,
        relay=args.relay,
        progress=lambda it: tqdm(it, total=args.replications, desc="Simulating", unit="rep"),
    )

    df = pd.DataFrame([rep.as_dict() for rep in result.replications])
    ensure_parent(args.outputs)
    df.to_csv(args.outputs, index=False)

    for value in result.estimates:
        print(f"{value:f}")

    interval = result.interval()
    print(f"\nHorizonte          : {horizon}")
    print(f"Replicas usadas    : {interval.n} (degeneradas: {result.degenerate})")
    print(f"Media +/- IC95     : {interval.mean:.6f} +/- {interval.half_width:.6f}")
    if config.blocking:
        print(f"Rechazados         : {result.refused} - {result.rejection_rate:4.2f} %")
    print(f"\nResultados guardados en {args.outputs.resolve()}")


def main() -> None:
    args = parse_args()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        config = resolve_config(args)
        if args.mode == "single" and args.engine == "simpy":
            main_reference(args, config)
        elif args.mode == "single":
            main_single(args, config)
        elif args.mode == "batch":
            main_batch(args, config)
        else:
            main_transient(args, config)
    except ConfigurationError as exc:
        raise SystemExit(f"Configuracion invalida: {exc}") from exc


if __name__ == "__main__":
    main()
