"""Transient study: replicated user wait across increasing horizons."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import List

import matplotlib.pyplot as plt
import pandas as pd
from tqdm import tqdm

from qnet import ConfigurationError, get_config, list_scenarios, run_replications


def parse_horizons(text: str) -> List[float]:
    values = []
    for chunk in text.split(","):
        chunk = chunk.strip()
        if not chunk:
            continue
        try:
            horizon = float(chunk)
        except ValueError as exc:
            raise argparse.ArgumentTypeError(f"Invalid horizon '{chunk}'.") from exc
        if horizon <= 0:
            raise argparse.ArgumentTypeError("Every horizon must be > 0.")
        values.append(horizon)
    if not values:
        raise argparse.ArgumentTypeError("Provide at least one horizon via --horizons.")
    return sorted(set(values))


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Sweep transient horizons with replications.")
    parser.add_argument(
        "--scenario",
        type=str,
        choices=list(list_scenarios()),
        default="transient",
        help="Named network configuration.",
    )
    parser.add_argument(
        "--horizons",
        type=str,
        default="105,210,410,820,1640,3280,6560,13120",
        help='Comma-separated horizons (e.g. "105,210,410").',
    )
    parser.add_argument("--capacity", type=int, help="Access-point capacity (blocking variant).")
    parser.add_argument("--seed", type=int, default=123456789, help="Base random seed.")
    parser.add_argument("--replications", type=int, default=100, help="Replications per horizon.")
    parser.add_argument(
        "--seeding",
        type=str,
        choices=["continue", "chain"],
        default="chain",
        help="Seed policy between replications.",
    )
    parser.add_argument(
        "--results-out",
        type=Path,
        default=Path("outputs/transient_results.csv"),
        help="CSV where per-replication results will be stored.",
    )
    parser.add_argument(
        "--summary-out",
        type=Path,
        default=Path("outputs/transient_summary.csv"),
        help="CSV with aggregated statistics per horizon.",
    )
    parser.add_argument(
        "--reports-dir",
        type=Path,
        default=Path("reports"),
        help="Directory where figures will be written.",
    )
    return parser.parse_args()


def summarize_by_horizon(df: pd.DataFrame) -> pd.DataFrame:
    rows = []
    for horizon, group in df.groupby("horizon"):
        finite = group.loc[~group["degenerate"], "estimate"]
        n = len(finite)
        std = float(finite.std(ddof=1)) if n > 1 else 0.0
        arrivals = int(group["arrivals"].sum())
        refused = int(group["refused"].sum())
        rows.append(
            {
                "horizon": float(horizon),
                "replications": len(group),
                "degenerate": int(group["degenerate"].sum()),
                "wait_mean": float(finite.mean()) if n else float("nan"),
                "wait_ci95": 1.96 * std / n**0.5 if n > 1 else 0.0,
                "refused": refused,
                "rejection_pct": 100.0 * refused / arrivals if arrivals else float("nan"),
                "in_network_mean": float(group["in_network"].mean()),
            }
        )
    return pd.DataFrame(rows).sort_values("horizon")


def plot_wait_vs_horizon(summary: pd.DataFrame, reports_dir: Path) -> None:
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.errorbar(
        summary["horizon"],
        summary["wait_mean"],
        yerr=summary["wait_ci95"],
        marker="o",
        capsize=4,
    )
    ax.set_xscale("log", base=2)
    ax.set_xlabel("Horizonte")
    ax.set_ylabel("Espera media del usuario")
    ax.set_title("Analisis transitorio (IC95)")
    fig.tight_layout()
    fig.savefig(reports_dir / "espera_vs_horizonte.png", dpi=150)
    plt.close(fig)


def plot_rejection(summary: pd.DataFrame, reports_dir: Path) -> None:
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(summary["horizon"], summary["rejection_pct"], marker="s")
    ax.set_xscale("log", base=2)
    ax.set_xlabel("Horizonte")
    ax.set_ylabel("Rechazados (%)")
    ax.set_title("Tasa de rechazo vs. horizonte")
    fig.tight_layout()
    fig.savefig(reports_dir / "rechazo_vs_horizonte.png", dpi=150)
    plt.close(fig)


def main() -> None:
    args = parse_args()
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    horizons = parse_horizons(args.horizons)
    try:
        config = get_config(args.scenario, capacity=args.capacity)
    except ConfigurationError as exc:
        raise SystemExit(f"Configuracion invalida: {exc}") from exc

    all_results = []
    for horizon in horizons:
        result = run_replications(
            config,
            replications=args.replications,
            horizon=horizon,
            seed=args.seed,
            seeding=args.seeding,
            progress=lambda it, h=horizon: tqdm(it, total=args.replications, desc=f"T={h:g}", unit="rep"),
        )
        all_results.extend(rep.as_dict() for rep in result.replications)

    if not all_results:
        raise SystemExit("No se generaron resultados; revise los parametros.")

    args.results_out.parent.mkdir(parents=True, exist_ok=True)
    args.summary_out.parent.mkdir(parents=True, exist_ok=True)

    results_df = pd.DataFrame(all_results)
    results_df.to_csv(args.results_out, index=False)

    summary_df = summarize_by_horizon(results_df)
    summary_df.to_csv(args.summary_out, index=False)

    args.reports_dir.mkdir(parents=True, exist_ok=True)
    plot_wait_vs_horizon(summary_df, args.reports_dir)
    if config.blocking:
        plot_rejection(summary_df, args.reports_dir)

    print(f"Resultados por replicacion: {args.results_out.resolve()}")
    print(f"Resumen por horizonte: {args.summary_out.resolve()}")
    print(f"Graficos guardados en {args.reports_dir.resolve()}")


if __name__ == "__main__":
    main()
