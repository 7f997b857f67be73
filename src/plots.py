"""Utility to generate figures from batch-means and replication outputs."""

from __future__ import annotations

import argparse
import math
from pathlib import Path

import matplotlib.pyplot as plt
import pandas as pd


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate plots from simulation results.")
    parser.add_argument(
        "--results",
        type=Path,
        default=Path("outputs/results.csv"),
        help="CSV produced by src.run_sim in batch or transient mode.",
    )
    parser.add_argument(
        "--reports-dir",
        type=Path,
        default=Path("reports"),
        help="Directory where PNG files will be saved.",
    )
    return parser.parse_args()


def load_results(path: Path) -> pd.DataFrame:
    if not path.exists():
        raise FileNotFoundError(f"Results file not found: {path}")
    df = pd.read_csv(path)
    if df.empty:
        raise ValueError("Results file is empty. Run the simulation first.")
    if "estimate" not in df.columns:
        raise ValueError("Results file has no 'estimate' column (single-run output?).")
    return df


def confidence_band(series: pd.Series) -> tuple[float, float]:
    finite = series.dropna()
    n = len(finite)
    mean = float(finite.mean()) if n else float("nan")
    half = 1.96 * float(finite.std(ddof=1)) / math.sqrt(n) if n > 1 else 0.0
    return mean, half


def plot_histogram(series: pd.Series, title: str, xlabel: str, out: Path) -> None:
    fig, ax = plt.subplots(figsize=(6, 4))
    data = series.dropna()
    bins = min(20, max(5, len(data)))
    ax.hist(data, bins=bins, color="#4c72b0", alpha=0.85, edgecolor="white")
    ax.set_title(title)
    ax.set_xlabel(xlabel)
    ax.set_ylabel("Frecuencia")
    fig.tight_layout()
    fig.savefig(out, dpi=150)
    plt.close(fig)


def plot_series(series: pd.Series, xlabel: str, ylabel: str, out: Path) -> None:
    mean, half = confidence_band(series)
    fig, ax = plt.subplots(figsize=(8, 4))
    ax.plot(series.index + 1, series.values, marker="o")
    ax.axhline(mean, color="black", linestyle="--", label="Media")
    if half > 0:
        ax.axhspan(mean - half, mean + half, color="gray", alpha=0.25, label="IC95")
    ax.set_xlabel(xlabel)
    ax.set_ylabel(ylabel)
    ax.set_title(f"{ylabel} por {xlabel.lower()}")
    ax.legend()
    fig.tight_layout()
    fig.savefig(out, dpi=150)
    plt.close(fig)


def main() -> None:
    args = parse_args()
    df = load_results(args.results)
    label = "Batch" if "batch" in df.columns else "Replicacion"

    args.reports_dir.mkdir(parents=True, exist_ok=True)
    plot_histogram(
        df["estimate"],
        "Distribucion de la espera del usuario",
        "Espera media",
        args.reports_dir / "hist_espera.png",
    )
    plot_series(df["estimate"], label, "Espera media", args.reports_dir / "serie_espera.png")

    print(f"Figuras guardadas en {args.reports_dir.resolve()}")


if __name__ == "__main__":
    main()
