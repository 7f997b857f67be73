"""Command line entry point, driven through ``sys.argv``."""

import sys

import pandas as pd
import pytest

import run_sim


def run_cli(monkeypatch, *argv):
    monkeypatch.setattr(sys, "argv", ["run_sim", *argv])
    run_sim.main()


def test_single_mode_with_simpy_engine(monkeypatch, tmp_path, capsys):
    out = tmp_path / "simpy.csv"
    run_cli(
        monkeypatch,
        "--mode", "single", "--engine", "simpy", "--scenario", "mm1",
        "--horizon", "200", "--seed", "3", "--outputs", str(out),
    )
    df = pd.read_csv(out)
    assert list(df["index"]) == [1]
    assert df["served"].iloc[0] > 0
    assert "Modelo SimPy" in capsys.readouterr().out


def test_single_mode_labels_the_access_statistic(monkeypatch, tmp_path, capsys):
    out = tmp_path / "kernel.csv"
    run_cli(
        monkeypatch,
        "--mode", "single", "--scenario", "mm1", "--horizon", "200", "--outputs", str(out),
    )
    assert len(pd.read_csv(out)) == 1
    assert "Espera media de los usuarios" in capsys.readouterr().out


def test_uneven_batches_exit_with_a_message(monkeypatch, tmp_path):
    with pytest.raises(SystemExit, match="Configuracion invalida"):
        run_cli(
            monkeypatch,
            "--mode", "batch", "--scenario", "mm1", "--departures", "105",
            "--batches", "10", "--outputs", str(tmp_path / "b.csv"),
        )
