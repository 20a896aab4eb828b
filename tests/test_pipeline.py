import importlib.util
from pathlib import Path

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd
import pytest

from drcompare import (
    DoseResponseResult,
    FitConfig,
    FitWarning,
    WeightingError,
    goodness_of_fit,
    run_dose_response,
)
from drcompare.plotting import plot_dose_response, plot_goodness_of_fit

from conftest import FOUR_DOSES

SCRIPTS_DIR = Path(__file__).resolve().parents[1] / "scripts"


def _load_script(name):
    spec = importlib.util.spec_from_file_location(name, SCRIPTS_DIR / f"{name}.py")
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def test_run_dose_response_wires_every_stage(shifted_table):
    result = run_dose_response(shifted_table)

    assert isinstance(result, DoseResponseResult)
    assert len(result.observations) == 8 * 6
    assert set(result.condition_max["condition"]) == {"C", "E"}
    assert "norm_response" in result.normalized.columns
    assert len(result.aggregated) == 16
    assert result.model.conditions == ("C", "E")

    contrasts = result.contrasts
    assert len(contrasts) == 1
    row = contrasts.iloc[0]
    assert (row["condition_a"], row["condition_b"]) == ("C", "E")
    assert row["p_value"] < 0.05


def test_fit_on_replicates_uses_every_observation(shifted_table):
    means = run_dose_response(shifted_table)
    reps = run_dose_response(shifted_table, fit_on="replicates")

    assert reps.model.n_obs == len(reps.normalized)
    assert reps.model.dof > means.model.dof
    np.testing.assert_allclose(
        reps.model.coefficients()["ec50"], means.model.coefficients()["ec50"], rtol=0.05
    )


def test_fit_on_replicates_cannot_weight_by_sem(shifted_table):
    with pytest.raises(WeightingError):
        run_dose_response(
            shifted_table,
            fit_config=FitConfig(weighting="inverse_variance"),
            fit_on="replicates",
        )


def test_four_dose_shift_is_significant_on_replicates(four_dose_shifted_table):
    result = run_dose_response(four_dose_shifted_table, fit_on="replicates")

    assert len(result.observations) == len(FOUR_DOSES) * 6
    assert result.model.dof == 24 - 8
    row = result.contrasts.iloc[0]
    assert row["estimate"] < 0
    assert row["p_value"] < 0.05


def test_four_dose_identical_curves_are_not_significant(four_dose_identical_table):
    result = run_dose_response(four_dose_identical_table, fit_on="replicates")

    row = result.contrasts.iloc[0]
    assert row["estimate"] == pytest.approx(0.0, abs=1e-3)
    assert row["p_value"] > 0.05


def test_four_dose_means_leave_no_residual_dof(four_dose_shifted_table):
    with pytest.warns(FitWarning):
        result = run_dose_response(four_dose_shifted_table)

    assert result.model.dof == 0
    row = result.contrasts.iloc[0]
    assert np.isfinite(row["estimate"])
    assert np.isnan(row["std_error"])
    assert np.isnan(row["p_value"])


def test_run_dose_response_rejects_unknown_fit_input(shifted_table):
    with pytest.raises(ValueError):
        run_dose_response(shifted_table, fit_on="medians")


def test_package_leaves_plotting_to_an_explicit_import():
    import drcompare

    assert not hasattr(drcompare, "plot_dose_response")
    assert "plot_goodness_of_fit" not in drcompare.__all__


def test_plots_render(shifted_table):
    result = run_dose_response(shifted_table)

    fig, ax = plot_dose_response(result.aggregated, result.model)
    assert ax.figure is fig
    assert ax.get_xscale() == "log"
    assert len(ax.get_lines()) >= 2

    fig, ax2 = plot_goodness_of_fit(goodness_of_fit(result.model, result.aggregated))
    assert ax2.get_xlabel() == "Predicted (model)"
    plt.close("all")


def test_fit_script_writes_results(shifted_table, tmp_path, capsys):
    csv = tmp_path / "input.csv"
    shifted_table.to_csv(csv, index=False)
    out_dir = tmp_path / "results"

    _load_script("fit_ec50").main(["-i", str(csv), "-o", str(out_dir)])

    for name in ("aggregated", "condition_max", "parameters", "fit_statistics", "contrasts"):
        assert (out_dir / f"{name}.csv").exists()
    contrasts = pd.read_csv(out_dir / "contrasts.csv")
    assert contrasts.loc[0, "parameter_name"] == "ec50"
    assert "Saved fits to" in capsys.readouterr().out


def test_plot_script_writes_figures(shifted_table, tmp_path):
    csv = tmp_path / "input.csv"
    shifted_table.to_csv(csv, index=False)
    out_dir = tmp_path / "plots"

    _load_script("plot_curves").main(["-i", str(csv), "-o", str(out_dir)])

    assert (out_dir / "dose_response_curves.png").exists()
    assert (out_dir / "goodness_of_fit.png").exists()
