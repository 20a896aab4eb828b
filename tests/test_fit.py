import numpy as np
import pandas as pd
import pytest

from drcompare import (
    ConvergenceError,
    FitConfig,
    InvalidConditionError,
    UnderDeterminedFitError,
    WeightingError,
    aggregate_replicates,
    fit_curves,
    normalize_to_max,
    tidy_replicates,
)
from drcompare.fit import _initial_guess, _parameter_bounds
from drcompare.models import loglogistic4, loglogistic4_jacobian, loglogistic4_log

from conftest import DOSES, FOUR_DOSES, make_wide_table


def _aggregated(wide):
    return aggregate_replicates(normalize_to_max(tidy_replicates(wide)))


def test_model_midpoint_at_ec50():
    y = loglogistic4(np.array([3.0]), 2.0, 10.0, 90.0, 3.0)
    assert y[0] == pytest.approx(50.0)


def test_jacobian_matches_finite_differences():
    logd = np.log(DOSES)
    theta = np.array([-1.3, 12.0, 97.0, np.log(2.0)])
    jac = loglogistic4_jacobian(logd, *theta)

    eps = 1e-6
    for j in range(4):
        up, down = theta.copy(), theta.copy()
        up[j] += eps
        down[j] -= eps
        numeric = (loglogistic4_log(logd, *up) - loglogistic4_log(logd, *down)) / (2 * eps)
        np.testing.assert_allclose(jac[:, j], numeric, rtol=1e-5, atol=1e-6)


def test_initial_guess_follows_curve_direction():
    logd = np.log(DOSES)
    rising = loglogistic4(DOSES, -1.0, 10.0, 100.0, 1.0)
    h, lo, hi, log_ec50 = _initial_guess(logd, rising)
    assert h < 0
    assert lo == pytest.approx(rising.min())
    assert hi == pytest.approx(rising.max())
    assert abs(log_ec50 - np.log(1.0)) < 1.5

    falling = rising[::-1].copy()
    h2, *_ = _initial_guess(logd, falling)
    assert h2 > 0


def test_fit_recovers_known_parameters(clean_points):
    points, truth = clean_points
    model = fit_curves(points)

    assert model.conditions == ("C", "E")
    for cond, p in truth.items():
        est = model.params(cond)
        assert est["ec50"] == pytest.approx(p["ec50"], rel=1e-4)
        assert est["hill_slope"] == pytest.approx(p["hill_slope"], rel=1e-4)
        assert est["min"] == pytest.approx(p["min"], abs=1e-3)
        assert est["max"] == pytest.approx(p["max"], abs=1e-3)


def test_evaluate_at_ec50_is_midpoint(shifted_table):
    model = fit_curves(_aggregated(shifted_table))
    for cond in model.conditions:
        p = model.params(cond)
        assert model.evaluate(p["ec50"], cond) == pytest.approx(0.5 * (p["min"] + p["max"]), rel=1e-9)


def test_evaluate_accepts_arrays_and_unseen_doses(shifted_table):
    model = fit_curves(_aggregated(shifted_table))
    doses = np.array([1e-6, 0.5, 1e6])
    out = model.evaluate(doses, "C")
    assert out.shape == (3,)
    assert np.all(np.isfinite(out))
    with pytest.raises(InvalidConditionError):
        model.evaluate(1.0, "Z")


def test_fit_outputs_and_covariance_shape(shifted_table):
    agg = _aggregated(shifted_table)
    model = fit_curves(agg)

    assert model.n_obs == len(agg)
    assert model.dof == len(agg) - 8
    coef = model.coefficients()
    assert list(coef.columns) == ["hill_slope", "min", "max", "ec50"]
    assert coef.loc["E", "ec50"] > coef.loc["C", "ec50"]
    assert (coef["ec50"] > 0).all()

    cov = model.covariance()
    assert cov.shape == (8, 8)
    np.testing.assert_allclose(cov.to_numpy(), cov.to_numpy().T)

    se = model.std_errors()
    np.testing.assert_allclose(
        se.loc["C", "ec50"], np.sqrt(cov.loc[("C", "ec50"), ("C", "ec50")])
    )
    assert (se.to_numpy() > 0).all()


def test_fit_is_immutable(shifted_table):
    model = fit_curves(_aggregated(shifted_table))
    with pytest.raises(ValueError):
        model.theta[0] = 1.0
    with pytest.raises(AttributeError):
        model.dof = 3


def test_summary_and_confint(shifted_table):
    model = fit_curves(_aggregated(shifted_table))
    summary = model.summary()

    assert len(summary) == 8
    ec50 = summary[(summary["condition"] == "C") & (summary["parameter"] == "ec50")].iloc[0]
    assert 0 < ec50["ci_lower"] < ec50["estimate"] < ec50["ci_upper"]

    narrow = model.confint(level=0.5)
    wide = model.confint(level=0.99)
    assert ((wide["ci_upper"] - wide["ci_lower"]) > (narrow["ci_upper"] - narrow["ci_lower"])).all()

    with pytest.raises(ValueError):
        model.summary(level=1.5)


def test_fit_statistics_report_good_fit(shifted_table):
    stats = fit_curves(_aggregated(shifted_table)).fit_statistics()
    assert stats["n_points"].tolist() == [8, 8]
    assert (stats["r2"] > 0.95).all()


def test_independent_strategy_matches_joint(shifted_table):
    agg = _aggregated(shifted_table)
    joint = fit_curves(agg)
    indep = fit_curves(agg, config=FitConfig(strategy="independent", n_jobs=2))

    pd.testing.assert_frame_equal(joint.coefficients(), indep.coefficients(), rtol=1e-5)
    cross = indep.covariance().to_numpy()[:4, 4:]
    assert np.all(cross == 0.0)
    assert indep.strategy == "independent"
    assert indep.dof == joint.dof


def test_inverse_variance_weighting(shifted_table):
    agg = _aggregated(shifted_table)
    model = fit_curves(agg, config=FitConfig(weighting="inverse_variance"))
    assert model.weighting == "inverse_variance"
    assert model.params("E")["ec50"] > model.params("C")["ec50"]


def test_inverse_variance_rejects_undefined_sem():
    wide = make_wide_table({"C": 1.0, "E": 10.0}, n_reps=1)
    agg = _aggregated(wide)
    assert agg["sem"].isna().all()

    with pytest.raises(WeightingError):
        fit_curves(agg, config=FitConfig(weighting="inverse_variance"))
    # unweighted fitting of the same points is fine
    fit_curves(agg)


def test_inverse_variance_requires_sem_column(shifted_table):
    norm = normalize_to_max(tidy_replicates(shifted_table))
    with pytest.raises(WeightingError):
        fit_curves(norm, config=FitConfig(weighting="inverse_variance"), response_col="norm_response")


def test_underdetermined_condition_is_rejected_before_solving():
    wide = make_wide_table({"C": 1.0, "E": 10.0}, doses=np.array([0.1, 1.0, 10.0]))
    agg = _aggregated(wide)

    with pytest.raises(UnderDeterminedFitError) as exc:
        fit_curves(agg)
    assert exc.value.n_points == 3
    assert isinstance(exc.value, ConvergenceError)


def test_iteration_limit_exhaustion_raises(shifted_table):
    with pytest.raises(ConvergenceError) as exc:
        fit_curves(_aggregated(shifted_table), config=FitConfig(max_iterations=1))
    assert not isinstance(exc.value, UnderDeterminedFitError)


def test_parameter_bounds_contain_initial_guess():
    logd = np.log(FOUR_DOSES)
    y = np.array([11.8, 11.75, 28.4, 100.0])
    lower, upper = _parameter_bounds(logd, y)
    guess = _initial_guess(logd, y)

    assert np.all(lower <= guess) and np.all(guess <= upper)
    assert lower[3] < logd.min() and upper[3] > logd.max()
    assert upper[2] < 2 * y.max()


def test_unreached_plateau_still_converges():
    rising = loglogistic4(FOUR_DOSES, -1.5, 10.0, 100.0, 30.0)
    points = pd.DataFrame({
        "dose": np.tile(FOUR_DOSES, 2),
        "condition": ["C"] * 4 + ["E"] * 4,
        "mean_response": np.concatenate([rising, [11.8, 11.75, 28.4, 100.0]]),
    })
    model = fit_curves(points)

    lower, upper = _parameter_bounds(np.log(FOUR_DOSES), points["mean_response"].to_numpy()[4:])
    e = model.params("E")
    assert lower[2] <= e["max"] <= upper[2]
    assert np.isfinite(e["ec50"])


@pytest.mark.parametrize("fit_on", ["means", "replicates"])
@pytest.mark.parametrize("noise_sd", [15.0, 30.0])
def test_four_dose_fits_converge_across_seeds(fit_on, noise_sd):
    for seed in range(12):
        wide = make_wide_table({"C": 30.0, "E": 300.0}, doses=FOUR_DOSES, noise_sd=noise_sd, seed=seed)
        norm = normalize_to_max(tidy_replicates(wide))
        if fit_on == "means":
            model = fit_curves(aggregate_replicates(norm))
        else:
            model = fit_curves(norm, response_col="norm_response")

        ec50 = model.coefficients()["ec50"]
        assert np.all(np.isfinite(ec50))
        assert np.all(ec50 < FOUR_DOSES.max() * 10.0 * (1 + 1e-9))


def test_fit_rejects_missing_responses(clean_points):
    points, _ = clean_points
    points = points.copy()
    points.loc[0, "mean_response"] = np.nan
    with pytest.raises(ValueError):
        fit_curves(points)


@pytest.mark.parametrize("kwargs", [
    dict(weighting="sqrt"),
    dict(strategy="bayes"),
    dict(max_iterations=0),
    dict(convergence_tolerance=0.0),
])
def test_fit_config_validation(kwargs):
    with pytest.raises(ValueError):
        FitConfig(**kwargs)


def test_fit_config_defaults_from_yaml():
    cfg = FitConfig()
    assert cfg.max_iterations == 500
    assert cfg.convergence_tolerance == pytest.approx(1e-8)
    assert cfg.weighting == "none"
    assert cfg.strategy == "joint"
