"""
fit.py
-------------
Log-logistic curve fitting for dose-response data.
Fit one 4-parameter curve per condition with a single nonlinear
least-squares solve over the stacked parameter vector, keeping the full
covariance so parameters can be compared across conditions.

"""
# BSD 3-Clause License
#
# Copyright (c) 2025, Abhinav Mishra
# All rights reserved.
# Email: mishraabhinav36@gmail.com
#
# Redistribution and use in source and binary forms, with or without
# modification, are permitted provided that the following conditions are met:
#
# 1. Redistributions of source code must retain the above copyright notice,
#    this list of conditions and the following disclaimer.
#
# 2. Redistributions in binary form must reproduce the above copyright notice,
#    this list of conditions and the following disclaimer in the documentation
#    and/or other materials provided with the distribution.
#
# 3. Neither the name of Abhinav Mishra nor the names of its contributors may
#    be used to endorse or promote products derived from this software without
#    specific prior written permission.
#
# THIS SOFTWARE IS PROVIDED BY THE COPYRIGHT HOLDERS AND CONTRIBUTORS "AS IS"
# AND ANY EXPRESS OR IMPLIED WARRANTIES, INCLUDING, BUT NOT LIMITED TO, THE
# IMPLIED WARRANTIES OF MERCHANTABILITY AND FITNESS FOR A PARTICULAR PURPOSE ARE
# DISCLAIMED. IN NO EVENT SHALL THE COPYRIGHT HOLDER OR CONTRIBUTORS BE LIABLE
# FOR ANY DIRECT, INDIRECT, INCIDENTAL, SPECIAL, EXEMPLARY, OR CONSEQUENTIAL
# DAMAGES (INCLUDING, BUT NOT LIMITED TO, PROCUREMENT OF SUBSTITUTE GOODS OR
# SERVICES; LOSS OF USE, DATA, OR PROFITS; OR BUSINESS INTERRUPTION) HOWEVER
# CAUSED AND ON ANY THEORY OF LIABILITY, WHETHER IN CONTRACT, STRICT LIABILITY,
# OR TORT (INCLUDING NEGLIGENCE OR OTHERWISE) ARISING IN ANY WAY OUT OF THE USE
# OF THIS SOFTWARE, EVEN IF ADVISED OF THE POSSIBILITY OF SUCH DAMAGE.

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Dict, List, NamedTuple, Tuple

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from scipy import stats
from scipy.linalg import block_diag, svd
from scipy.optimize import least_squares
from sklearn.isotonic import IsotonicRegression
from tqdm.auto import tqdm

from .config import FitConfig, CONFIDENCE_LEVEL, DOSE, CONDITION, MEAN_RESPONSE, SEM
from .exceptions import (
    ConvergenceError,
    FitWarning,
    InvalidConditionError,
    InvalidParameterError,
    UnderDeterminedFitError,
    WeightingError,
)
from .models import N_PARAMS, PARAM_NAMES, loglogistic4_jacobian, loglogistic4_log

# Natural-scale parameters plus log(ec50), which is what the solver sees.
EXTENDED_PARAM_NAMES = PARAM_NAMES + ("log_ec50",)
_SOLVER_NAMES = PARAM_NAMES[:3] + ("log_ec50",)
_LOG_EC50 = 3  # position of log(ec50) inside each internal block

# Solver box per condition, relative to the observed data
HILL_SLOPE_LIMIT = 10.0
LOG_EC50_MARGIN = float(np.log(10.0))  # one decade beyond the dosed range
PLATEAU_MARGIN = 1.0  # in units of the observed response span


def canonical_parameter(name: str) -> str:
    """
    Normalize a user-supplied parameter name ("EC50", "Hill_Slope", ...).

    Raises
    ------
    InvalidParameterError
        If the name is not a model parameter.
    """
    key = str(name).strip().lower()
    if key not in EXTENDED_PARAM_NAMES:
        raise InvalidParameterError(name, EXTENDED_PARAM_NAMES)
    return key


class _Block(NamedTuple):
    """Data of one condition in solver space."""
    condition: str
    logd: np.ndarray
    y: np.ndarray
    w: np.ndarray


class _Solution(NamedTuple):
    theta: np.ndarray
    jac: np.ndarray
    wrss: float
    nfev: int


def _readonly(arr: np.ndarray) -> np.ndarray:
    arr = np.array(arr, dtype=float)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class FittedModel:
    """
    Immutable result of :func:`fit_curves`.

    theta holds, per condition and in ``conditions`` order, the solver
    parameters (hill_slope, min, max, log_ec50); cov_theta is their joint
    covariance. Natural-scale values are derived on demand.
    """
    conditions: Tuple[str, ...]
    theta: np.ndarray
    cov_theta: np.ndarray
    n_obs: int
    dof: int
    residual_std: float
    points_per_condition: Tuple[int, ...]
    rss_per_condition: Tuple[float, ...]
    tss_per_condition: Tuple[float, ...]
    dose_range: Tuple[float, float]
    weighting: str = "none"
    strategy: str = "joint"
    nfev: int = 0
    _lookup: Dict[str, int] = field(init=False, repr=False, default_factory=dict)

    def __post_init__(self):
        object.__setattr__(self, "theta", _readonly(self.theta))
        object.__setattr__(self, "cov_theta", _readonly(self.cov_theta))
        object.__setattr__(self, "_lookup", {c: i for i, c in enumerate(self.conditions)})

    # ------------------------------------------------------------------
    # lookups
    # ------------------------------------------------------------------
    def condition_index(self, condition) -> int:
        try:
            return self._lookup[condition]
        except KeyError:
            raise InvalidConditionError(condition, self.conditions) from None

    def params(self, condition) -> Dict[str, float]:
        """Natural-scale parameters of one condition."""
        i = self.condition_index(condition)
        h, lo, hi, log_ec50 = self.theta[N_PARAMS * i:N_PARAMS * (i + 1)]
        return {
            "hill_slope": float(h),
            "min": float(lo),
            "max": float(hi),
            "ec50": float(np.exp(log_ec50)),
        }

    # ------------------------------------------------------------------
    # estimates and covariance
    # ------------------------------------------------------------------
    def _extended(self) -> Tuple[np.ndarray, np.ndarray]:
        """
        Estimates and covariance over EXTENDED_PARAM_NAMES per condition,
        obtained from the solver covariance by the delta method.
        """
        k = len(self.conditions)
        m = len(EXTENDED_PARAM_NAMES)
        values = np.empty(k * m)
        grad = np.zeros((k * m, k * N_PARAMS))
        for i in range(k):
            h, lo, hi, log_ec50 = self.theta[N_PARAMS * i:N_PARAMS * (i + 1)]
            ec50 = np.exp(log_ec50)
            values[m * i:m * (i + 1)] = (h, lo, hi, ec50, log_ec50)
            r, c = m * i, N_PARAMS * i
            grad[r, c] = 1.0
            grad[r + 1, c + 1] = 1.0
            grad[r + 2, c + 2] = 1.0
            grad[r + 3, c + _LOG_EC50] = ec50
            grad[r + 4, c + _LOG_EC50] = 1.0
        return values, grad @ self.cov_theta @ grad.T

    def coefficients(self) -> pd.DataFrame:
        """Parameter estimates, one row per condition."""
        rows = [self.params(c) for c in self.conditions]
        return pd.DataFrame(rows, index=pd.Index(self.conditions, name=CONDITION))[list(PARAM_NAMES)]

    def covariance(self, include_log_ec50: bool = False) -> pd.DataFrame:
        """
        Joint covariance of the natural-scale parameters, labelled by
        (condition, parameter). Off-diagonal condition blocks carry the
        cross-condition covariance used by contrasts.
        """
        _, cov = self._extended()
        names = EXTENDED_PARAM_NAMES
        index = pd.MultiIndex.from_product([self.conditions, names], names=[CONDITION, "parameter"])
        full = pd.DataFrame(cov, index=index, columns=index)
        if include_log_ec50:
            return full
        sub = index[index.get_level_values("parameter") != "log_ec50"]
        return full.loc[sub, sub]

    def parameter_covariance(self, parameter: str) -> Tuple[pd.Series, pd.DataFrame]:
        """
        Estimates of one parameter across conditions and their covariance.

        Returns
        -------
        (pd.Series, pd.DataFrame)
            Estimates indexed by condition, and a condition x condition
            covariance matrix.
        """
        name = canonical_parameter(parameter)
        j = EXTENDED_PARAM_NAMES.index(name)
        m = len(EXTENDED_PARAM_NAMES)
        values, cov = self._extended()
        idx = [m * i + j for i in range(len(self.conditions))]
        cond_index = pd.Index(self.conditions, name=CONDITION)
        est = pd.Series(values[idx], index=cond_index, name=name)
        sub = pd.DataFrame(cov[np.ix_(idx, idx)], index=cond_index, columns=cond_index)
        return est, sub

    def std_errors(self) -> pd.DataFrame:
        """Standard errors (square roots of the covariance diagonal)."""
        _, cov = self._extended()
        m = len(EXTENDED_PARAM_NAMES)
        se = np.sqrt(np.diag(cov)).reshape(len(self.conditions), m)
        df = pd.DataFrame(se, index=pd.Index(self.conditions, name=CONDITION), columns=EXTENDED_PARAM_NAMES)
        return df[list(PARAM_NAMES)]

    def summary(self, level: float = CONFIDENCE_LEVEL) -> pd.DataFrame:
        """
        Per (condition, parameter) table of estimate, std_error, t_value,
        p_value (two-sided, against 0) and a ``level`` confidence interval.

        The ec50 interval is formed on the log scale and back-transformed,
        so it never crosses zero.
        """
        if not 0.0 < level < 1.0:
            raise ValueError(f"level must be in (0, 1), got {level}")
        values, cov = self._extended()
        se = np.sqrt(np.diag(cov))
        m = len(EXTENDED_PARAM_NAMES)
        tcrit = stats.t.ppf(0.5 + level / 2.0, self.dof) if self.dof > 0 else np.nan

        rows = []
        for i, cond in enumerate(self.conditions):
            for j, name in enumerate(PARAM_NAMES):
                est = values[m * i + j]
                s = se[m * i + j]
                if name == "ec50":
                    log_est = values[m * i + 4]
                    log_se = se[m * i + 4]
                    lo, hi = np.exp(log_est - tcrit * log_se), np.exp(log_est + tcrit * log_se)
                else:
                    lo, hi = est - tcrit * s, est + tcrit * s
                with np.errstate(divide="ignore", invalid="ignore"):
                    t_value = est / s
                p_value = 2.0 * stats.t.sf(abs(t_value), self.dof) if self.dof > 0 else np.nan
                rows.append({
                    CONDITION: cond,
                    "parameter": name,
                    "estimate": float(est),
                    "std_error": float(s),
                    "t_value": float(t_value),
                    "p_value": float(p_value),
                    "ci_lower": float(lo),
                    "ci_upper": float(hi),
                })
        return pd.DataFrame(rows)

    def confint(self, level: float = CONFIDENCE_LEVEL) -> pd.DataFrame:
        """Confidence intervals only; see :meth:`summary`."""
        return self.summary(level)[[CONDITION, "parameter", "estimate", "ci_lower", "ci_upper"]]

    def fit_statistics(self) -> pd.DataFrame:
        """Per-condition point count, residual sum of squares and R²."""
        rss = np.asarray(self.rss_per_condition)
        tss = np.asarray(self.tss_per_condition)
        with np.errstate(divide="ignore", invalid="ignore"):
            r2 = np.where(tss > 0, 1.0 - rss / tss, np.nan)
        return pd.DataFrame({
            CONDITION: list(self.conditions),
            "n_points": list(self.points_per_condition),
            "rss": rss,
            "r2": r2,
        })

    # ------------------------------------------------------------------
    # prediction
    # ------------------------------------------------------------------
    def evaluate(self, dose, condition):
        """
        Fitted response of ``condition`` at ``dose`` (scalar or array).
        Any dose is accepted, inside or outside the fitted range.
        """
        i = self.condition_index(condition)
        h, lo, hi, log_ec50 = self.theta[N_PARAMS * i:N_PARAMS * (i + 1)]
        with np.errstate(divide="ignore", invalid="ignore"):
            logd = np.log(np.asarray(dose, dtype=float))
        out = loglogistic4_log(logd, h, lo, hi, log_ec50)
        if np.ndim(out) == 0:
            return float(out)
        return out


# ----------------------------------------------------------------------
# Solver internals
# ----------------------------------------------------------------------

def _initial_guess(logd: np.ndarray, y: np.ndarray) -> np.ndarray:
    """
    Data-driven starting point (hill_slope, min, max, log_ec50).

    The curve direction comes from the first and last dose; an isotonic
    fit in that direction smooths replicate noise before the half-way
    response is located by interpolation.
    """
    order = np.argsort(logd, kind="mergesort")
    x = logd[order]
    yy = y[order]

    increasing = bool(yy[-1] >= yy[0])
    iso = IsotonicRegression(increasing=increasing, out_of_bounds="clip")
    y_smooth = iso.fit_transform(x, yy)

    y_min = float(np.min(yy))
    y_max = float(np.max(yy))
    y_mid = 0.5 * (y_min + y_max)

    # np.interp needs ascending sample points
    if increasing:
        log_ec50 = float(np.interp(y_mid, y_smooth, x))
    else:
        log_ec50 = float(np.interp(y_mid, y_smooth[::-1], x[::-1]))

    # with min < max, a rising curve needs a negative slope
    h = -1.0 if increasing else 1.0
    return np.array([h, y_min, y_max, log_ec50], dtype=float)


def _parameter_bounds(logd: np.ndarray, y: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Loose box for (hill_slope, min, max, log_ec50) around the observed data.

    log EC50 may sit up to one decade outside the dosed range; both
    plateaus may sit up to one response span beyond the observed extremes.
    """
    y_min = float(np.min(y))
    y_max = float(np.max(y))
    pad = PLATEAU_MARGIN * max(y_max - y_min, 1.0)
    lower = np.array([
        -HILL_SLOPE_LIMIT,
        y_min - pad,
        y_min - pad,
        float(np.min(logd)) - LOG_EC50_MARGIN,
    ])
    upper = np.array([
        HILL_SLOPE_LIMIT,
        y_max + pad,
        y_max + pad,
        float(np.max(logd)) + LOG_EC50_MARGIN,
    ])
    return lower, upper


def _solve(
        blocks: List[_Block],
        p0: np.ndarray,
        bounds: Tuple[np.ndarray, np.ndarray],
        config: FitConfig,
) -> _Solution:
    """Single bounded trust-region solve over the stacked parameter vector."""
    n_rows = sum(b.y.size for b in blocks)
    n_par = N_PARAMS * len(blocks)

    def residuals(theta: np.ndarray) -> np.ndarray:
        out = []
        for i, b in enumerate(blocks):
            h, lo, hi, log_ec50 = theta[N_PARAMS * i:N_PARAMS * (i + 1)]
            out.append(b.w * (loglogistic4_log(b.logd, h, lo, hi, log_ec50) - b.y))
        return np.concatenate(out)

    def jacobian(theta: np.ndarray) -> np.ndarray:
        jac = np.zeros((n_rows, n_par))
        row = 0
        for i, b in enumerate(blocks):
            h, lo, hi, log_ec50 = theta[N_PARAMS * i:N_PARAMS * (i + 1)]
            nb = b.y.size
            jac[row:row + nb, N_PARAMS * i:N_PARAMS * (i + 1)] = (
                b.w[:, None] * loglogistic4_jacobian(b.logd, h, lo, hi, log_ec50)
            )
            row += nb
        return jac

    lower, upper = bounds
    p0 = np.clip(p0, lower, upper)

    tol = config.convergence_tolerance
    try:
        res = least_squares(
            residuals,
            p0,
            jac=jacobian,
            bounds=(lower, upper),
            method="trf",
            ftol=tol,
            xtol=tol,
            gtol=tol,
            max_nfev=config.max_iterations,
        )
    except ValueError as e:
        raise ConvergenceError(f"Least-squares solve could not start: {e}") from e

    if not res.success:
        raise ConvergenceError(
            f"Optimizer did not converge within {config.max_iterations} evaluations: {res.message}",
            nfev=int(res.nfev),
        )
    if not np.all(np.isfinite(res.x)):
        raise ConvergenceError("Optimizer returned non-finite parameters", nfev=int(res.nfev))

    pinned = np.flatnonzero(res.active_mask != 0)
    if pinned.size:
        names = sorted({
            f"{blocks[j // N_PARAMS].condition}:{_SOLVER_NAMES[j % N_PARAMS]}"
            for j in pinned
        })
        warnings.warn(
            f"Parameters at their solver bound: {', '.join(names)}; "
            "standard errors ignore the constraint.",
            FitWarning,
        )

    return _Solution(theta=res.x, jac=res.jac, wrss=float(np.sum(res.fun ** 2)), nfev=int(res.nfev))


def _covariance(jac: np.ndarray, wrss: float) -> np.ndarray:
    """
    s² · (JᵀJ)⁺ via SVD, with s² = RSS / (n - p).

    Singular directions and a non-positive residual dof produce a
    FitWarning; the latter yields an all-NaN covariance.
    """
    n, p = jac.shape
    _, s, vt = svd(jac, full_matrices=False)
    threshold = np.finfo(float).eps * max(jac.shape) * (s[0] if s.size else 0.0)
    keep = s > threshold
    if keep.sum() < p:
        warnings.warn("Jacobian is rank deficient; covariance is unreliable.", FitWarning)
    s = s[keep]
    vt = vt[keep]
    pcov = (vt.T / s ** 2) @ vt

    dof = n - p
    if dof > 0:
        return pcov * (wrss / dof)
    warnings.warn(
        f"No residual degrees of freedom ({n} points, {p} parameters); covariance is undefined.",
        FitWarning,
    )
    return np.full((p, p), np.nan)


def _build_blocks(
        points: pd.DataFrame,
        response_col: str,
        sem_col: str,
        weighting: str,
) -> List[_Block]:
    missing = [c for c in (DOSE, CONDITION, response_col) if c not in points.columns]
    if missing:
        raise ValueError(f"Missing required columns: {missing}")
    if points.empty:
        raise ValueError("No data points to fit.")

    doses = points[DOSE].to_numpy(dtype=float)
    if np.any(~np.isfinite(doses)) or np.any(doses <= 0):
        raise ValueError("Doses must be finite and strictly positive.")
    if np.any(~np.isfinite(points[response_col].to_numpy(dtype=float))):
        raise ValueError(f"Column {response_col!r} contains missing or non-finite values.")
    if weighting == "inverse_variance" and sem_col not in points.columns:
        raise WeightingError(f"Inverse-variance weighting needs a {sem_col!r} column.")

    blocks = []
    for cond, grp in points.groupby(CONDITION, sort=True):
        n = len(grp)
        if n < N_PARAMS:
            raise UnderDeterminedFitError(cond, n, N_PARAMS)

        if weighting == "inverse_variance":
            sem = grp[sem_col].to_numpy(dtype=float)
            if np.any(~np.isfinite(sem)) or np.any(sem <= 0):
                raise WeightingError(
                    f"Condition {cond!r} has undefined or non-positive sem; "
                    "inverse-variance weights cannot be formed.",
                    condition=cond,
                )
            w = 1.0 / sem
        else:
            w = np.ones(n)

        blocks.append(_Block(
            condition=cond,
            logd=np.log(grp[DOSE].to_numpy(dtype=float)),
            y=grp[response_col].to_numpy(dtype=float),
            w=w,
        ))
    return blocks


def fit_curves(
        points: pd.DataFrame,
        config: FitConfig | None = None,
        response_col: str = MEAN_RESPONSE,
        sem_col: str = SEM,
        progress: bool = False,
) -> FittedModel:
    """
    Fit a 4-parameter log-logistic curve per condition.

    With the "joint" strategy all conditions share one least-squares
    solve over the stacked parameter vector (4 parameters per condition,
    nothing shared) and a pooled residual variance. The "independent"
    strategy solves each condition separately, in parallel through
    joblib, and treats cross-condition covariance as zero.

    Parameters
    ----------
    points : pd.DataFrame
        Aggregated points (dose, condition, mean_response, sem), or any
        frame with dose, condition and ``response_col``.
    config : FitConfig, optional
        Solver bounds, weighting and strategy. Defaults from config.yaml.
    response_col : str
        Column holding the response to fit.
    sem_col : str
        Column holding the SEM, used for inverse-variance weighting.
    progress : bool
        Show a progress bar for the independent strategy.
    Returns
    -------
    FittedModel
    Raises
    ------
    UnderDeterminedFitError
        If any condition has fewer than 4 points.
    WeightingError
        If inverse-variance weighting meets an undefined or zero sem.
    ConvergenceError
        If the optimizer fails within max_iterations function evaluations.
    """
    if config is None:
        config = FitConfig()

    blocks = _build_blocks(points, response_col, sem_col, config.weighting)
    guesses = [_initial_guess(b.logd, b.y) for b in blocks]
    boxes = [_parameter_bounds(b.logd, b.y) for b in blocks]

    if config.strategy == "joint":
        bounds = (
            np.concatenate([lb for lb, _ in boxes]),
            np.concatenate([ub for _, ub in boxes]),
        )
        sol = _solve(blocks, np.concatenate(guesses), bounds, config)
        theta = sol.theta
        cov = _covariance(sol.jac, sol.wrss)
        wrss = sol.wrss
        nfev = sol.nfev
    else:
        sols = Parallel(n_jobs=config.n_jobs, prefer="threads")(
            delayed(_solve)([b], p0, box, config)
            for b, p0, box in tqdm(
                list(zip(blocks, guesses, boxes)),
                desc="Fitting conditions",
                unit="cond",
                disable=not progress,
            )
        )
        theta = np.concatenate([s.theta for s in sols])
        cov = block_diag(*[_covariance(s.jac, s.wrss) for s in sols])
        wrss = float(sum(s.wrss for s in sols))
        nfev = int(sum(s.nfev for s in sols))

    for i, b in enumerate(blocks):
        ec50 = np.exp(theta[N_PARAMS * i + _LOG_EC50])
        if not np.isfinite(ec50) or ec50 <= 0:
            raise ConvergenceError(f"EC50 of condition {b.condition!r} diverged", nfev=nfev)

    n_obs = int(sum(b.y.size for b in blocks))
    dof = n_obs - N_PARAMS * len(blocks)

    rss, tss = [], []
    for i, b in enumerate(blocks):
        h, lo, hi, log_ec50 = theta[N_PARAMS * i:N_PARAMS * (i + 1)]
        pred = loglogistic4_log(b.logd, h, lo, hi, log_ec50)
        rss.append(float(np.sum((b.y - pred) ** 2)))
        tss.append(float(np.sum((b.y - np.mean(b.y)) ** 2)))

    all_doses = np.exp(np.concatenate([b.logd for b in blocks]))

    return FittedModel(
        conditions=tuple(b.condition for b in blocks),
        theta=theta,
        cov_theta=cov,
        n_obs=n_obs,
        dof=dof,
        residual_std=float(np.sqrt(wrss / dof)) if dof > 0 else float("nan"),
        points_per_condition=tuple(int(b.y.size) for b in blocks),
        rss_per_condition=tuple(rss),
        tss_per_condition=tuple(tss),
        dose_range=(float(all_doses.min()), float(all_doses.max())),
        weighting=config.weighting,
        strategy=config.strategy,
        nfev=nfev,
    )
