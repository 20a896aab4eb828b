"""
compare.py
----------
Cross-condition parameter contrasts for a fitted log-logistic model.

The standard error of a contrast comes from the joint covariance of the
fit, so correlation between conditions is accounted for whenever the
fitter estimated it. Test statistics are referred to a t distribution
with the fit's residual degrees of freedom.
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
from dataclasses import asdict, dataclass
from itertools import combinations
from typing import Any, Dict, Tuple

import numpy as np
import pandas as pd
from scipy import stats

from .exceptions import FitWarning
from .fit import FittedModel, canonical_parameter

OPERATORS = ("-", "/")


@dataclass(frozen=True)
class Contrast:
    """
    Difference (or ratio) of one parameter between two conditions.

    For "-" the null value is 0; for "/" it is 1.
    """
    parameter_name: str
    condition_pair: Tuple[str, str]
    estimate: float
    std_error: float
    statistic: float
    p_value: float
    dof: int
    operator: str = "-"

    def to_dict(self) -> Dict[str, Any]:
        d = asdict(self)
        a, b = d.pop("condition_pair")
        d["condition_a"] = a
        d["condition_b"] = b
        return d


def compare_parameters(
        model: FittedModel,
        parameter: str,
        condition_a,
        condition_b,
        operator: str = "-",
) -> Contrast:
    """
    Contrast the same-named parameter of two fitted conditions.

    For ``operator="-"``:

        estimate = p[a] - p[b]
        se = sqrt(var_a + var_b - 2 cov_ab)

    For ``operator="/"`` the ratio p[a] / p[b] is tested against 1 with a
    delta-method standard error.

    Parameters
    ----------
    model : FittedModel
        Result of :func:`drcompare.fit.fit_curves`.
    parameter : str
        One of hill_slope, min, max, ec50, log_ec50 (case-insensitive).
    condition_a, condition_b
        Fitted condition labels.
    operator : str
        "-" for a difference, "/" for a ratio.
    Returns
    -------
    Contrast
    Raises
    ------
    InvalidParameterError
        Unknown parameter name.
    InvalidConditionError
        Either condition was not part of the fit.
    """
    if operator not in OPERATORS:
        raise ValueError(f"operator must be one of {OPERATORS}, got {operator!r}")
    name = canonical_parameter(parameter)
    ia = model.condition_index(condition_a)
    ib = model.condition_index(condition_b)
    if ia == ib:
        raise ValueError("A contrast needs two different conditions.")

    est, cov = model.parameter_covariance(name)
    a = float(est.iloc[ia])
    b = float(est.iloc[ib])
    var_a = float(cov.iloc[ia, ia])
    var_b = float(cov.iloc[ib, ib])
    cov_ab = float(cov.iloc[ia, ib])

    if operator == "-":
        estimate = a - b
        grad = np.array([1.0, -1.0])
        null = 0.0
    elif b == 0.0:
        # undefined ratio; falls through to the undefined-variance branch
        estimate = float("nan")
        grad = np.array([np.nan, np.nan])
        null = 1.0
    else:
        estimate = a / b
        grad = np.array([1.0 / b, -a / b ** 2])
        null = 1.0

    sub = np.array([[var_a, cov_ab], [cov_ab, var_b]])
    var = float(grad @ sub @ grad)

    if np.isfinite(var) and var > 0:
        se = float(np.sqrt(var))
        statistic = (estimate - null) / se
    else:
        warnings.warn(
            f"Contrast variance for {name!r} ({condition_a!r} vs {condition_b!r}) is undefined.",
            FitWarning,
        )
        se = float("nan")
        statistic = float("nan")

    if model.dof > 0 and np.isfinite(statistic):
        p_value = float(2.0 * stats.t.sf(abs(statistic), model.dof))
    else:
        p_value = float("nan")

    return Contrast(
        parameter_name=name,
        condition_pair=(condition_a, condition_b),
        estimate=float(estimate),
        std_error=se,
        statistic=float(statistic),
        p_value=p_value,
        dof=int(model.dof),
        operator=operator,
    )


def compare_all_pairs(
        model: FittedModel,
        parameter: str,
        operator: str = "-",
) -> pd.DataFrame:
    """
    Every pairwise contrast of ``parameter`` over the fitted conditions,
    in condition order. One row per pair.
    """
    name = canonical_parameter(parameter)
    rows = [
        compare_parameters(model, name, a, b, operator=operator).to_dict()
        for a, b in combinations(model.conditions, 2)
    ]
    columns = [
        "parameter_name", "condition_a", "condition_b", "operator",
        "estimate", "std_error", "statistic", "dof", "p_value",
    ]
    return pd.DataFrame(rows, columns=columns)
