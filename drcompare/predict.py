"""
Evaluate a fitted model at arbitrary (dose, condition) pairs.
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

from typing import Iterable, Optional, Tuple, Union

import numpy as np
import pandas as pd

from .config import DOSE, CONDITION, MEAN_RESPONSE, PREDICTION
from .fit import FittedModel

Queries = Union[pd.DataFrame, Iterable[Tuple[float, str]]]


def predict(model: FittedModel, queries: Queries) -> pd.DataFrame:
    """
    Fitted response for each (dose, condition) pair, in input order.

    Parameters
    ----------
    model : FittedModel
        Fitted curves.
    queries : DataFrame or iterable of (dose, condition)
        A frame with dose and condition columns, or plain pairs.
    Returns
    -------
    pd.DataFrame
        Columns: dose, condition, prediction.
    """
    if isinstance(queries, pd.DataFrame):
        q = queries[[DOSE, CONDITION]].reset_index(drop=True)
    else:
        q = pd.DataFrame(list(queries), columns=[DOSE, CONDITION])
    q[DOSE] = q[DOSE].astype(float)

    pred = np.full(len(q), np.nan)
    for cond, idx in q.groupby(CONDITION, sort=False).indices.items():
        pred[idx] = model.evaluate(q[DOSE].to_numpy()[idx], cond)

    q[PREDICTION] = pred
    return q


def predict_curve_grid(
        model: FittedModel,
        n_points: int = 200,
        dose_range: Optional[Tuple[float, float]] = None,
) -> pd.DataFrame:
    """
    Smooth fitted curves on a log-spaced dose grid, for overlay plots.

    The grid spans the fitted dose range unless ``dose_range`` is given.
    """
    lo, hi = dose_range if dose_range is not None else model.dose_range
    if lo <= 0 or hi <= lo:
        raise ValueError(f"dose_range must satisfy 0 < low < high, got {(lo, hi)}")
    grid = np.logspace(np.log10(lo), np.log10(hi), n_points)
    frames = [
        pd.DataFrame({DOSE: grid, CONDITION: cond, PREDICTION: model.evaluate(grid, cond)})
        for cond in model.conditions
    ]
    return pd.concat(frames, ignore_index=True)


def goodness_of_fit(
        model: FittedModel,
        points: pd.DataFrame,
        response_col: str = MEAN_RESPONSE,
) -> pd.DataFrame:
    """
    Join observed points with model predictions.

    Returns the input columns plus prediction and residual
    (observed - prediction).
    """
    pred = predict(model, points)
    out = points.reset_index(drop=True).copy()
    out[PREDICTION] = pred[PREDICTION].to_numpy()
    out["residual"] = out[response_col] - out[PREDICTION]
    return out
