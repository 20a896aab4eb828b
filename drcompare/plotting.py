"""
Quick plotting utilities for fitted dose-response curves.
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

from typing import Optional

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd

from .config import DOSE, CONDITION, MEAN_RESPONSE, SEM, PREDICTION
from .fit import FittedModel
from .predict import predict_curve_grid


def plot_dose_response(
        points: pd.DataFrame,
        model: Optional[FittedModel] = None,
        ax: Optional[plt.Axes] = None,
):
    """
    Plot aggregated means with SEM error bars and, if given, the fitted
    curve of each condition.

    Returns:
        fig, ax : matplotlib Figure and Axes objects
    """
    if ax is None:
        fig, ax = plt.subplots()
    else:
        fig = ax.figure

    if points.empty:
        raise ValueError("No aggregated points to plot.")

    conds = list(pd.unique(points[CONDITION]))
    colors = {cond: f"C{i}" for i, cond in enumerate(conds)}

    # Observed means; points with undefined sem get no bar
    for cond in conds:
        sub = points[points[CONDITION] == cond]
        ax.errorbar(
            sub[DOSE], sub[MEAN_RESPONSE], yerr=sub[SEM],
            fmt="o", capsize=3, color=colors[cond], label=f"{cond} (observed)",
        )

    if model is not None:
        grid = predict_curve_grid(model)
        for cond in model.conditions:
            sub = grid[grid[CONDITION] == cond]
            ax.plot(
                sub[DOSE], sub[PREDICTION], linestyle="-",
                color=colors.get(cond), label=f"{cond} (fit)",
            )

    ax.set_xscale("log")
    ax.set_xlabel("Dose")
    ax.set_ylabel("Response (% of condition max)")
    ax.legend()
    return fig, ax


def plot_goodness_of_fit(
        gof: pd.DataFrame,
        response_col: str = MEAN_RESPONSE,
        ax: Optional[plt.Axes] = None,
):
    """
    Observed vs predicted values for all conditions, with a 1:1 line.

    Expects the output of :func:`drcompare.predict.goodness_of_fit`.

    Returns:
        fig, ax : matplotlib Figure and Axes objects
    """
    if ax is None:
        fig, ax = plt.subplots(figsize=(6, 6))
    else:
        fig = ax.figure

    if gof.empty:
        raise ValueError("No predictions to plot.")

    for cond, sub in gof.groupby(CONDITION, sort=True):
        ax.scatter(sub[PREDICTION], sub[response_col], alpha=0.7, s=20, label=str(cond))

    obs = gof[response_col].to_numpy(dtype=float)
    pred = gof[PREDICTION].to_numpy(dtype=float)
    lo = np.nanmin([obs.min(), pred.min()])
    hi = np.nanmax([obs.max(), pred.max()])
    ax.plot([lo, hi], [lo, hi], "--", color="gray", linewidth=1)

    ax.set_xlabel("Predicted (model)")
    ax.set_ylabel("Observed (data)")
    ax.set_title("Goodness of Fit")
    ax.legend(title="Condition")

    return fig, ax
