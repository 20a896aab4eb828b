"""
pipeline.py
-----------
End-to-end dose-response analysis:

    wide table -> tidy -> normalize -> aggregate -> fit -> contrasts

Each stage consumes only the previous stage's output.
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

from dataclasses import dataclass

import pandas as pd

from .aggregate import aggregate_replicates
from .compare import compare_all_pairs
from .config import (
    DOSE_COL,
    FIT_ON,
    FIT_ON_CHOICES,
    CONTRAST_PARAMETER,
    FitConfig,
    NORM_RESPONSE,
    MEAN_RESPONSE,
)
from .dataio import tidy_replicates
from .fit import FittedModel, fit_curves
from .normalize import compute_condition_max, normalize_to_max


@dataclass(frozen=True, eq=False)
class DoseResponseResult:
    """Output of every stage of :func:`run_dose_response`."""
    observations: pd.DataFrame
    condition_max: pd.DataFrame
    normalized: pd.DataFrame
    aggregated: pd.DataFrame
    model: FittedModel
    contrasts: pd.DataFrame


def run_dose_response(
        df: pd.DataFrame,
        fit_config: FitConfig | None = None,
        fit_on: str = FIT_ON,
        parameter: str = CONTRAST_PARAMETER,
        dose_col: str = DOSE_COL,
        progress: bool = False,
) -> DoseResponseResult:
    """
    Run the full pipeline on a wide replicate table.

    Parameters
    ----------
    df : pd.DataFrame
        Dose column plus one column per sample (C1, C2, E1, ...).
    fit_config : FitConfig, optional
        Curve fitter settings.
    fit_on : str
        "means" fits the aggregated per-dose means; "replicates" fits
        the normalized replicate responses directly.
    parameter : str
        Parameter contrasted between every pair of conditions.
    dose_col : str
        Name of the dose column in ``df``.
    progress : bool
        Forwarded to the fitter.
    Returns
    -------
    DoseResponseResult
    """
    if fit_on not in FIT_ON_CHOICES:
        raise ValueError(f"fit_on must be one of {FIT_ON_CHOICES}, got {fit_on!r}")

    obs = tidy_replicates(df, dose_col=dose_col)
    cmax = compute_condition_max(obs)
    norm = normalize_to_max(obs, cmax)
    agg = aggregate_replicates(norm)

    if fit_on == "means":
        model = fit_curves(agg, config=fit_config, response_col=MEAN_RESPONSE, progress=progress)
    else:
        model = fit_curves(norm, config=fit_config, response_col=NORM_RESPONSE, progress=progress)

    contrasts = compare_all_pairs(model, parameter)

    return DoseResponseResult(
        observations=obs,
        condition_max=cmax,
        normalized=norm,
        aggregated=agg,
        model=model,
        contrasts=contrasts,
    )
