"""
aggregate.py
------------
Collapse replicates into per-(dose, condition) mean and SEM.
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

import numpy as np
import pandas as pd

from .config import DOSE, CONDITION, NORM_RESPONSE, MEAN_RESPONSE, SEM, N_REPLICATES

AGGREGATE_COLUMNS = [DOSE, CONDITION, MEAN_RESPONSE, SEM, N_REPLICATES]


def aggregate_replicates(
        norm: pd.DataFrame,
        value_col: str = NORM_RESPONSE,
) -> pd.DataFrame:
    """
    Mean and standard error of the mean per (dose, condition).

    The SEM uses the sample standard deviation (ddof=1). A group with a
    single replicate has no defined spread, so its sem is NaN rather
    than 0.

    Parameters
    ----------
    norm : pd.DataFrame
        Normalized observation records.
    value_col : str
        Column to aggregate.
    Returns
    -------
    pd.DataFrame
        Columns: dose, condition, mean_response, sem, n. Ordered by
        condition, then ascending dose.
    """
    if norm.empty:
        return pd.DataFrame(columns=AGGREGATE_COLUMNS)

    agg = (
        norm
        .dropna(subset=[value_col])
        .groupby([CONDITION, DOSE], sort=True)[value_col]
        .agg(["mean", "std", "count"])
        .reset_index()
    )
    agg[SEM] = agg["std"] / np.sqrt(agg["count"])
    agg = agg.rename(columns={"mean": MEAN_RESPONSE, "count": N_REPLICATES})
    agg[N_REPLICATES] = agg[N_REPLICATES].astype(int)
    return agg[AGGREGATE_COLUMNS]
