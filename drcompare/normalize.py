"""
normalize.py
------------
Per-condition max normalization.

The reference for each condition is the largest dose-level mean response,
so replicate noise at a single dose cannot inflate it. Every replicate is
then expressed as a percentage of that reference.
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

from typing import Mapping, Union

import numpy as np
import pandas as pd

from .config import (
    DOSE,
    CONDITION,
    RESPONSE,
    NORM_RESPONSE,
    MAX_RESPONSE,
)
from .exceptions import MissingReferenceError

ConditionMaxLike = Union[pd.DataFrame, pd.Series, Mapping[str, float]]


def compute_condition_max(obs: pd.DataFrame) -> pd.DataFrame:
    """
    Find, per condition, the maximum of the per-dose mean response.

    Dose groups are visited in ascending dose order and sorted by mean with
    a stable sort, so when several doses tie for the maximum the lowest
    dose is selected on every run.

    Parameters
    ----------
    obs : pd.DataFrame
        Observation records (dose, condition, response, ...).
    Returns
    -------
    pd.DataFrame
        Columns: condition, dose, max_response. One row per condition.
    """
    if obs.empty:
        return pd.DataFrame(columns=[CONDITION, DOSE, MAX_RESPONSE])

    dose_means = (
        obs
        .groupby([CONDITION, DOSE], sort=True)[RESPONSE]
        .mean()
        .rename(MAX_RESPONSE)
        .reset_index()
    )

    rows = []
    for cond, grp in dose_means.groupby(CONDITION, sort=True):
        top = grp.sort_values(MAX_RESPONSE, ascending=False, kind="mergesort").iloc[0]
        rows.append({CONDITION: cond, DOSE: float(top[DOSE]), MAX_RESPONSE: float(top[MAX_RESPONSE])})

    return pd.DataFrame(rows, columns=[CONDITION, DOSE, MAX_RESPONSE])


def _as_lookup(condition_max: ConditionMaxLike) -> dict:
    """Turn any supported ConditionMax representation into {condition: max}."""
    if isinstance(condition_max, pd.DataFrame):
        return dict(zip(condition_max[CONDITION], condition_max[MAX_RESPONSE]))
    if isinstance(condition_max, pd.Series):
        return condition_max.to_dict()
    return dict(condition_max)


def _reference_for(lookup: dict, cond) -> float:
    ref = lookup.get(cond)
    if ref is None or not np.isfinite(ref) or ref <= 0:
        raise MissingReferenceError(cond)
    return float(ref)


def normalize_to_max(
        obs: pd.DataFrame,
        condition_max: ConditionMaxLike | None = None,
) -> pd.DataFrame:
    """
    Rescale every replicate response to a percentage of its condition's
    reference maximum.

        norm_response = 100 * response / max_response[condition]

    Parameters
    ----------
    obs : pd.DataFrame
        Observation records.
    condition_max : DataFrame, Series or mapping, optional
        Reference maxima. Computed from ``obs`` with
        :func:`compute_condition_max` when omitted.
    Returns
    -------
    pd.DataFrame
        Copy of ``obs`` with an added norm_response column.
    Raises
    ------
    MissingReferenceError
        If a condition present in ``obs`` has no reference, or its
        reference is zero, negative or not finite.
    """
    if condition_max is None:
        condition_max = compute_condition_max(obs)
    lookup = _as_lookup(condition_max)

    refs = {cond: _reference_for(lookup, cond) for cond in pd.unique(obs[CONDITION])}

    out = obs.copy()
    out[NORM_RESPONSE] = 100.0 * out[RESPONSE] / out[CONDITION].map(refs).astype(float)
    return out


def denormalize(norm: pd.DataFrame, condition_max: ConditionMaxLike) -> pd.Series:
    """
    Map normalized responses back to the original response scale.

    Inverse of :func:`normalize_to_max` for the same ``condition_max``.
    """
    lookup = _as_lookup(condition_max)
    refs = {cond: _reference_for(lookup, cond) for cond in pd.unique(norm[CONDITION])}
    scale = norm[CONDITION].map(refs).astype(float)
    return (norm[NORM_RESPONSE] * scale / 100.0).rename(RESPONSE)
