"""
Data loading and reshaping for replicate dose-response tables.
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

import re
from typing import Tuple

import numpy as np
import pandas as pd

from .config import (
    DOSE_COL,
    SAMPLE_PATTERN,
    DOSE,
    SAMPLE_ID,
    CONDITION,
    REPLICATE,
    RESPONSE,
)
from .exceptions import ParseError

OBSERVATION_COLUMNS = [DOSE, SAMPLE_ID, CONDITION, REPLICATE, RESPONSE]

_SAMPLE_RE = re.compile(SAMPLE_PATTERN)


def load_dose_csv(path: str, dose_col: str = DOSE_COL) -> pd.DataFrame:
    """
    Load a wide dose-response table from CSV.

    Assumes a column 'Unnamed: 0' can be dropped if present.

    Parameters
    ----------
    path : str
        Path to the CSV file.
    dose_col : str
        Name of the dose column.
    Returns
    -------
    pd.DataFrame
        One dose column plus one numeric column per sample.
    """
    df = pd.read_csv(path)
    if "Unnamed: 0" in df.columns:
        df = df.drop(columns=["Unnamed: 0"])
    if dose_col not in df.columns:
        raise ParseError(f"Missing dose column {dose_col!r}", value=dose_col)
    # Ensure sample columns are numeric; unreadable cells become missing
    for col in df.columns:
        df[col] = pd.to_numeric(df[col], errors="coerce")
    return df


def parse_sample_name(name: str) -> Tuple[str, int]:
    """
    Split a sample column name such as "C1" or "E12" into
    (condition, replicate).

    Raises
    ------
    ParseError
        If the name is not a single condition letter followed by digits.
    """
    m = _SAMPLE_RE.match(str(name))
    if m is None:
        raise ParseError(
            f"Sample name {name!r} does not match <ConditionLetter><ReplicateDigits>",
            value=name,
        )
    return m.group("condition"), int(m.group("replicate"))


def tidy_replicates(df: pd.DataFrame, dose_col: str = DOSE_COL) -> pd.DataFrame:
    """
    Reshape a wide replicate table into long Observation records.

    Every non-missing sample cell becomes one row; missing cells are
    dropped, never imputed. Rows come out sample by sample in column order,
    and within a sample in input row order.

    Parameters
    ----------
    df : pd.DataFrame
        Table with ``dose_col`` plus one column per sample.
    dose_col : str
        Name of the dose column.
    Returns
    -------
    pd.DataFrame
        Columns: dose, sample_id, condition, replicate, response.
    """
    if dose_col not in df.columns:
        raise ParseError(f"Missing dose column {dose_col!r}", value=dose_col)

    doses = pd.to_numeric(df[dose_col], errors="coerce").to_numpy(dtype=float)
    if not np.all(np.isfinite(doses)) or np.any(doses <= 0):
        raise ParseError("Dose column must contain finite, strictly positive values")

    sample_cols = [c for c in df.columns if c != dose_col]
    if not sample_cols:
        raise ParseError("Table has no sample columns besides the dose column")
    parsed = {col: parse_sample_name(col) for col in sample_cols}

    seen = {}
    for col, key in parsed.items():
        if key in seen:
            raise ParseError(
                f"Samples {seen[key]!r} and {col!r} both map to condition "
                f"{key[0]!r}, replicate {key[1]}",
                value=col,
            )
        seen[key] = col
    if len(np.unique(doses)) != len(doses):
        raise ParseError("Dose column contains repeated doses")

    long = df.rename(columns={dose_col: DOSE}).melt(
        id_vars=[DOSE],
        value_vars=sample_cols,
        var_name=SAMPLE_ID,
        value_name=RESPONSE,
    )
    long[DOSE] = long[DOSE].astype(float)
    long[RESPONSE] = pd.to_numeric(long[RESPONSE], errors="coerce")
    long[CONDITION] = long[SAMPLE_ID].map(lambda s: parsed[s][0])
    long[REPLICATE] = long[SAMPLE_ID].map(lambda s: parsed[s][1]).astype(int)
    long[SAMPLE_ID] = long[SAMPLE_ID].astype(str)

    long = long.dropna(subset=[RESPONSE]).reset_index(drop=True)
    return long[OBSERVATION_COLUMNS]
