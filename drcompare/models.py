"""
models.py
---------------
Mathematical models for dose-response curves.
Provides the 4-parameter log-logistic model and its Jacobian.

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
from scipy.special import expit

PARAM_NAMES = ("hill_slope", "min", "max", "ec50")
N_PARAMS = len(PARAM_NAMES)


def loglogistic4(
        dose: np.ndarray,
        hill_slope: float,
        min: float,
        max: float,
        ec50: float,
) -> np.ndarray:
    """
    4-parameter log-logistic model:

        f(dose) = min + (max - min) / (1 + exp(hill_slope * (log(dose) - log(ec50))))

    A positive hill_slope gives a curve falling from max to min with
    increasing dose; a negative one rises from max to min.

    Parameters
    ----------
    dose : np.ndarray
        Dose array (strictly positive).
    hill_slope : float
        Steepness of the transition.
    min : float
        Asymptote reached as hill_slope * log(dose) -> +inf.
    max : float
        Asymptote reached as hill_slope * log(dose) -> -inf.
    ec50 : float
        Dose at the midpoint between min and max (strictly positive).
    Returns
    -------
    np.ndarray
        Response values at the given doses.
    """
    logd = np.log(np.asarray(dose, dtype=float))
    return loglogistic4_log(logd, hill_slope, min, max, np.log(ec50))


def loglogistic4_log(
        logd: np.ndarray,
        hill_slope: float,
        min: float,
        max: float,
        log_ec50: float,
) -> np.ndarray:
    """
    Same model parameterized in natural-log dose space.

    Uses the logistic function directly so large exponents saturate
    instead of overflowing.
    """
    logd = np.asarray(logd, dtype=float)
    frac = expit(-hill_slope * (logd - log_ec50))
    return min + (max - min) * frac


def loglogistic4_jacobian(
        logd: np.ndarray,
        hill_slope: float,
        min: float,
        max: float,
        log_ec50: float,
) -> np.ndarray:
    """
    Partial derivatives of :func:`loglogistic4_log`.

    Returns
    -------
    np.ndarray
        Array of shape (len(logd), 4), columns ordered
        (hill_slope, min, max, log_ec50).
    """
    logd = np.asarray(logd, dtype=float)
    centered = logd - log_ec50
    s = expit(-hill_slope * centered)
    ds = s * (1.0 - s)
    span = max - min

    jac = np.empty((logd.size, 4), dtype=float)
    jac[:, 0] = -span * ds * centered
    jac[:, 1] = 1.0 - s
    jac[:, 2] = s
    jac[:, 3] = span * ds * hill_slope
    return jac
