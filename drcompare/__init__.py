"""
drcompare – dose-response comparison toolkit.

This package turns replicate dose/response tables from two or more
experimental conditions into max-normalized mean curves, fits a
4-parameter log-logistic model per condition (EC50, Hill slope, min,
max) and tests parameter differences between conditions.

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

from .config import (
    DOSE_COL,
    MAX_ITERATIONS,
    CONVERGENCE_TOLERANCE,
    WEIGHTING,
    FitConfig,
)
from .exceptions import (
    DoseResponseError,
    ParseError,
    MissingReferenceError,
    ConvergenceError,
    UnderDeterminedFitError,
    WeightingError,
    InvalidParameterError,
    InvalidConditionError,
    FitWarning,
)
from .dataio import load_dose_csv, parse_sample_name, tidy_replicates
from .normalize import compute_condition_max, normalize_to_max, denormalize
from .aggregate import aggregate_replicates
from .models import loglogistic4, PARAM_NAMES
from .fit import FittedModel, fit_curves
from .compare import Contrast, compare_parameters, compare_all_pairs
from .predict import predict, predict_curve_grid, goodness_of_fit
from .pipeline import DoseResponseResult, run_dose_response

__all__ = [
    "DOSE_COL",
    "MAX_ITERATIONS",
    "CONVERGENCE_TOLERANCE",
    "WEIGHTING",
    "FitConfig",
    "DoseResponseError",
    "ParseError",
    "MissingReferenceError",
    "ConvergenceError",
    "UnderDeterminedFitError",
    "WeightingError",
    "InvalidParameterError",
    "InvalidConditionError",
    "FitWarning",
    "load_dose_csv",
    "parse_sample_name",
    "tidy_replicates",
    "compute_condition_max",
    "normalize_to_max",
    "denormalize",
    "aggregate_replicates",
    "loglogistic4",
    "PARAM_NAMES",
    "FittedModel",
    "fit_curves",
    "Contrast",
    "compare_parameters",
    "compare_all_pairs",
    "predict",
    "predict_curve_grid",
    "goodness_of_fit",
    "DoseResponseResult",
    "run_dose_response",
]
