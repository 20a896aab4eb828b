"""
Configuration and constants for dose-response fitting and comparison.
Dynamically loaded from config.yaml.
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

import os
import warnings
from dataclasses import dataclass
from pathlib import Path

import yaml

# 1. Locate config.yaml
# Assumes config.yaml is in the project root (parents[1] relative to drcompare/).
# DRCOMPARE_CONFIG takes precedence when set.
BASE_DIR = Path(__file__).resolve().parent.parent
CONFIG_PATH = Path(os.environ.get("DRCOMPARE_CONFIG", BASE_DIR / "config.yaml"))

WEIGHTING_CHOICES = ("none", "inverse_variance")
STRATEGY_CHOICES = ("joint", "independent")
FIT_ON_CHOICES = ("means", "replicates")


def load_yaml_config(path: Path) -> dict:
    """
    Safe load the yaml config.

    Falls back to ``config.yaml`` in the current working directory and
    returns an empty mapping when neither file exists.
    """
    if not path.exists():
        path = Path("config.yaml")
        if not path.exists():
            return {}

    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


# 2. Load the Config
try:
    _cfg = load_yaml_config(CONFIG_PATH)
except (OSError, yaml.YAMLError) as e:
    warnings.warn(f"Failed to load config.yaml ({e}); using built-in defaults.")
    _cfg = {}

_exp = _cfg.get("experiment", {}) or {}
_fit = _cfg.get("fit", {}) or {}
_cmp = _cfg.get("comparison", {}) or {}

# 3. Map YAML values to Python Constants
# .get() with defaults keeps a partial config.yaml usable

# Wide input table
_cols = _exp.get("column_names", {}) or {}
DOSE_COL = _cols.get("dose", "Dose")
SAMPLE_PATTERN = _exp.get("sample_pattern", r"^(?P<condition>[A-Za-z])(?P<replicate>[0-9]+)$")

# Curve fitting
MAX_ITERATIONS = int(_fit.get("max_iterations", 500))
CONVERGENCE_TOLERANCE = float(_fit.get("convergence_tolerance", 1e-8))
WEIGHTING = str(_fit.get("weighting", "none"))
FIT_STRATEGY = str(_fit.get("strategy", "joint"))
FIT_ON = str(_fit.get("fit_on", "means"))
N_JOBS = int(_fit.get("n_jobs", 1))

# Parameter comparison
CONTRAST_PARAMETER = str(_cmp.get("parameter", "ec50"))
CONFIDENCE_LEVEL = float(_cmp.get("confidence_level", 0.95))

# Long-format record columns shared by every stage
DOSE = "dose"
SAMPLE_ID = "sample_id"
CONDITION = "condition"
REPLICATE = "replicate"
RESPONSE = "response"
NORM_RESPONSE = "norm_response"
MAX_RESPONSE = "max_response"
MEAN_RESPONSE = "mean_response"
SEM = "sem"
N_REPLICATES = "n"
PREDICTION = "prediction"


@dataclass(frozen=True)
class FitConfig:
    """
    Settings for the log-logistic curve fitter.

    max_iterations bounds the optimizer's function evaluations;
    convergence_tolerance is used for ftol, xtol and gtol alike.
    """
    max_iterations: int = MAX_ITERATIONS
    convergence_tolerance: float = CONVERGENCE_TOLERANCE
    weighting: str = WEIGHTING
    strategy: str = FIT_STRATEGY
    n_jobs: int = N_JOBS

    def __post_init__(self):
        if self.max_iterations < 1:
            raise ValueError(f"max_iterations must be >= 1, got {self.max_iterations}")
        if not self.convergence_tolerance > 0:
            raise ValueError(
                f"convergence_tolerance must be > 0, got {self.convergence_tolerance}"
            )
        if self.weighting not in WEIGHTING_CHOICES:
            raise ValueError(
                f"weighting must be one of {WEIGHTING_CHOICES}, got {self.weighting!r}"
            )
        if self.strategy not in STRATEGY_CHOICES:
            raise ValueError(
                f"strategy must be one of {STRATEGY_CHOICES}, got {self.strategy!r}"
            )
