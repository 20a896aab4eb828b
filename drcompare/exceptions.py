"""
exceptions.py
-------------
Failure taxonomy of the dose-response pipeline.

Every stage raises one of these instead of emitting partial or sentinel
records. They all derive from DoseResponseError so callers can catch the
whole family at once.
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


class DoseResponseError(Exception):
    """Base class for all pipeline failures."""


class ParseError(DoseResponseError, ValueError):
    """Malformed wide input table or sample identifier."""

    def __init__(self, message: str, value=None):
        super().__init__(message)
        self.value = value


class MissingReferenceError(DoseResponseError, ValueError):
    """No usable normalization maximum exists for a condition."""

    def __init__(self, condition):
        super().__init__(
            f"No positive reference maximum available for condition {condition!r}"
        )
        self.condition = condition


class ConvergenceError(DoseResponseError, RuntimeError):
    """The least-squares solver did not reach a solution."""

    def __init__(self, message: str, nfev: int | None = None):
        super().__init__(message)
        self.nfev = nfev


class UnderDeterminedFitError(ConvergenceError):
    """A condition has fewer data points than free parameters."""

    def __init__(self, condition, n_points: int, n_params: int):
        super().__init__(
            f"Condition {condition!r} has {n_points} point(s) "
            f"but the model has {n_params} free parameters"
        )
        self.condition = condition
        self.n_points = n_points
        self.n_params = n_params


class WeightingError(DoseResponseError, ValueError):
    """Inverse-variance weights cannot be formed from the given sem values."""

    def __init__(self, message: str, condition=None):
        super().__init__(message)
        self.condition = condition


class InvalidParameterError(DoseResponseError, ValueError):
    """Unknown model parameter name."""

    def __init__(self, name, valid):
        super().__init__(f"Unknown parameter {name!r}; expected one of {list(valid)}")
        self.name = name


class InvalidConditionError(DoseResponseError, ValueError):
    """Condition label was not part of the fit."""

    def __init__(self, condition, valid):
        super().__init__(f"Condition {condition!r} was not fit; fitted: {list(valid)}")
        self.condition = condition


class FitWarning(UserWarning):
    """Non-fatal numerical diagnostic raised by the fitter."""
