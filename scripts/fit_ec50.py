#!/usr/bin/env python3
"""
Fit log-logistic curves per condition and compare EC50 between conditions.
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

import argparse
from pathlib import Path

from drcompare import FitConfig, load_dose_csv, run_dose_response
from drcompare.config import (
    DOSE_COL,
    FIT_ON,
    FIT_ON_CHOICES,
    CONTRAST_PARAMETER,
    MAX_ITERATIONS,
    CONVERGENCE_TOLERANCE,
    WEIGHTING,
    WEIGHTING_CHOICES,
    FIT_STRATEGY,
    STRATEGY_CHOICES,
    N_JOBS,
)


def main(argv=None) -> None:
    p = argparse.ArgumentParser(description="Fit dose-response curves and compare conditions.")
    p.add_argument(
        "-i", "--input-csv",
        default="../data/dose_response.csv",
        help="Wide CSV with a dose column and one column per sample (C1, C2, E1, ...).",
    )
    p.add_argument(
        "-o", "--out-dir",
        default="../results",
        help="Directory for aggregated points, parameter table and contrasts.",
    )
    p.add_argument("--dose-col", default=DOSE_COL, help="Name of the dose column.")
    p.add_argument("--parameter", default=CONTRAST_PARAMETER, help="Parameter to contrast.")
    p.add_argument("--fit-on", default=FIT_ON, choices=FIT_ON_CHOICES)
    p.add_argument("--weighting", default=WEIGHTING, choices=WEIGHTING_CHOICES)
    p.add_argument("--strategy", default=FIT_STRATEGY, choices=STRATEGY_CHOICES)
    p.add_argument("--max-iterations", type=int, default=MAX_ITERATIONS)
    p.add_argument("--tolerance", type=float, default=CONVERGENCE_TOLERANCE)
    p.add_argument("--n-jobs", type=int, default=N_JOBS)
    args = p.parse_args(argv)

    cfg = FitConfig(
        max_iterations=args.max_iterations,
        convergence_tolerance=args.tolerance,
        weighting=args.weighting,
        strategy=args.strategy,
        n_jobs=args.n_jobs,
    )

    df = load_dose_csv(args.input_csv, dose_col=args.dose_col)
    result = run_dose_response(
        df,
        fit_config=cfg,
        fit_on=args.fit_on,
        parameter=args.parameter,
        dose_col=args.dose_col,
        progress=args.strategy == "independent",
    )

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)
    result.aggregated.to_csv(out_dir / "aggregated.csv", index=False)
    result.condition_max.to_csv(out_dir / "condition_max.csv", index=False)
    result.model.summary().to_csv(out_dir / "parameters.csv", index=False)
    result.model.fit_statistics().to_csv(out_dir / "fit_statistics.csv", index=False)
    result.contrasts.to_csv(out_dir / "contrasts.csv", index=False)

    print(f"Saved fits to {out_dir} (conditions={list(result.model.conditions)}, dof={result.model.dof})")
    for _, row in result.contrasts.iterrows():
        print(
            f"{row['parameter_name']} {row['condition_a']} {row['operator']} {row['condition_b']}: "
            f"{row['estimate']:.4g} (SE {row['std_error']:.3g}, p={row['p_value']:.3g})"
        )


if __name__ == "__main__":
    main()
