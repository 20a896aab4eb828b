#!/usr/bin/env python3
"""
Plot aggregated dose-response points with fitted curves and a
goodness-of-fit panel.
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

import matplotlib.pyplot as plt

from drcompare import load_dose_csv, run_dose_response, goodness_of_fit
from drcompare.plotting import plot_dose_response, plot_goodness_of_fit
from drcompare.config import DOSE_COL


def main(argv=None) -> None:
    p = argparse.ArgumentParser(description="Plot fitted dose-response curves.")
    p.add_argument("-i", "--input-csv", default="../data/dose_response.csv")
    p.add_argument("-o", "--out-dir", default="../results/plots")
    p.add_argument("--dose-col", default=DOSE_COL)
    p.add_argument("--show", action="store_true", help="Display figures interactively.")
    args = p.parse_args(argv)

    out_dir = Path(args.out_dir)
    out_dir.mkdir(parents=True, exist_ok=True)

    df = load_dose_csv(args.input_csv, dose_col=args.dose_col)
    result = run_dose_response(df, dose_col=args.dose_col)

    fig, ax = plt.subplots(figsize=(7, 5))
    plot_dose_response(result.aggregated, result.model, ax=ax)
    fig.savefig(out_dir / "dose_response_curves.png", dpi=300, bbox_inches="tight")

    gof = goodness_of_fit(result.model, result.aggregated)
    fig2, _ = plot_goodness_of_fit(gof)
    fig2.savefig(out_dir / "goodness_of_fit.png", dpi=300, bbox_inches="tight")

    print(f"Saved plots to {out_dir}")
    if args.show:
        plt.show()
    plt.close("all")


if __name__ == "__main__":
    main()
