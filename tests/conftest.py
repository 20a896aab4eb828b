import matplotlib

matplotlib.use("Agg")

import numpy as np
import pandas as pd
import pytest

from drcompare.models import loglogistic4

DOSES = np.logspace(-2, 3, 8)
FOUR_DOSES = np.array([1.0, 10.0, 100.0, 1000.0])


def make_wide_table(
        ec50s,
        doses=DOSES,
        n_reps=3,
        noise_sd=30.0,
        seed=0,
        hill_slope=-1.5,
        bottom=200.0,
        top=2000.0,
):
    """
    Wide replicate table: a "Dose" column plus one <Condition><Rep>
    column per replicate, raw responses following a rising log-logistic
    curve per condition.
    """
    rng = np.random.default_rng(seed)
    data = {"Dose": np.asarray(doses, dtype=float)}
    for cond, ec50 in ec50s.items():
        clean = loglogistic4(doses, hill_slope, bottom, top, ec50)
        for rep in range(1, n_reps + 1):
            data[f"{cond}{rep}"] = clean + rng.normal(0.0, noise_sd, size=len(doses))
    return pd.DataFrame(data)


@pytest.fixture
def shifted_table():
    """Condition E has an EC50 one log-unit above condition C."""
    return make_wide_table({"C": 1.0, "E": 10.0}, seed=11)


@pytest.fixture
def identical_table():
    """Condition E repeats condition C with a small alternating offset."""
    wide = make_wide_table({"C": 1.0}, seed=5)
    offset = np.where(np.arange(len(wide)) % 2 == 0, 5.0, -5.0)
    for rep in (1, 2, 3):
        wide[f"E{rep}"] = wide[f"C{rep}"] + offset
    return wide


@pytest.fixture
def clean_points():
    """Noise-free aggregated points for two conditions with known parameters."""
    rows = []
    truth = {
        "C": dict(hill_slope=-1.2, min=10.0, max=100.0, ec50=1.0),
        "E": dict(hill_slope=-0.8, min=5.0, max=95.0, ec50=20.0),
    }
    for cond, p in truth.items():
        y = loglogistic4(DOSES, p["hill_slope"], p["min"], p["max"], p["ec50"])
        for d, v in zip(DOSES, y):
            rows.append({"dose": d, "condition": cond, "mean_response": v, "sem": 1.0, "n": 3})
    return pd.DataFrame(rows), truth


@pytest.fixture
def four_dose_shifted_table():
    """Four doses 1..1000, condition E shifted one decade above C."""
    return make_wide_table({"C": 30.0, "E": 300.0}, doses=FOUR_DOSES, noise_sd=5.0, seed=3)


@pytest.fixture
def four_dose_identical_table():
    """Four doses 1..1000, condition E a scaled copy of C."""
    wide = make_wide_table({"C": 30.0}, doses=FOUR_DOSES, noise_sd=5.0, seed=3)
    for rep in (1, 2, 3):
        wide[f"E{rep}"] = 1.1 * wide[f"C{rep}"]
    return wide
