import numpy as np
import pandas as pd
import pytest

from drcompare import (
    MissingReferenceError,
    aggregate_replicates,
    compute_condition_max,
    denormalize,
    normalize_to_max,
    tidy_replicates,
)


def _obs(rows):
    return pd.DataFrame(rows, columns=["dose", "sample_id", "condition", "replicate", "response"])


def test_condition_max_uses_dose_means_not_raw_replicates():
    # raw maximum (30) sits at dose 1, but the highest mean is at dose 10
    obs = _obs([
        (1.0, "C1", "C", 1, 30.0),
        (1.0, "C2", "C", 2, 0.0),
        (10.0, "C1", "C", 1, 20.0),
        (10.0, "C2", "C", 2, 20.0),
    ])

    cmax = compute_condition_max(obs)

    row = cmax.set_index("condition").loc["C"]
    assert row["max_response"] == pytest.approx(20.0)
    assert row["dose"] == 10.0


def test_condition_max_tie_break_is_deterministic():
    df = pd.DataFrame({
        "Dose": [1.0, 10.0, 100.0],
        "C1": [5.0, 10.0, 10.0],
        "C2": [5.0, 10.0, 10.0],
    })
    obs = tidy_replicates(df)

    picks = {compute_condition_max(obs).loc[0, "dose"] for _ in range(5)}
    shuffled = compute_condition_max(obs.sample(frac=1.0, random_state=3))

    assert picks == {10.0}
    assert shuffled.loc[0, "dose"] == 10.0


def test_normalized_means_peak_at_100(shifted_table):
    obs = tidy_replicates(shifted_table)
    agg = aggregate_replicates(normalize_to_max(obs))

    peaks = agg.groupby("condition")["mean_response"].max()
    np.testing.assert_allclose(peaks.to_numpy(), 100.0, rtol=1e-12)


def test_normalize_denormalize_round_trip(shifted_table):
    obs = tidy_replicates(shifted_table)
    cmax = compute_condition_max(obs)
    norm = normalize_to_max(obs, cmax)

    back = denormalize(norm, cmax)

    np.testing.assert_allclose(back.to_numpy(), obs["response"].to_numpy(), rtol=1e-12)


def test_normalize_accepts_mapping_reference():
    obs = _obs([(1.0, "C1", "C", 1, 5.0), (10.0, "C1", "C", 1, 50.0)])
    norm = normalize_to_max(obs, {"C": 50.0})
    assert norm["norm_response"].tolist() == pytest.approx([10.0, 100.0])


def test_normalize_fails_for_condition_without_reference():
    obs = _obs([(1.0, "C1", "C", 1, 5.0), (1.0, "E1", "E", 1, 6.0)])
    with pytest.raises(MissingReferenceError) as exc:
        normalize_to_max(obs, {"C": 5.0})
    assert exc.value.condition == "E"


@pytest.mark.parametrize("bad", [0.0, -3.0, np.nan])
def test_normalize_fails_for_unusable_reference(bad):
    obs = _obs([(1.0, "C1", "C", 1, 5.0)])
    with pytest.raises(MissingReferenceError):
        normalize_to_max(obs, {"C": bad})


def test_normalize_fails_when_all_means_are_zero():
    obs = _obs([(1.0, "C1", "C", 1, 0.0), (10.0, "C1", "C", 1, 0.0)])
    with pytest.raises(MissingReferenceError):
        normalize_to_max(obs)


def test_aggregate_mean_and_sem():
    norm = pd.DataFrame({
        "dose": [1.0, 1.0, 1.0, 10.0],
        "condition": ["C", "C", "C", "C"],
        "norm_response": [1.0, 2.0, 3.0, 7.0],
    })

    agg = aggregate_replicates(norm)

    first = agg.iloc[0]
    assert first["mean_response"] == pytest.approx(2.0)
    assert first["sem"] == pytest.approx(1.0 / np.sqrt(3.0))
    assert first["n"] == 3
    # single replicate: spread is undefined, not zero
    assert np.isnan(agg.iloc[1]["sem"])
    assert agg.iloc[1]["n"] == 1


def test_aggregate_single_points_is_idempotent():
    norm = pd.DataFrame({
        "dose": [1.0, 10.0, 1.0],
        "condition": ["C", "C", "E"],
        "norm_response": [4.0, 9.0, 2.0],
    })
    once = aggregate_replicates(norm)
    twice = aggregate_replicates(once, value_col="mean_response")

    pd.testing.assert_frame_equal(once, twice)
    assert once["sem"].isna().all()


def test_aggregate_one_replicate_per_dose_has_no_sem():
    df = pd.DataFrame({"Dose": [1.0, 10.0, 100.0], "C1": [1.0, 5.0, 9.0], "E1": [2.0, 3.0, 4.0]})
    agg = aggregate_replicates(normalize_to_max(tidy_replicates(df)))
    assert agg["sem"].isna().all()
    assert len(agg) == 6
