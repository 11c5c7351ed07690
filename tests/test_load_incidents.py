import numpy as np
import pandas as pd
import pytest

from terror_waves.config import WAVES
from terror_waves.data_processing.load_incidents import (
    load_incidents, split_waves, validate_wave_subset, coerce_flag, coerce_numeric,
)
from terror_waves.errors import DataValidationError


def test_load_filters_region_and_types_columns(incidents_csv, incidents):
    df = load_incidents(incidents_csv, region="Western Europe")

    assert len(df) == len(incidents)
    assert (df["Region"] == "Western Europe").all()
    assert df["Third_Wave"].dtype == bool
    assert df["Fourth_Wave"].dtype == bool
    assert df["xcoord"].dtype == float
    np.testing.assert_array_equal(df["Third_Wave"].to_numpy(), incidents["Third_Wave"].to_numpy())
    np.testing.assert_array_equal(df["Fourth_Wave"].to_numpy(), incidents["Fourth_Wave"].to_numpy())


def test_load_reads_tab_separated(tmp_path, incidents):
    path = tmp_path / "incidents.tsv"
    incidents.to_csv(path, sep="\t", index=False)
    assert len(load_incidents(path)) == len(incidents)


def test_missing_column_is_fatal(tmp_path, incidents):
    path = tmp_path / "renamed.csv"
    incidents.rename(columns={"B_Dist_km": "border_km"}).to_csv(path, index=False)
    with pytest.raises(DataValidationError, match="B_Dist_km"):
        load_incidents(path)


def test_missing_file(tmp_path):
    with pytest.raises(DataValidationError, match="not found"):
        load_incidents(tmp_path / "nope.csv")


def test_unknown_region(incidents_csv):
    with pytest.raises(DataValidationError, match="Atlantis"):
        load_incidents(incidents_csv, region="Atlantis")


def test_non_numeric_coordinate_is_rejected(tmp_path, incidents):
    df = incidents.astype({"xcoord": object})
    df.loc[3, "xcoord"] = "12,5E"
    path = tmp_path / "bad.csv"
    df.to_csv(path, index=False)
    with pytest.raises(DataValidationError, match="xcoord"):
        load_incidents(path)


def test_coerce_numeric_keeps_missing_as_nan():
    out = coerce_numeric(pd.Series(["1.5", None, "2"], name="ycoord"))
    assert out.iloc[0] == 1.5
    assert np.isnan(out.iloc[1])


@pytest.mark.parametrize("raw, expected", [
    (["TRUE", "false", "Yes", "n"], [True, False, True, False]),
    ([1, 0, 0, 1], [True, False, False, True]),
    ([1.0, 0.0, 1.0, 0.0], [True, False, True, False]),
])
def test_coerce_flag(raw, expected):
    out = coerce_flag(pd.Series(raw, name="Third_Wave"))
    assert out.tolist() == expected


@pytest.mark.parametrize("raw", [["TRUE", "maybe"], [1, 2], ["TRUE", None]])
def test_coerce_flag_rejects_non_boolean(raw):
    with pytest.raises(DataValidationError, match="Third_Wave"):
        coerce_flag(pd.Series(raw, name="Third_Wave"))


def test_split_waves_is_independent_per_flag(incidents):
    subsets = split_waves(incidents, WAVES)

    assert list(subsets) == list(WAVES)
    assert len(subsets["Third Wave"]) == int(incidents["Third_Wave"].sum())
    assert len(subsets["Fourth Wave"]) == int(incidents["Fourth_Wave"].sum())

    both = int((incidents["Third_Wave"] & incidents["Fourth_Wave"]).sum())
    assert both > 0
    merged = subsets["Third Wave"].merge(subsets["Fourth Wave"], on=["xcoord", "ycoord"])
    assert len(merged) == both

    subsets["Third Wave"].loc[0, "xcoord"] = -999.0
    assert (incidents["xcoord"] != -999.0).all()


def test_validate_wave_subset_rejects_empty_and_missing(incidents):
    with pytest.raises(DataValidationError, match="empty"):
        validate_wave_subset(incidents.iloc[0:0], "Third Wave")

    holed = incidents.copy()
    holed.loc[2, "Travel_Time_Average"] = np.nan
    with pytest.raises(DataValidationError, match="Travel_Time_Average"):
        validate_wave_subset(holed, "Third Wave")

    assert validate_wave_subset(incidents) is incidents


def test_region_argument_is_stripped(incidents_csv, incidents):
    df = load_incidents(incidents_csv, region="  Western Europe ")
    assert len(df) == len(incidents)
