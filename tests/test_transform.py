import numpy as np
import pandas as pd
import pytest

from scripts.transform import Observation, parse_row, standardize, to_observations


def test_rows_with_bad_years_are_dropped(make_raw):
    df = standardize(
        make_raw(
            [
                ("USA", "1970", "15"),
                ("USA", "abc", "3"),
                ("USA", "", "2"),
                ("USA", "1970.5", "1"),
                ("USA", " 1971 ", ""),
                ("USA", "1e20", "4"),
                ("USA", "99999999999999999999", "5"),
                ("USA", "-1e19", "6"),
            ]
        )
    )
    assert df["year"].tolist() == [1970, 1971]
    assert df["year"].dtype == "int64"


@pytest.mark.parametrize("text", ["", "   ", "n/a", "abc", "inf"])
def test_unusable_values_keep_the_row(make_raw, text):
    df = standardize(make_raw([("Chad", "2000", text)]))
    assert len(df) == 1
    assert np.isnan(df.loc[0, "value"])


def test_values_are_trimmed_and_parsed(make_raw):
    df = standardize(make_raw([("France", "2001", " 5.5 "), ("France", "2002", "6")]))
    assert df["value"].tolist() == [5.5, 6.0]


def test_country_text_is_passed_through(make_raw):
    df = standardize(make_raw([(" Côte d'Ivoire ", "2000", "0.4"), (None, "2000", "1")]))
    assert df["country"].tolist() == [" Côte d'Ivoire ", ""]


def test_custom_header_names():
    raw = pd.DataFrame({"Entity": ["Chile"], "Year": ["2010"], "co2": ["4.4"]})
    df = standardize(raw, {"country": "Entity", "year": "Year", "value": "co2"})
    assert to_observations(df) == [Observation("Chile", 2010, 4.4)]


def test_missing_header_raises():
    with pytest.raises(ValueError, match="Missing columns"):
        standardize(pd.DataFrame({"country": ["A"], "year": ["2000"]}))


def test_parse_row():
    row = {"country": "France", "year": "2001", "co2_per_capita": "5.5"}
    assert parse_row(row) == Observation("France", 2001, 5.5)


def test_parse_row_rejects_bad_year():
    assert parse_row({"country": "France", "year": "soon", "co2_per_capita": "5.5"}) is None


def test_parse_row_absent_value():
    obs = parse_row({"country": "France", "year": "2001", "co2_per_capita": ""})
    assert obs == Observation("France", 2001, None)
    assert not obs.has_value


def test_empty_table(make_raw):
    df = standardize(make_raw([]))
    assert df.empty
    assert list(df.columns) == ["country", "year", "value"]
