import pandas as pd
import pytest

from scripts.config import StoryConfig, ranking_settings
from scripts.transform import standardize


def raw_frame(rows):
    return pd.DataFrame(rows, columns=["country", "year", "co2_per_capita"])


@pytest.fixture
def make_raw():
    return raw_frame


@pytest.fixture
def working():
    """Small cleaned table: five real countries plus two aggregates, 2019-2021."""
    rows = [
        ("United States", "2019", "16.1"),
        ("United States", "2020", "14.2"),
        ("United States", "2021", "14.9"),
        ("China", "2019", "7.6"),
        ("China", "2020", "7.8"),
        ("China", "2021", "8.0"),
        ("India", "2019", "1.9"),
        ("India", "2020", "1.7"),
        ("India", "2021", ""),
        ("Qatar", "2019", "37.0"),
        ("Qatar", "2020", "35.6"),
        ("Australia", "2019", "16.3"),
        ("Australia", "2020", "15.4"),
        ("World", "2019", "4.8"),
        ("World", "2020", "4.5"),
        ("World", "2021", "4.7"),
        ("Africa (GCP)", "2020", "1.0"),
        ("Tuvalu", "2019", "n/a"),
        ("Tuvalu", "2020", ""),
    ]
    return standardize(raw_frame(rows))


@pytest.fixture
def cfg():
    return StoryConfig(ranking=ranking_settings("simple", top_k=3, min_coverage=4))
