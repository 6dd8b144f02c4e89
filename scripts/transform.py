import re
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path

import numpy as np
import pandas as pd
import pandera as pa

from scripts.config import CONFIG_PATH, AggregateRules, load_config
from scripts.validate import COUNTRY, VALUE, YEAR, schema_failures, validate_raw, validate_working

# Header fields of the source CSV, keyed by the working column they feed
RAW_COLUMNS = {COUNTRY: "country", YEAR: "year", VALUE: "co2_per_capita"}


class DatasetLoadError(Exception):
    """The source table could not be read (missing file, bad header, unreadable)."""


class UnknownCountryError(KeyError):
    """The requested label does not occur anywhere in the working dataset."""


@dataclass(frozen=True)
class Observation:
    country: str
    year: int
    value: float | None = None

    @property
    def has_value(self) -> bool:
        return self.value is not None


# -------------------------
# Row parsing & validation
# -------------------------

def _text(s: pd.Series) -> pd.Series:
    return s.fillna("").astype(str).str.strip()


def standardize(raw: pd.DataFrame, columns: Mapping[str, str] | None = None) -> pd.DataFrame:
    """
    Turn raw text rows into the working dataset (country, year, value).

    Rows whose year is not an integer are dropped. Values that are empty,
    non-numeric or non-finite become NaN but the row is kept. Country text is
    passed through as-is, with missing labels turned into "".
    """
    columns = dict(columns or RAW_COLUMNS)
    df = raw.copy()
    df.columns = [str(c).strip() for c in df.columns]
    try:
        validate_raw(df, list(columns.values()))
    except pa.errors.SchemaErrors as e:
        raise ValueError(f"Missing columns {schema_failures(e)}. Columns found: {list(df.columns)}") from e

    country = df[columns[COUNTRY]].fillna("").astype(str)

    years = pd.to_numeric(_text(df[columns[YEAR]]), errors="coerce").astype("float64")
    # whole numbers that fit in int64
    keep = np.isfinite(years) & (years == np.floor(years)) & (years >= -(2.0**63)) & (years < 2.0**63)

    values = pd.to_numeric(_text(df[columns[VALUE]]), errors="coerce").astype("float64")
    values = values.where(np.isfinite(values))

    out = pd.DataFrame(
        {
            COUNTRY: country[keep].to_numpy(dtype=object),
            YEAR: years[keep].astype("int64").to_numpy(),
            VALUE: values[keep].to_numpy(dtype="float64"),
        }
    )
    return validate_working(out)


def parse_row(row: Mapping[str, object], columns: Mapping[str, str] | None = None) -> Observation | None:
    """Parse one raw row; None means the row is rejected (bad year)."""
    df = standardize(pd.DataFrame([dict(row)]), columns)
    if df.empty:
        return None
    rec = df.iloc[0]
    value = None if pd.isna(rec[VALUE]) else float(rec[VALUE])
    return Observation(country=str(rec[COUNTRY]), year=int(rec[YEAR]), value=value)


def to_observations(df: pd.DataFrame) -> list[Observation]:
    return [
        Observation(country=c, year=int(y), value=None if pd.isna(v) else float(v))
        for c, y, v in zip(df[COUNTRY], df[YEAR], df[VALUE])
    ]


def read_raw(path: Path, columns: Mapping[str, str] | None = None) -> pd.DataFrame:
    """Read the source CSV as text, checking that the header has what we need."""
    columns = dict(columns or RAW_COLUMNS)
    fp = Path(path)
    if not fp.exists():
        raise DatasetLoadError(f"Dataset not found at {fp}")

    try:
        raw = pd.read_csv(fp, dtype=str, keep_default_na=False, low_memory=False)
    except (OSError, UnicodeDecodeError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        raise DatasetLoadError(f"Could not read {fp}: {e}") from e

    raw.columns = [c.strip() for c in raw.columns]
    try:
        validate_raw(raw, list(columns.values()))
    except pa.errors.SchemaErrors as e:
        raise DatasetLoadError(
            f"{fp} is missing columns {schema_failures(e)}. Columns found: {list(raw.columns)}"
        ) from e
    return raw


def load_dataset(path: Path, columns: Mapping[str, str] | None = None) -> pd.DataFrame:
    return standardize(read_raw(path, columns), columns)


# -------------------------
# Aggregate / region labels
# -------------------------

def is_aggregate(label: str | None, rules: AggregateRules | None = None) -> bool:
    """
    True for labels that name a group rather than a country.

    Empty labels, anything with a parenthesis, and anything containing one of
    the region keywords (substring, case-insensitive) are aggregates. Short
    acronyms in `rules.tokens` only match as whole words.
    """
    rules = rules or AggregateRules()
    if label is None:
        return True
    text = str(label)
    if text in rules.exceptions:
        return False
    if not text.strip() or "(" in text or ")" in text:
        return True

    lower = text.lower()
    if any(k in lower for k in rules.keywords):
        return True
    words = set(re.findall(r"[a-z0-9]+", lower))
    return any(t in words for t in rules.tokens)


def aggregate_mask(df: pd.DataFrame, rules: AggregateRules | None = None) -> pd.Series:
    flags = {c: is_aggregate(c, rules) for c in df[COUNTRY].unique()}
    return df[COUNTRY].map(flags).astype(bool)


def numeric_rows(df: pd.DataFrame) -> pd.DataFrame:
    return df[df[VALUE].notna()]


def country_options(df: pd.DataFrame, rules: AggregateRules | None = None, real_only: bool = False) -> list[str]:
    """Sorted labels for the explorer dropdown."""
    labels = [c for c in df[COUNTRY].unique().tolist() if c.strip()]
    if real_only:
        labels = [c for c in labels if not is_aggregate(c, rules)]
    return sorted(labels)


def year_extent(frame: pd.DataFrame) -> tuple[int, int] | None:
    if frame.empty:
        return None
    return int(frame[YEAR].min()), int(frame[YEAR].max())


# -------------------------
# Derived views
# -------------------------

@dataclass(frozen=True, eq=False)
class GlobalAverageView:
    series: pd.DataFrame  # year, value

    @property
    def is_empty(self) -> bool:
        return self.series.empty

    @property
    def year_extent(self) -> tuple[int, int] | None:
        return year_extent(self.series)

    def peak(self) -> tuple[int, float] | None:
        if self.is_empty:
            return None
        row = self.series.loc[self.series[VALUE].idxmax()]
        return int(row[YEAR]), float(row[VALUE])


@dataclass(frozen=True)
class SizeLegend:
    minimum: float
    median: float
    maximum: float

    def as_list(self) -> list[float]:
        return [self.minimum, self.median, self.maximum]


@dataclass(frozen=True, eq=False)
class LeadingEmittersView:
    year: int | None
    ranking: pd.DataFrame  # rank, country, value in the chosen year
    series: pd.DataFrame  # country, year, value for every leader
    size_legend: SizeLegend | None = None

    @property
    def is_empty(self) -> bool:
        return self.year is None

    @property
    def leaders(self) -> list[str]:
        return self.ranking[COUNTRY].tolist()

    @property
    def year_extent(self) -> tuple[int, int] | None:
        return year_extent(self.series)


@dataclass(frozen=True, eq=False)
class CountryExplorerView:
    country: str
    series: pd.DataFrame  # year, value
    year_extent: tuple[int, int]

    @property
    def is_empty(self) -> bool:
        return self.series.empty

    def latest(self) -> tuple[int, float] | None:
        if self.is_empty:
            return None
        row = self.series.iloc[-1]
        return int(row[YEAR]), float(row[VALUE])


def global_average(
    df: pd.DataFrame,
    include_aggregates: bool = True,
    rules: AggregateRules | None = None,
) -> GlobalAverageView:
    """Mean value per year over every numeric observation, ascending by year."""
    rows = numeric_rows(df)
    if not include_aggregates:
        rows = rows[~aggregate_mask(rows, rules)]
    series = (
        rows.groupby(YEAR, sort=True)[VALUE]
        .mean()
        .reset_index()
    )
    return GlobalAverageView(series=series[[YEAR, VALUE]])


def choose_latest_year(qualifying: pd.DataFrame, min_coverage: int) -> int | None:
    """Most recent year with at least `min_coverage` countries, else the most recent year."""
    if qualifying.empty:
        return None
    counts = qualifying.groupby(YEAR)[COUNTRY].nunique().sort_index(ascending=False)
    covered = counts[counts >= min_coverage]
    if not covered.empty:
        return int(covered.index[0])
    return int(counts.index[0])


def leading_emitters(
    df: pd.DataFrame,
    top_k: int = 5,
    min_coverage: int = 5,
    rules: AggregateRules | None = None,
    size_legend: bool = False,
) -> LeadingEmittersView:
    """Top `top_k` real countries in the latest well-covered year, with full histories."""
    rows = numeric_rows(df)
    qualifying = rows[~aggregate_mask(rows, rules)]
    year = choose_latest_year(qualifying, min_coverage)
    if year is None:
        return LeadingEmittersView(
            year=None,
            ranking=pd.DataFrame(columns=["rank", COUNTRY, VALUE]),
            series=pd.DataFrame(columns=[COUNTRY, YEAR, VALUE]),
        )

    ranked = (
        qualifying[qualifying[YEAR] == year]
        .sort_values(VALUE, ascending=False, kind="mergesort")
        .drop_duplicates(COUNTRY, keep="first")
        .head(top_k)
    )
    leaders = ranked[COUNTRY].tolist()
    ranking = pd.DataFrame(
        {"rank": range(1, len(leaders) + 1), COUNTRY: leaders, VALUE: ranked[VALUE].to_numpy()}
    )

    order = {c: i for i, c in enumerate(leaders)}
    series = rows[rows[COUNTRY].isin(leaders)]
    series = (
        series.assign(_order=series[COUNTRY].map(order))
        .sort_values(["_order", YEAR], kind="mergesort")
        .drop(columns="_order")
        .reset_index(drop=True)
    )

    legend = None
    if size_legend:
        vals = ranking[VALUE].to_numpy(dtype="float64")
        legend = SizeLegend(
            minimum=float(vals.min()),
            median=float(np.percentile(vals, 50)),
            maximum=float(vals.max()),
        )

    return LeadingEmittersView(year=year, ranking=ranking, series=series, size_legend=legend)


def country_explorer(df: pd.DataFrame, country: str) -> CountryExplorerView:
    """Numeric, year-sorted history of one label plus its full year extent."""
    rows = df[df[COUNTRY] == country]
    if rows.empty:
        raise UnknownCountryError(country)

    series = (
        numeric_rows(rows)
        .sort_values(YEAR, kind="mergesort")[[YEAR, VALUE]]
        .reset_index(drop=True)
    )
    return CountryExplorerView(country=country, series=series, year_extent=year_extent(rows))


# -------------------------
# Command line summary
# -------------------------

def run(config_path: Path = CONFIG_PATH):
    cfg = load_config(config_path)
    columns = cfg.columns

    try:
        raw = read_raw(cfg.data_path, columns)
    except DatasetLoadError as e:
        print(f"[ERROR] {e}")
        return

    df = standardize(raw, columns)
    absent = int(df[VALUE].isna().sum())
    print(f"[INFO] Read {len(raw):,} rows from {cfg.data_path}")
    print(f"[INFO] Kept {len(df):,} rows ({len(raw) - len(df):,} dropped for bad years, {absent:,} without a value)")

    avg = global_average(df, cfg.include_aggregates_in_average, cfg.aggregates)
    if avg.is_empty:
        print("[WARN] Global average: no numeric values, nothing to average.")
    else:
        lo, hi = avg.year_extent
        print(f"[INFO] Global average: yearly mean over {lo}-{hi} ({len(avg.series)} years)")

    r = cfg.ranking
    lead = leading_emitters(df, r.top_k, r.min_coverage, cfg.aggregates, r.size_legend)
    if lead.is_empty:
        print("[WARN] Leading emitters: no real-country values to rank.")
    else:
        print(f"[INFO] Leading emitters: top {len(lead.leaders)} in {lead.year}: {', '.join(lead.leaders)}")
        if lead.size_legend:
            print(f"[INFO] Leading emitters: size legend {lead.size_legend.as_list()}")

    if cfg.default_country:
        try:
            view = country_explorer(df, cfg.default_country)
        except UnknownCountryError:
            print(f"[WARN] Explorer: default country {cfg.default_country!r} not in dataset.")
        else:
            print(f"[INFO] Explorer: {view.country} has {len(view.series)} readings over {view.year_extent}")


if __name__ == "__main__":
    run()
