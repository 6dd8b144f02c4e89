import numpy as np
import pandas as pd
import pandera as pa
from pandera import Column, Check

COUNTRY, YEAR, VALUE = "country", "year", "value"

WORKING_SCHEMA = pa.DataFrameSchema(
    {
        COUNTRY: Column(str, coerce=True),
        YEAR: Column("int64"),
        VALUE: Column("float64", nullable=True, checks=Check(lambda s: np.isfinite(s))),
    },
    strict=True,
    ordered=True,
)


def validate_working(df: pd.DataFrame) -> pd.DataFrame:
    """Check the cleaned table: text country, integer year, finite-or-absent value."""
    return WORKING_SCHEMA.validate(df, lazy=True)


def raw_schema(required: list[str]) -> pa.DataFrameSchema:
    """Header check for the source table: the named text columns must exist, others are ignored."""
    return pa.DataFrameSchema(
        {c: Column(str, nullable=True, coerce=True) for c in required},
        strict=False,
    )


RAW_SCHEMA = raw_schema(["country", "year", "co2_per_capita"])


def validate_raw(df: pd.DataFrame, required: list[str]) -> pd.DataFrame:
    return raw_schema(required).validate(df, lazy=True)


def schema_failures(err: pa.errors.SchemaErrors) -> list[str]:
    return sorted({str(c) for c in err.failure_cases["failure_case"]})


if __name__ == "__main__":
    import sys

    from scripts.config import load_config
    from scripts.transform import DatasetLoadError, load_dataset

    cfg = load_config()
    try:
        load_dataset(cfg.data_path, cfg.columns)
    except DatasetLoadError as e:
        print(f"[ERROR] {e}")
        sys.exit(1)
    except pa.errors.SchemaErrors as e:
        print(f"[ERROR] {cfg.data_path} failed validation:\n{e.failure_cases}")
        sys.exit(1)
    print(f"[INFO] {cfg.data_path} is valid.")
