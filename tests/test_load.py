import pytest

from scripts.transform import DatasetLoadError, load_dataset, read_raw, run


def write(tmp_path, text, name="co2.csv"):
    fp = tmp_path / name
    fp.write_text(text, encoding="utf-8")
    return fp


def test_load_dataset(tmp_path):
    fp = write(
        tmp_path,
        "country,year,co2_per_capita,iso_code\n"
        "France,2000,6.1,FRA\n"
        "France,bad,6.2,FRA\n"
        "NA,2000,,NAM\n",
    )
    df = load_dataset(fp)
    assert df["country"].tolist() == ["France", "NA"]
    assert df["value"].isna().tolist() == [False, True]


def test_missing_file(tmp_path):
    with pytest.raises(DatasetLoadError, match="not found"):
        load_dataset(tmp_path / "absent.csv")


def test_missing_columns(tmp_path):
    fp = write(tmp_path, "country,year\nFrance,2000\n")
    with pytest.raises(DatasetLoadError, match="co2_per_capita"):
        read_raw(fp)


def test_empty_file_is_a_load_error(tmp_path):
    with pytest.raises(DatasetLoadError):
        load_dataset(write(tmp_path, ""))


def test_header_only_is_no_data(tmp_path):
    df = load_dataset(write(tmp_path, "country,year,co2_per_capita\n"))
    assert df.empty


def test_run_summary(tmp_path, capsys):
    data = write(
        tmp_path,
        "country,year,co2_per_capita\n"
        "Chile,2020,4.3\n"
        "Peru,2020,1.5\n"
        "World,2020,4.5\n"
        "Peru,x,1.0\n",
    )
    cfg = write(
        tmp_path,
        f"data:\n  path: {data.as_posix()}\nranking:\n  variant: simple\n  min_coverage: 1\nexplorer:\n  default_country: Peru\n",
        name="story.yml",
    )
    run(cfg)
    out = capsys.readouterr().out
    assert "[INFO] Read 4 rows" in out
    assert "1 dropped for bad years" in out
    assert "top 2 in 2020: Chile, Peru" in out
    assert "Explorer: Peru has 1 readings" in out


def test_run_reports_load_error(tmp_path, capsys):
    cfg = write(tmp_path, f"data:\n  path: {(tmp_path / 'absent.csv').as_posix()}\n", name="story.yml")
    run(cfg)
    assert "[ERROR] Dataset not found" in capsys.readouterr().out


def test_short_rows_still_load(tmp_path):
    fp = write(tmp_path, "country,year,co2_per_capita\nFrance,2000\nChile,2001,4.0\n")
    df = load_dataset(fp)
    assert df["country"].tolist() == ["France", "Chile"]
    assert df["value"].isna().tolist() == [True, False]
