from pathlib import Path

import pytest

from scripts.config import StoryConfig, load_config, parse_config, ranking_settings


def test_missing_file_gives_defaults(tmp_path):
    cfg = load_config(tmp_path / "nope.yml")
    assert cfg == StoryConfig()
    assert cfg.ranking.top_k == 5
    assert cfg.include_aggregates_in_average


def test_load_yaml(tmp_path):
    fp = tmp_path / "story.yml"
    fp.write_text(
        """
data:
  path: elsewhere/co2.csv
  columns:
    country: Entity
ranking:
  variant: bubble
average:
  include_aggregates: false
aggregates:
  keywords: [World, Bloc]
explorer:
  default_country: Chile
""",
        encoding="utf-8",
    )
    cfg = load_config(fp)
    assert cfg.data_path == Path("elsewhere/co2.csv")
    assert cfg.columns == {"country": "Entity", "year": "year", "value": "co2_per_capita"}
    assert (cfg.ranking.top_k, cfg.ranking.min_coverage, cfg.ranking.size_legend) == (30, 30, True)
    assert not cfg.include_aggregates_in_average
    assert cfg.aggregates.keywords == ("world", "bloc")
    assert cfg.default_country == "Chile"


def test_shipped_config_loads():
    cfg = load_config(Path(__file__).resolve().parents[1] / "config" / "story.yml")
    assert cfg.ranking.variant == "simple"
    assert len(cfg.scenes) == 3
    assert "eu" in cfg.aggregates.tokens


def test_overrides():
    r = ranking_settings("simple", top_k=1, min_coverage=1)
    assert (r.top_k, r.min_coverage) == (1, 1)


@pytest.mark.parametrize("variant,k,cov", [("treemap", None, None), ("simple", 0, None), ("bubble", None, -1)])
def test_bad_ranking_settings(variant, k, cov):
    with pytest.raises(ValueError):
        ranking_settings(variant, k, cov)


def test_scene_count_is_fixed():
    with pytest.raises(ValueError, match="3 scenes"):
        parse_config({"scenes": [{"title": "only one"}]})


@pytest.mark.parametrize("key", ["keywords", "tokens", "exceptions"])
def test_empty_aggregate_keys_use_defaults(key):
    cfg = parse_config({"aggregates": {key: None}})
    assert cfg.aggregates == StoryConfig().aggregates


def test_empty_aggregate_list_is_kept():
    cfg = parse_config({"aggregates": {"exceptions": []}})
    assert cfg.aggregates.exceptions == ()
