from dataclasses import dataclass, field
from pathlib import Path

import yaml

CONFIG_PATH = Path("config/story.yml")

# Ranking presets: how many leaders to show and how many real countries a
# year needs before it counts as "latest".
VARIANTS = {
    "simple": {"top_k": 5, "min_coverage": 5, "size_legend": False},
    "bubble": {"top_k": 30, "min_coverage": 30, "size_legend": True},
}

DEFAULT_KEYWORDS = [
    "world",
    "africa",
    "asia",
    "europe",
    "north america",
    "south america",
    "oceania",
    "antarctica",
    "european union",
    "income",
    "oecd",
    "sub-saharan",
    "latin america",
    "middle east",
    "caribbean",
    "micronesia",
    "melanesia",
    "polynesia",
    "international",
]
DEFAULT_TOKENS = ["eu"]
DEFAULT_EXCEPTIONS = ["South Africa", "Central African Republic"]

DEFAULT_SCENES = [
    {"title": "The global average", "annotation": ""},
    {"title": "The leading emitters", "annotation": ""},
    {"title": "Explore a country", "annotation": ""},
]


@dataclass(frozen=True)
class AggregateRules:
    keywords: tuple[str, ...] = tuple(DEFAULT_KEYWORDS)
    tokens: tuple[str, ...] = tuple(DEFAULT_TOKENS)
    exceptions: tuple[str, ...] = tuple(DEFAULT_EXCEPTIONS)


@dataclass(frozen=True)
class RankingSettings:
    variant: str = "simple"
    top_k: int = 5
    min_coverage: int = 5
    size_legend: bool = False


@dataclass(frozen=True)
class SceneText:
    title: str
    annotation: str = ""


@dataclass(frozen=True)
class StoryConfig:
    data_path: Path = Path("data/co2.csv")
    country_col: str = "country"
    year_col: str = "year"
    value_col: str = "co2_per_capita"
    ranking: RankingSettings = field(default_factory=RankingSettings)
    include_aggregates_in_average: bool = True
    aggregates: AggregateRules = field(default_factory=AggregateRules)
    default_country: str | None = None
    scenes: tuple[SceneText, ...] = tuple(SceneText(**s) for s in DEFAULT_SCENES)

    @property
    def columns(self) -> dict[str, str]:
        return {"country": self.country_col, "year": self.year_col, "value": self.value_col}


def ranking_settings(variant: str, top_k: int | None = None, min_coverage: int | None = None) -> RankingSettings:
    """Resolve a variant preset, applying any explicit overrides."""
    if variant not in VARIANTS:
        raise ValueError(f"Unknown ranking variant {variant!r}; expected one of {sorted(VARIANTS)}")

    preset = VARIANTS[variant]
    k = preset["top_k"] if top_k is None else int(top_k)
    cov = preset["min_coverage"] if min_coverage is None else int(min_coverage)
    if k < 1:
        raise ValueError(f"ranking.top_k must be positive, got {k}")
    if cov < 1:
        raise ValueError(f"ranking.min_coverage must be positive, got {cov}")
    return RankingSettings(variant=variant, top_k=k, min_coverage=cov, size_legend=preset["size_legend"])


def _or_default(value, default):
    # an empty YAML key loads as None
    return default if value is None else value


def parse_config(raw: dict | None) -> StoryConfig:
    """Build a StoryConfig from the mapping found in story.yml."""
    raw = raw or {}
    data = raw.get("data") or {}
    cols = data.get("columns") or {}
    ranking = raw.get("ranking") or {}
    agg = raw.get("aggregates") or {}
    explorer = raw.get("explorer") or {}

    scenes_raw = raw.get("scenes") or DEFAULT_SCENES
    if len(scenes_raw) != 3:
        raise ValueError(f"Expected exactly 3 scenes in config, found {len(scenes_raw)}")
    scenes = tuple(
        SceneText(title=str(s.get("title", "")), annotation=str(s.get("annotation") or ""))
        for s in scenes_raw
    )

    return StoryConfig(
        data_path=Path(data.get("path", "data/co2.csv")),
        country_col=cols.get("country", "country"),
        year_col=cols.get("year", "year"),
        value_col=cols.get("value", "co2_per_capita"),
        ranking=ranking_settings(
            ranking.get("variant", "simple"),
            ranking.get("top_k"),
            ranking.get("min_coverage"),
        ),
        include_aggregates_in_average=bool((raw.get("average") or {}).get("include_aggregates", True)),
        aggregates=AggregateRules(
            keywords=tuple(str(k).lower() for k in _or_default(agg.get("keywords"), DEFAULT_KEYWORDS)),
            tokens=tuple(str(t).lower() for t in _or_default(agg.get("tokens"), DEFAULT_TOKENS)),
            exceptions=tuple(str(e) for e in _or_default(agg.get("exceptions"), DEFAULT_EXCEPTIONS)),
        ),
        default_country=explorer.get("default_country"),
        scenes=scenes,
    )


def load_config(path: Path = CONFIG_PATH) -> StoryConfig:
    """Load story.yml, or fall back to the built-in defaults if it is missing."""
    if not path.exists():
        return StoryConfig()
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    return parse_config(raw)
