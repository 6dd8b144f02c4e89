from dataclasses import dataclass, replace

import pandas as pd

from scripts.config import StoryConfig
from scripts.transform import (
    CountryExplorerView,
    GlobalAverageView,
    LeadingEmittersView,
    country_explorer,
    country_options,
    global_average,
    leading_emitters,
)

GLOBAL_AVERAGE, LEADING_EMITTERS, EXPLORER = 0, 1, 2
SCENES = (GLOBAL_AVERAGE, LEADING_EMITTERS, EXPLORER)
FIRST_SCENE, LAST_SCENE = SCENES[0], SCENES[-1]


@dataclass(frozen=True)
class ViewRequest:
    """What to draw next: a scene index and, for the explorer, a country."""

    scene: int = FIRST_SCENE
    country: str | None = None

    def __post_init__(self):
        if self.scene not in SCENES:
            raise ValueError(f"Scene must be one of {SCENES}, got {self.scene}")


class SceneNavigator:
    """
    Owns the current scene index and selected country.

    Every handler returns True when the caller should recompute the view.
    """

    def __init__(self, scene: int = FIRST_SCENE, country: str | None = None):
        self._request = ViewRequest(scene=scene, country=country)

    @property
    def scene(self) -> int:
        return self._request.scene

    @property
    def country(self) -> str | None:
        return self._request.country

    @property
    def request(self) -> ViewRequest:
        return self._request

    @property
    def dropdown_visible(self) -> bool:
        return self.scene == EXPLORER

    @property
    def has_next(self) -> bool:
        return self.scene < LAST_SCENE

    @property
    def has_previous(self) -> bool:
        return self.scene > FIRST_SCENE

    def next(self) -> bool:
        self._request = replace(self._request, scene=min(self.scene + 1, LAST_SCENE))
        return True

    def previous(self) -> bool:
        self._request = replace(self._request, scene=max(self.scene - 1, FIRST_SCENE))
        return True

    def select_country(self, label: str | None) -> bool:
        # The selection is always stored but only redraws while exploring.
        self._request = replace(self._request, country=label)
        return self.scene == EXPLORER


def default_country(df: pd.DataFrame, cfg: StoryConfig) -> str | None:
    """The configured default if present, otherwise the first real country."""
    options = country_options(df)
    if cfg.default_country in options:
        return cfg.default_country
    real = country_options(df, cfg.aggregates, real_only=True)
    if real:
        return real[0]
    return options[0] if options else None


def compute_view(
    df: pd.DataFrame,
    request: ViewRequest,
    cfg: StoryConfig,
) -> GlobalAverageView | LeadingEmittersView | CountryExplorerView | None:
    """
    Build the derived view for one request. Pure: nothing is cached or mutated.

    Returns None only for the explorer when the dataset has no labels at all.
    """
    if request.scene == GLOBAL_AVERAGE:
        return global_average(df, cfg.include_aggregates_in_average, cfg.aggregates)

    if request.scene == LEADING_EMITTERS:
        r = cfg.ranking
        return leading_emitters(
            df,
            top_k=r.top_k,
            min_coverage=r.min_coverage,
            rules=cfg.aggregates,
            size_legend=r.size_legend,
        )

    country = request.country if request.country is not None else default_country(df, cfg)
    if country is None:
        return None
    return country_explorer(df, country)
