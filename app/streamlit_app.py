import re

import altair as alt
import pandas as pd
import streamlit as st

from scripts.config import load_config
from scripts.scenes import EXPLORER, GLOBAL_AVERAGE, LEADING_EMITTERS, SceneNavigator, compute_view, default_country
from scripts.transform import (
    DatasetLoadError,
    UnknownCountryError,
    country_options,
    load_dataset,
)
from scripts.validate import COUNTRY, VALUE, YEAR

# -------------------------
# Page + constants
# -------------------------
st.set_page_config(page_title="CO₂ per capita: three views", layout="wide")
st.title("CO₂ emissions per capita")
st.caption("Tonnes of CO₂ per person, by country and year. Data may be subject to revision.")

CFG = load_config()
UNIT = "t CO₂ per capita"

# Fixed colours for countries that show up in most stories
COUNTRY_COLOURS = {
    "United States": "#1f77b4",
    "China": "#d62728",
    "India": "#ff7f0e",
    "Qatar": "#8c564b",
    "Australia": "#2ca02c",
    "Canada": "#9467bd",
}


@st.cache_data(show_spinner=False)
def load_data(path: str) -> pd.DataFrame:
    """Working dataset, read once per file path."""
    return load_dataset(path, CFG.columns)


def build_download_name(title: str, extent: tuple[int, int] | None, countries: list[str]) -> str:
    """Create a friendly download filename for chart export."""
    parts: list[str] = ["CO2 per capita", title]
    if extent:
        parts.append(f"{extent[0]}-{extent[1]}")
    if countries:
        parts.append(", ".join(countries[:3]) + ("" if len(countries) <= 3 else ", …"))

    name = " — ".join(parts)
    name = re.sub(r"[\\/:*?\"<>|]+", "-", name)  # illegal path chars
    name = re.sub(r"\s+", " ", name).strip()
    return name


def altair_colour_scale(present: list[str]) -> alt.Scale:
    """Colour scale mapping countries to fixed colours where we have one."""
    domain: list[str] = []
    rng: list[str] = []

    for c in present:
        if c in COUNTRY_COLOURS:
            domain.append(c)
            rng.append(COUNTRY_COLOURS[c])

    if len(domain) == len(present) and rng:
        return alt.Scale(domain=domain, range=rng)
    return alt.Scale(domain=present)


def year_axis(extent: tuple[int, int] | None) -> alt.X:
    scale = alt.Scale(domain=list(extent), nice=False) if extent else alt.Undefined
    return alt.X(f"{YEAR}:Q", title="Year", scale=scale, axis=alt.Axis(format="d"))


def value_axis() -> alt.Y:
    return alt.Y(f"{VALUE}:Q", title=UNIT, scale=alt.Scale(zero=True))


def tooltip(with_country: bool = True) -> list[alt.Tooltip]:
    tips = [
        alt.Tooltip(f"{YEAR}:Q", title="Year", format="d"),
        alt.Tooltip(f"{VALUE}:Q", title=UNIT, format=".2f"),
    ]
    if with_country:
        tips.insert(0, alt.Tooltip(f"{COUNTRY}:N", title="Country"))
    return tips


def annotation_layer(year: int, value: float, text: str) -> alt.LayerChart:
    """Marker plus label anchored on one data point."""
    anchor = pd.DataFrame({YEAR: [year], VALUE: [value], "label": [text]})
    base = alt.Chart(anchor).encode(x=f"{YEAR}:Q", y=f"{VALUE}:Q")
    marker = base.mark_point(size=120, color="black", filled=False)
    label = base.mark_text(align="left", dx=10, dy=-14, fontWeight="bold").encode(text="label:N")
    return marker + label


def make_average_chart(view, text: str) -> alt.LayerChart:
    """Line of the yearly mean with an annotated peak."""
    line = (
        alt.Chart(view.series)
        .mark_line(point=True, color="#444")
        .encode(x=year_axis(view.year_extent), y=value_axis(), tooltip=tooltip(with_country=False))
    )
    peak = view.peak()
    if text and peak:
        return (line + annotation_layer(peak[0], peak[1], text)).properties(height=420)
    return line.properties(height=420)


def make_leaders_chart(view, text: str) -> alt.LayerChart:
    """One line per leading country; the bubble variant adds sized markers at the chosen year."""
    scale = altair_colour_scale(view.leaders)
    lines = (
        alt.Chart(view.series)
        .mark_line()
        .encode(
            x=year_axis(view.year_extent),
            y=value_axis(),
            color=alt.Color(f"{COUNTRY}:N", title="Country", scale=scale, sort=view.leaders),
            tooltip=tooltip(),
        )
    )
    layers = lines

    if view.size_legend:
        latest = view.ranking.assign(**{YEAR: view.year})
        bubbles = (
            alt.Chart(latest)
            .mark_circle(opacity=0.6)
            .encode(
                x=f"{YEAR}:Q",
                y=f"{VALUE}:Q",
                color=alt.Color(f"{COUNTRY}:N", scale=scale, sort=view.leaders, legend=None),
                size=alt.Size(
                    f"{VALUE}:Q",
                    title=f"{view.year} ({UNIT})",
                    legend=alt.Legend(values=view.size_legend.as_list(), format=".1f"),
                ),
                tooltip=tooltip(),
            )
        )
        layers = layers + bubbles

    if text and not view.ranking.empty:
        top = view.ranking.iloc[0]
        layers = layers + annotation_layer(view.year, float(top[VALUE]), f"{top[COUNTRY]}: {text}")
    return layers.properties(height=420).interactive()


def make_explorer_chart(view, text: str) -> alt.LayerChart:
    """Selected country's history with hoverable points."""
    data = view.series.assign(**{COUNTRY: view.country})
    base = alt.Chart(data).encode(x=year_axis(view.year_extent), y=value_axis())
    chart = base.mark_line() + base.mark_circle(size=40).encode(tooltip=tooltip())
    latest = view.latest()
    if text and latest:
        chart = chart + annotation_layer(latest[0], latest[1], text)
    return chart.properties(height=420)


# -------------------------
# Navigation state
# -------------------------
if "nav" not in st.session_state:
    st.session_state.nav = SceneNavigator()
    st.session_state.stale = True
nav: SceneNavigator = st.session_state.nav


def on_next():
    st.session_state.stale = nav.next() or st.session_state.stale


def on_previous():
    st.session_state.stale = nav.previous() or st.session_state.stale


def on_country():
    st.session_state.stale = nav.select_country(st.session_state.country_pick) or st.session_state.stale


# -------------------------
# Data
# -------------------------
try:
    df = load_data(str(CFG.data_path))
except DatasetLoadError as e:
    st.error(f"Could not load the dataset. {e}")
    st.stop()

if nav.country is None:
    nav.select_country(default_country(df, CFG))

# -------------------------
# Step indicator + buttons
# -------------------------
steps = st.columns(len(CFG.scenes))
for i, (col, scene_text) in enumerate(zip(steps, CFG.scenes)):
    label = f"{i + 1}. {scene_text.title}"
    col.markdown(f"**{label}**" if i == nav.scene else f"<span style='color:#999'>{label}</span>", unsafe_allow_html=True)

left, right, _ = st.columns([1, 1, 6])
left.button("← Previous", on_click=on_previous, disabled=not nav.has_previous)
right.button("Next →", on_click=on_next, disabled=not nav.has_next)

if nav.dropdown_visible:
    options = country_options(df)
    if options:
        st.selectbox(
            "Country",
            options,
            index=options.index(nav.country) if nav.country in options else 0,
            key="country_pick",
            on_change=on_country,
        )

# -------------------------
# Current scene
# -------------------------
scene_text = CFG.scenes[nav.scene]
st.subheader(scene_text.title)

if st.session_state.stale or "view" not in st.session_state:
    try:
        st.session_state.view = compute_view(df, nav.request, CFG)
    except UnknownCountryError:
        st.session_state.view = None
        st.error(f"{nav.country!r} is not in the dataset.")
        st.stop()
    st.session_state.stale = False
view = st.session_state.view

if view is None or (view.is_empty and nav.scene != EXPLORER):
    st.info("No data available for this view.")
    st.stop()

if nav.scene == GLOBAL_AVERAGE:
    st.caption(f"Mean of every reported entry per year, {view.year_extent[0]}–{view.year_extent[1]}.")
    chart = make_average_chart(view, scene_text.annotation)
    dl_name = build_download_name(scene_text.title, view.year_extent, [])

elif nav.scene == LEADING_EMITTERS:
    r = CFG.ranking
    st.caption(f"Top {len(view.leaders)} countries in {view.year}, the latest year with at least {r.min_coverage} countries reporting.")
    top = view.ranking.iloc[0]
    st.metric(f"Highest in {view.year}: {top[COUNTRY]} ({UNIT})", f"{top[VALUE]:,.2f}")
    chart = make_leaders_chart(view, scene_text.annotation)
    dl_name = build_download_name(scene_text.title, view.year_extent, view.leaders)

else:
    latest = view.latest()
    if latest is None:
        lo, hi = view.year_extent
        st.info(f"No CO₂ per capita readings for {view.country} ({lo}–{hi}).")
    else:
        st.metric(f"{view.country} in {latest[0]} ({UNIT})", f"{latest[1]:,.2f}")
    chart = make_explorer_chart(view, scene_text.annotation)
    dl_name = build_download_name(view.country, view.year_extent, [view.country])

alt.renderers.set_embed_options(
    actions={"export": True, "source": False, "compiled": False, "editor": False},
    downloadFileName=dl_name,
)
st.altair_chart(chart, use_container_width=True)

with st.expander("Data"):
    st.dataframe(view.ranking if nav.scene == LEADING_EMITTERS else view.series)
