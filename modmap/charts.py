from __future__ import annotations

import math
from typing import Any, Dict, Optional

import altair as alt
import pandas as pd

from modmap.config import ChartConfig
from modmap.pack import PackedLayout
from modmap.zoom import FocusState, current_viewport, label_states, project

alt.data_transformers.disable_max_rows()

DEPTH_COLOR_RANGE = ["hsl(152,80%,80%)", "hsl(228,30%,40%)"]
LEAF_FILL = "white"
BUBBLE_SELECTION = "bubble"

BUBBLE_COLUMNS = [
    "id",
    "name",
    "depth",
    "is_leaf",
    "sx",
    "sy",
    "sr",
    "area",
    "label_opacity",
    "label_display",
]


def to_vega_spec(chart: alt.TopLevelMixin) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def bubble_frame(layout: PackedLayout, state: FocusState, t: Optional[float] = None, width: float = 932) -> pd.DataFrame:
    """Screen-space circles and label states for every node except the root."""
    viewport = current_viewport(state, t)
    labels = label_states(layout, state, t)
    rows = []
    for circle in project(layout, viewport, width):
        node = layout.nodes[circle.id]
        if node.parent is None:
            continue
        label = labels[node.id]
        rows.append(
            {
                "id": node.id,
                "name": node.name,
                "depth": node.depth,
                "is_leaf": node.is_leaf,
                "sx": circle.x,
                "sy": circle.y,
                "sr": circle.r,
                "area": math.pi * circle.r * circle.r,
                "label_opacity": label.opacity,
                "label_display": label.display,
            }
        )
    return pd.DataFrame(rows, columns=BUBBLE_COLUMNS)


def bubble_chart(
    layout: PackedLayout,
    state: FocusState,
    t: Optional[float] = None,
    config: Optional[ChartConfig] = None,
) -> alt.LayerChart:
    """Layered bubble chart. A click on a group selects its ``id`` under ``BUBBLE_SELECTION``."""
    config = config or ChartConfig()
    df = bubble_frame(layout, state, t, width=config.width)
    half_w = config.width / 2
    half_h = config.height / 2

    x = alt.X("sx:Q", axis=None, scale=alt.Scale(domain=[-half_w, half_w], nice=False, zero=False))
    y = alt.Y("sy:Q", axis=None, scale=alt.Scale(domain=[-half_h, half_h], nice=False, zero=False, reverse=True))
    base = alt.Chart(df).encode(x=x, y=y)
    # Only groups carry the selection; a click on a leaf or label selects nothing.
    clicked = alt.selection_point(name=BUBBLE_SELECTION, on="click", fields=["id"], empty=False)

    groups = (
        base.transform_filter(alt.datum.is_leaf == False)  # noqa: E712
        .mark_circle(opacity=1, clip=True)
        .encode(
            size=alt.Size("area:Q", scale=None, legend=None),
            color=alt.Color(
                "depth:Q",
                legend=None,
                scale=alt.Scale(domain=[0, 5], range=DEPTH_COLOR_RANGE, interpolate="hcl"),
            ),
            tooltip=["name", "depth"],
        )
        .add_params(clicked)
    )
    leaves = (
        base.transform_filter(alt.datum.is_leaf == True)  # noqa: E712
        .mark_circle(opacity=1, clip=True, color=LEAF_FILL)
        .encode(size=alt.Size("area:Q", scale=None, legend=None), tooltip=["name"])
    )
    labels = (
        base.transform_filter(alt.datum.label_display == True)  # noqa: E712
        .mark_text(fontSize=config.label_font_size, font="sans-serif", align="center", clip=True)
        .encode(text="name:N", opacity=alt.Opacity("label_opacity:Q", scale=None, legend=None))
    )

    return (
        alt.layer(groups, leaves, labels)
        .properties(width=config.width, height=config.height, background=DEPTH_COLOR_RANGE[0])
        .configure_view(stroke=None)
    )
