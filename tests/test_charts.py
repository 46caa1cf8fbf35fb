"""
Tests for the bubble chart frame and Altair spec.
"""

import json

import pytest

from modmap.charts import BUBBLE_COLUMNS, BUBBLE_SELECTION, bubble_chart, bubble_frame, to_vega_spec
from modmap.config import ChartConfig
from modmap.hierarchy import build_hierarchy
from modmap.pack import pack
from modmap.zoom import activate, initial_state


@pytest.fixture
def layout(inventory_records):
    return pack(build_hierarchy(inventory_records), 932, 932)


class TestBubbleFrame:
    def test_excludes_root(self, layout):
        df = bubble_frame(layout, initial_state(layout))

        assert list(df.columns) == BUBBLE_COLUMNS
        assert len(df) == len(layout) - 1
        assert 0 not in set(df["id"])

    def test_rest_labels_show_root_children(self, layout):
        df = bubble_frame(layout, initial_state(layout))
        shown = set(df.loc[df["label_display"], "name"])
        assert shown == {"Folijet", "Vega", "Volaris"}

    def test_focus_scales_circles(self, layout):
        vega = layout.find("Vega")
        state = activate(layout, initial_state(layout), vega.id)

        df = bubble_frame(layout, state, None, width=932)
        row = df[df["id"] == vega.id].iloc[0]

        assert row["sx"] == pytest.approx(0, abs=1e-6)
        assert row["sy"] == pytest.approx(0, abs=1e-6)
        assert row["sr"] == pytest.approx(466)

    def test_mid_transition_start_matches_previous_view(self, layout):
        vega = layout.find("Vega")
        state = activate(layout, initial_state(layout), vega.id)

        start = bubble_frame(layout, state, 0.0)
        rest = bubble_frame(layout, initial_state(layout))

        assert list(start["sr"]) == pytest.approx(list(rest["sr"]))


def test_bubble_chart_spec(layout):
    spec = to_vega_spec(bubble_chart(layout, initial_state(layout), None, ChartConfig(width=600, height=600)))

    assert isinstance(spec, dict)
    assert len(spec["layer"]) == 3
    assert spec["width"] == 600
    assert spec["height"] == 600


def test_groups_are_click_selectable(layout):
    spec = to_vega_spec(bubble_chart(layout, initial_state(layout)))
    text = json.dumps(spec)

    assert f'"name": "{BUBBLE_SELECTION}"' in text
    assert '"on": "click"' in text
