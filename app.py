import html
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, List, Optional

import streamlit as st

from modmap.charts import BUBBLE_SELECTION, bubble_chart
from modmap.config import ChartConfig, SourceConfig, normalize_chart, normalize_source
from modmap.data import load_inventory_data, prepare_context
from modmap.errors import EmptyDatasetError, FetchExhaustedError
from modmap.filters import ALL_APPLICATIONS, ALL_MODULES, ModuleFilters, unique_values
from modmap.pack import PackedLayout
from modmap.records import parse_csv_as_records, records_frame
from modmap.zoom import FocusState, activate, activate_background, initial_state


# ---------- UI / layout helpers ----------
def inject_base_styles():
    if st.session_state.get("_base_css_injected"):
        return
    st.markdown(
        """
        <style>
        .app-top-bar {padding: 6px 0 4px;border-bottom: 1px solid #e5e7eb;margin-bottom: 10px;}
        .app-top-bar .breadcrumb {color: #6b7280;font-size: 0.9rem;margin-bottom: 2px;}
        .app-top-bar .page-title {font-size: 1.4rem;font-weight: 700;color: #111827;}
        .card {border: 1px solid #e5e7eb;border-radius: 12px;padding: 16px;background: #ffffff;
               box-shadow: 0 1px 2px rgba(0,0,0,0.04); margin-bottom: 12px;}
        .card-title {font-weight: 600;font-size: 1.0rem;color: #111827;}
        .module-card {background: #fff;border: 1px solid #c5c9cb;border-radius: 6px;padding: 8px;margin-bottom: 6px;}
        .module-card a {font-size: 1.1rem;font-weight: bold;color: #476fa0;text-decoration: none;}
        .module-meta {margin-left: 1.5rem;color: #4a5a6a;}
        .module-meta span {font-weight: 500;color: #6c7a89;}
        </style>
        """,
        unsafe_allow_html=True,
    )
    st.session_state["_base_css_injected"] = True


@contextmanager
def card(title: str):
    container = st.container()
    container.markdown(f"<div class='card-title'>{html.escape(title)}</div>", unsafe_allow_html=True)
    body = container.container()
    with body:
        yield body


def render_page_header(title: str, breadcrumb: List[str]):
    inject_base_styles()
    crumbs = " › ".join(html.escape(b) for b in breadcrumb)
    st.markdown(
        f"<div class='app-top-bar'><div class='breadcrumb'>{crumbs}</div><div class='page-title'>{html.escape(title)}</div></div>",
        unsafe_allow_html=True,
    )


def render_modules_list(modules: List[Dict[str, str]]):
    if not modules:
        st.info("No modules to show.")
        return
    parts = []
    for m in modules:
        parts.append(
            "<div class='module-card'>"
            f"<a href='{html.escape(m['url'])}' target='_blank'>{html.escape(m['module'])}</a>"
            "<div class='module-meta'>"
            f"<span>Product owner:</span> {html.escape(m['product_owner'])}<br>"
            f"<span>Lead:</span> {html.escape(m['lead'])}"
            "</div></div>"
        )
    st.markdown("".join(parts), unsafe_allow_html=True)


def focus_options(layout: PackedLayout) -> Dict[str, int]:
    """Selectable groups, labelled with their path from the root."""
    options: Dict[str, int] = {}
    for node in layout:
        if node.is_leaf:
            continue
        path = [n.name for n in reversed(layout.ancestors(node.id))]
        options[" › ".join(path)] = node.id
    return options


def clicked_node(event) -> Optional[int]:
    points = (event or {}).get("selection", {}).get(BUBBLE_SELECTION) or []
    if not points:
        return None
    return int(points[0]["id"])


# ---------- Page ----------
st.set_page_config(page_title="Module Map", layout="wide")
inject_base_styles()
st.title("Module Map")
st.caption("Teams, applications and modules as zoomable bubbles.")

env_source = SourceConfig.from_env()
with st.sidebar:
    st.markdown("### Data source")
    spreadsheet_id = st.text_input("Public spreadsheet id", env_source.spreadsheet_id or "")
    sheet = st.text_input("Sheet gid", env_source.sheet)
    use_proxy = st.checkbox("Retry through proxies", value=env_source.use_proxy)
    uploaded = st.file_uploader("…or upload a CSV export", type=["csv"])

source = normalize_source(
    {
        "spreadsheet_id": spreadsheet_id,
        "sheet": sheet,
        "use_proxy": use_proxy,
        "csv_path": str(env_source.csv_path) if env_source.csv_path else None,
    }
)

try:
    if uploaded is not None:
        records = parse_csv_as_records(uploaded.getvalue().decode("utf-8-sig"))
        data_ctx = {"source": uploaded.name, "records": records, "frame": records_frame(records)}
    else:
        data_ctx = load_inventory_data(source)
except FetchExhaustedError as exc:
    st.error(f"Could not load the spreadsheet: {exc}")
    st.stop()

records = data_ctx.get("records") or []
if not records:
    st.error("No data found. Enter a public spreadsheet id, upload a CSV, or place a CSV under data/.")
    st.stop()

with st.sidebar:
    st.markdown("---")
    st.markdown("### Filters")
    if st.button("Reset filters"):
        st.session_state["filter_application"] = ALL_APPLICATIONS
        st.session_state["filter_module"] = ALL_MODULES
    selected_application = st.selectbox(
        "Application",
        [ALL_APPLICATIONS] + unique_values(records, "application"),
        key="filter_application",
    )
    selected_module = st.selectbox(
        "Module",
        [ALL_MODULES] + unique_values(records, "module"),
        key="filter_module",
    )

    st.markdown("---")
    with st.expander("Chart settings", expanded=False):
        size = st.slider("Chart size (px)", min_value=400, max_value=1200, value=ChartConfig().width, step=50)
        padding = st.slider("Padding", 0.0, 10.0, ChartConfig().padding, 0.5)
        interpolation = st.selectbox("Zoom path", ["zoom", "linear"])

chart_cfg = normalize_chart({"width": size, "height": size, "padding": padding, "interpolation": interpolation})
filters = ModuleFilters(
    selected_module="" if selected_module == ALL_MODULES else selected_module,
    selected_application="" if selected_application == ALL_APPLICATIONS else selected_application,
)

try:
    ctx = prepare_context(filters, data_ctx, chart_cfg)
except EmptyDatasetError as exc:
    st.warning(str(exc))
    st.stop()

layout: PackedLayout = ctx["layout"]

# The layout is rebuilt wholesale on new data; a stale focus resets to the root.
layout_key = (Path(str(data_ctx.get("source"))).name, filters, chart_cfg)
if st.session_state.get("layout_key") != layout_key:
    st.session_state["layout_key"] = layout_key
    st.session_state["focus_state"] = initial_state(layout)
state: FocusState = st.session_state["focus_state"]

options = focus_options(layout)
labels_by_id = {v: k for k, v in options.items()}
chart_col, list_col = st.columns([3, 1])
with chart_col:
    c1, c2 = st.columns([4, 1])
    choice = c1.selectbox(
        "Zoom to",
        list(options.keys()),
        index=list(options.values()).index(state.focused) if state.focused in labels_by_id else 0,
    )
    if options[choice] != state.focused:
        state = activate(layout, state, options[choice], config=chart_cfg)
    if c2.button("Back to overview"):
        state = activate_background(layout, state, config=chart_cfg)
    st.session_state["focus_state"] = state

    render_page_header(layout.node(state.focused).name, [n.name for n in reversed(layout.ancestors(state.focused))])
    event = st.altair_chart(bubble_chart(layout, state, None, chart_cfg), use_container_width=False, on_select="rerun")
    clicked = clicked_node(event)
    if clicked is not None:
        # A click on the focused group falls through to the background.
        if clicked == state.focused:
            new_state = activate_background(layout, state, config=chart_cfg)
        else:
            new_state = activate(layout, state, clicked, config=chart_cfg)
        if new_state is not state:
            st.session_state["focus_state"] = new_state
            st.rerun()

with list_col:
    visible = {n.name for n in layout.descendants(state.focused) if n.is_leaf}
    shown = [m for m in ctx["modules"] if m["module"] in visible]
    with card(f"Modules ({len(shown)})"):
        render_modules_list(shown)

with st.expander("Records", expanded=False):
    st.dataframe(ctx["filtered_frame"], use_container_width=True, hide_index=True)
    st.download_button(
        "Download CSV",
        data=ctx["filtered_frame"].to_csv(index=False).encode("utf-8"),
        file_name="modules.csv",
        mime="text/csv",
    )
