from __future__ import annotations

import logging
import math

import numpy as np
import pandas as pd
from fastapi import FastAPI
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from api.schemas import ChartRequestModel, FocusRequestModel, MetaListResponse, ViewRequestModel
from modmap.charts import bubble_chart, bubble_frame, to_vega_spec
from modmap.config import ChartConfig, SourceConfig, normalize_chart
from modmap.data import load_inventory_data, prepare_context
from modmap.errors import EmptyDatasetError, FetchExhaustedError, LayoutPreconditionError
from modmap.filters import normalize_filters, unique_values
from modmap.zoom import FocusState, activate, activate_at, activate_background, initial_state


app = FastAPI(title="Module Map API", version="0.1.0")
logger = logging.getLogger(__name__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000", "http://127.0.0.1:3000"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_source() -> SourceConfig:
    return SourceConfig.from_env()


def _chart_from_model(request: ViewRequestModel) -> ChartConfig:
    return normalize_chart(request.chart.model_dump())


def _context(request: ViewRequestModel):
    data_ctx = load_inventory_data(get_source())
    chart = _chart_from_model(request)
    ctx = prepare_context(normalize_filters(request.filters.model_dump()), data_ctx, chart)
    return chart, ctx


def _json(data: object) -> JSONResponse:
    """Return JSON with safe encoding for pandas/numpy objects."""

    def _safe_float(value: object) -> float | None:
        try:
            out = float(value)  # type: ignore[arg-type]
        except Exception:
            return None
        if math.isnan(out) or math.isinf(out):
            return None
        return out

    return JSONResponse(
        content=jsonable_encoder(
            data,
            custom_encoder={
                np.integer: int,
                float: _safe_float,
                np.floating: _safe_float,
                np.bool_: bool,
                np.ndarray: lambda arr: arr.tolist(),
            },
        )
    )


def _error(exc: Exception, name: str) -> JSONResponse:
    if isinstance(exc, (EmptyDatasetError, LayoutPreconditionError)):
        logger.warning("%s rejected: %s", name, exc)
        return JSONResponse(status_code=422, content={"error": str(exc), "type": type(exc).__name__})
    if isinstance(exc, FetchExhaustedError):
        logger.error("%s: data source unavailable: %s", name, exc)
        return JSONResponse(
            status_code=502,
            content={"error": str(exc), "type": type(exc).__name__, "attempts": exc.attempts},
        )
    logger.exception("%s failed", name)
    return JSONResponse(status_code=500, content={"error": str(exc), "type": type(exc).__name__})


@app.get("/meta/applications", response_model=MetaListResponse)
def meta_applications():
    try:
        data_ctx = load_inventory_data(get_source())
        return _json({"values": unique_values(data_ctx.get("records", []), "application")})
    except Exception as exc:
        return _error(exc, "meta_applications")


@app.get("/meta/modules", response_model=MetaListResponse)
def meta_modules():
    try:
        data_ctx = load_inventory_data(get_source())
        return _json({"values": unique_values(data_ctx.get("records", []), "module")})
    except Exception as exc:
        return _error(exc, "meta_modules")


@app.post("/hierarchy")
def hierarchy(request: ViewRequestModel):
    try:
        _, ctx = _context(request)
        return _json(ctx["tree"])
    except Exception as exc:
        return _error(exc, "hierarchy")


@app.post("/layout")
def layout(request: ViewRequestModel):
    try:
        _, ctx = _context(request)
        return _json(ctx["layout"].to_dict())
    except Exception as exc:
        return _error(exc, "layout")


@app.post("/focus")
def focus(request: FocusRequestModel):
    """Activate a node by id, or by a click at screen ``(sx, sy)``.

    With neither, the click landed on the background and the root is refocused.
    """
    try:
        chart, ctx = _context(request)
        packed = ctx["layout"]
        state = FocusState.from_dict(request.state.model_dump()) if request.state else initial_state(packed)
        opts = {"t": request.t, "slow": request.slow, "config": chart}
        if request.sx is not None and request.sy is not None:
            new_state = activate_at(packed, state, request.sx, request.sy, **opts)
        elif request.node_id is None:
            new_state = activate_background(packed, state, **opts)
        else:
            new_state = activate(packed, state, request.node_id, **opts)
        return _json({"state": new_state.to_dict(), "focused_name": packed.node(new_state.focused).name})
    except KeyError as exc:
        return JSONResponse(status_code=404, content={"error": f"Unknown node {exc}", "type": "KeyError"})
    except Exception as exc:
        return _error(exc, "focus")


@app.post("/chart")
def chart(request: ChartRequestModel):
    try:
        chart_cfg, ctx = _context(request)
        packed = ctx["layout"]
        state = FocusState.from_dict(request.state.model_dump()) if request.state else initial_state(packed)
        return _json(
            {
                "spec": to_vega_spec(bubble_chart(packed, state, request.t, chart_cfg)),
                "bubbles": bubble_frame(packed, state, request.t, width=chart_cfg.width).to_dict(orient="records"),
            }
        )
    except Exception as exc:
        return _error(exc, "chart")


@app.post("/modules")
def modules(request: ViewRequestModel):
    try:
        _, ctx = _context(request)
        return _json({"modules": ctx["modules"]})
    except Exception as exc:
        return _error(exc, "modules")


@app.get("/export/records.csv")
def export_records():
    try:
        data_ctx = load_inventory_data(get_source())
    except Exception as exc:
        return _error(exc, "export_records")
    export_df = data_ctx.get("frame")
    if export_df is None or not hasattr(export_df, "to_csv"):
        export_df = pd.DataFrame()
    csv_bytes = export_df.to_csv(index=False).encode("utf-8")
    return Response(
        content=csv_bytes,
        media_type="text/csv",
        headers={"Content-Disposition": "attachment; filename=records.csv"},
    )
