from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Optional, Tuple

DEFAULT_PROXIES: Tuple[str, ...] = ("https://api.allorigins.win/raw?url=",)


@dataclass(frozen=True)
class ChartConfig:
    width: int = 932
    height: int = 932
    padding: float = 3.0
    duration: float = 750.0
    slow_duration: float = 7500.0
    root_name: str = "FOLIO"
    interpolation: str = "zoom"
    label_font_size: int = 10


@dataclass(frozen=True)
class SourceConfig:
    spreadsheet_id: Optional[str] = None
    sheet: str = "0"
    use_proxy: bool = True
    proxies: Tuple[str, ...] = DEFAULT_PROXIES
    timeout: float = 15.0
    csv_path: Optional[Path] = None

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SourceConfig":
        env = os.environ if environ is None else environ
        return normalize_source(
            {
                "spreadsheet_id": env.get("MODMAP_SPREADSHEET_ID"),
                "sheet": env.get("MODMAP_SHEET"),
                "csv_path": env.get("MODMAP_CSV_PATH"),
                "use_proxy": env.get("MODMAP_USE_PROXY"),
            }
        )


def _as_float(value: object, default: float, lo: float, hi: float) -> float:
    try:
        out = float(value)  # type: ignore[arg-type]
    except Exception:
        return default
    if out != out:
        return default
    return max(lo, min(hi, out))


def _as_bool(value: object, default: bool) -> bool:
    if value is None or value == "":
        return default
    if isinstance(value, str):
        return value.strip().lower() not in {"0", "false", "no", "off"}
    return bool(value)


def normalize_chart(raw: Optional[Mapping[str, object]]) -> ChartConfig:
    raw = raw or {}
    defaults = ChartConfig()
    interpolation = str(raw.get("interpolation") or defaults.interpolation).strip().lower()
    if interpolation not in {"zoom", "linear"}:
        interpolation = defaults.interpolation
    root_name = str(raw.get("root_name") or defaults.root_name).strip() or defaults.root_name
    return ChartConfig(
        width=int(_as_float(raw.get("width"), defaults.width, 50, 5000)),
        height=int(_as_float(raw.get("height"), defaults.height, 50, 5000)),
        padding=_as_float(raw.get("padding"), defaults.padding, 0.0, 50.0),
        duration=_as_float(raw.get("duration"), defaults.duration, 0.0, 60000.0),
        slow_duration=_as_float(raw.get("slow_duration"), defaults.slow_duration, 0.0, 600000.0),
        root_name=root_name,
        interpolation=interpolation,
        label_font_size=int(_as_float(raw.get("label_font_size"), defaults.label_font_size, 4, 48)),
    )


def normalize_source(raw: Optional[Mapping[str, object]]) -> SourceConfig:
    raw = raw or {}
    defaults = SourceConfig()
    spreadsheet_id = (str(raw.get("spreadsheet_id") or "")).strip() or None
    sheet = (str(raw.get("sheet") or "")).strip() or defaults.sheet
    proxies = raw.get("proxies")
    if proxies is None:
        proxy_tuple = defaults.proxies
    else:
        proxy_tuple = tuple(str(p).strip() for p in proxies if p is not None and str(p).strip())  # type: ignore[union-attr]
    csv_path = raw.get("csv_path")
    return SourceConfig(
        spreadsheet_id=spreadsheet_id,
        sheet=sheet,
        use_proxy=_as_bool(raw.get("use_proxy"), defaults.use_proxy),
        proxies=proxy_tuple,
        timeout=_as_float(raw.get("timeout"), defaults.timeout, 1.0, 300.0),
        csv_path=Path(str(csv_path)) if csv_path else None,
    )


def normalize_config(raw: Optional[Mapping[str, object]]) -> Tuple[ChartConfig, SourceConfig]:
    raw = raw or {}
    return normalize_chart(raw.get("chart") or {}), normalize_source(raw.get("source") or {})  # type: ignore[arg-type]
