from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

from modmap.config import ChartConfig, SourceConfig
from modmap.errors import EmptyDatasetError
from modmap.filters import ModuleFilters, apply_filters, normalize_filters
from modmap.hierarchy import build_hierarchy
from modmap.modules_list import compute_modules_list
from modmap.pack import pack
from modmap.records import parse_csv_as_records, records_frame
from modmap.sheets import SheetsReader

logger = logging.getLogger(__name__)

DATA_DIR = Path(__file__).resolve().parents[1] / "data"
FILE_GLOB = "*.csv"


def get_source_files(data_dir: Path = DATA_DIR) -> List[Path]:
    return sorted(data_dir.glob(FILE_GLOB))


def file_signature(files: List[Path]) -> Tuple[Tuple[str, float], ...]:
    return tuple((str(f), f.stat().st_mtime) for f in files)


@lru_cache(maxsize=4)
def _load_csv_cached(files_sig: Tuple[Tuple[str, float], ...]) -> Tuple[Dict[str, str], ...]:
    records: List[Dict[str, str]] = []
    for name, _ in files_sig:
        text = Path(name).read_text(encoding="utf-8-sig")
        records.extend(parse_csv_as_records(text))
    return tuple(records)


def _context(source: str, records: List[Dict[str, str]]) -> Dict[str, object]:
    return {"source": source, "records": records, "frame": records_frame(records)}


def load_inventory_data(source: Optional[SourceConfig] = None, reader: Optional[SheetsReader] = None) -> Dict[str, object]:
    """Load inventory records from a local CSV or the public spreadsheet.

    An explicit ``csv_path`` wins, then a spreadsheet id, then the first
    ``*.csv`` found next to the package. Local files are cached by mtime;
    spreadsheet reads always hit the network.
    """
    source = source or SourceConfig()

    if source.csv_path is not None:
        files = [source.csv_path]
    elif source.spreadsheet_id:
        reader = reader or SheetsReader(source)
        records = reader.read_public_spreadsheet(source.spreadsheet_id, source.sheet, as_objects=True)
        logger.info("Loaded %d records from spreadsheet %s", len(records), source.spreadsheet_id)
        return _context(f"sheet:{source.spreadsheet_id}", list(records))  # type: ignore[arg-type]
    else:
        files = get_source_files()[:1]

    if not files:
        return _context("", [])
    records = [dict(r) for r in _load_csv_cached(file_signature(files))]
    logger.info("Loaded %d records from %s", len(records), files[0].name)
    return _context(str(files[0]), records)


def prepare_context(
    filters: dict | ModuleFilters,
    data_ctx: Dict[str, Any],
    chart: Optional[ChartConfig] = None,
) -> Dict[str, object]:
    """Filter, group and lay out the loaded records.

    Raises:
        EmptyDatasetError: nothing left to render after filtering.
    """
    chart = chart or ChartConfig()
    filt = filters if isinstance(filters, ModuleFilters) else normalize_filters(filters)
    records: List[Dict[str, str]] = list(data_ctx.get("records") or [])

    filtered = apply_filters(records, filt)
    if not filtered:
        raise EmptyDatasetError("No records match the current filters")

    tree = build_hierarchy(filtered, root_name=chart.root_name)
    layout = pack(tree, chart.width, chart.height, padding=chart.padding)
    return {
        "filters": filt,
        "filtered_records": filtered,
        "filtered_frame": records_frame(filtered),
        "tree": tree,
        "layout": layout,
        "modules": compute_modules_list(tree, filtered),
    }
