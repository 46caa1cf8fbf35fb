from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

import pandas as pd

from modmap.csv_parser import BOM, parse_csv

Record = Dict[str, str]


def normalize_header(value: str) -> str:
    return value.replace(BOM, "").strip().lower()


def to_records(rows: Sequence[Sequence[str]]) -> List[Record]:
    """Map parsed rows onto dicts keyed by the (normalized) first row."""
    if not rows:
        return []

    headers = [normalize_header(h) for h in rows[0]]
    records: List[Record] = []
    for row in rows[1:]:
        record: Record = {}
        for idx, header in enumerate(headers):
            value = row[idx] if idx < len(row) else ""
            record[header] = (value or "").strip()
        if any(v != "" for v in record.values()):
            records.append(record)
    return records


def parse_csv_as_records(text: str) -> List[Record]:
    return to_records(parse_csv(text))


def records_frame(records: Iterable[Record]) -> pd.DataFrame:
    records = list(records)
    if not records:
        return pd.DataFrame(columns=["module", "application", "team"])
    df = pd.DataFrame.from_records(records).fillna("")
    for col in ["module", "application", "team"]:
        if col not in df.columns:
            df[col] = ""
    return df
