from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Mapping, Optional

from modmap.records import Record


@dataclass(frozen=True)
class ModuleFilters:
    selected_module: str = ""
    selected_application: str = ""

    @property
    def is_active(self) -> bool:
        return bool(self.selected_module or self.selected_application)


ALL_MODULES = "All Modules"
ALL_APPLICATIONS = "All Applications"


def _as_choice(value: object, all_label: str) -> str:
    if value is None:
        return ""
    s = str(value).strip()
    if s == all_label:
        return ""
    return s


def normalize_filters(raw: Optional[Mapping[str, object]]) -> ModuleFilters:
    raw = raw or {}
    return ModuleFilters(
        selected_module=_as_choice(raw.get("selected_module"), ALL_MODULES),
        selected_application=_as_choice(raw.get("selected_application"), ALL_APPLICATIONS),
    )


def unique_values(records: Iterable[Mapping[str, str]], key: str) -> List[str]:
    """Distinct non-empty values of ``key`` in first-seen order."""
    seen = {}
    for record in records:
        value = record.get(key) or ""
        if value and value not in seen:
            seen[value] = None
    return list(seen)


def apply_filters(records: Iterable[Record], filters: ModuleFilters) -> List[Record]:
    out: List[Record] = []
    for record in records:
        if filters.selected_module and record.get("module") != filters.selected_module:
            continue
        if filters.selected_application and record.get("application") != filters.selected_application:
            continue
        out.append(record)
    return out
